import os

import django

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "bistro_core.settings")

# Setup Django before any consumer (and therefore any model) is imported
django.setup()

from channels.routing import ProtocolTypeRouter, URLRouter
from django.core.asgi import get_asgi_application

import restaurant.routing

django_asgi_app = get_asgi_application()

application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        "websocket": URLRouter(restaurant.routing.websocket_urlpatterns),
    }
)
