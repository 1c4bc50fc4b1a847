from django.urls import path

from .consumers import OrderFeedConsumer

websocket_urlpatterns = [
    path('ws/orders/', OrderFeedConsumer.as_asgi()),
]
