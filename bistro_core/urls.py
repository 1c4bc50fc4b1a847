from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),

    # JSON API used by the front-of-house screens
    path('api/', include('restaurant.urls')),
]
