from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/auth/', include('auth_app.urls')),
    path('api/rewards/', include('rewards.urls')),
    path('api/', include('rooms.urls')),
    path('api/', include('bookings.urls')),
    path('api/', include('coupons.urls')),
]
