from django.contrib import admin
from django.urls import path, include

from .views import api_root, health_check

urlpatterns = [
    path('', api_root, name='api-root'),
    path('admin/', admin.site.urls),
    path('api/health/', health_check, name='health'),

    # Authentication endpoints (register, login, logout, me)
    path('api/auth/', include('accounts.urls')),

    # Bookings (list/create, detail, accept)
    path('api/bookings/', include('bookings.urls')),

    # Admin-only user management
    path('api/admin/', include('accounts.admin_urls')),
]

handler404 = 'shareroute.views.endpoint_not_found'
handler500 = 'shareroute.views.server_error'
