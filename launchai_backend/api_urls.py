"""
API URL routing for launchai_backend.
All API endpoints are prefixed with /api/v1/
"""
from django.urls import path, include

from .views import health_check

urlpatterns = [
    # Health check (no auth) - GET /api/v1/health/
    path('health/', health_check),
    # Dashboard authentication
    path('auth/', include('accounts.urls')),
    # Generated site management (owner side)
    path('sites/', include('sites.urls')),
    # Public resolution by address
    path('public/', include('sites.public_urls')),
]
