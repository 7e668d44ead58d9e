"""
URL routing for public site resolution.
"""
from django.urls import path
from .public_views import resolve_site, resolve_token

urlpatterns = [
    path('resolve/', resolve_token, name='public-site-resolve-token'),
    path('<str:owner_id>/<str:site_id>/', resolve_site, name='public-site-resolve'),
]
