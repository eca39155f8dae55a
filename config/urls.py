"""
URL configuration for the Dealer Sales backend.

All API routes live under /api/. Tenant-scoped endpoints expect the
``X-Dealer-Slug`` header naming the dealership the request acts for.
"""
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from config.views import health_check
from apps.sales.views import public_document

urlpatterns = [
    # Health check (for Render)
    path('api/health/', health_check, name='health-check'),

    # Admin
    path('admin/', admin.site.urls),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='api-schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='api-schema'), name='api-docs'),

    # Authentication
    path('api/auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # API endpoints
    path('api/dealers/', include('apps.dealers.urls')),
    path('api/sales/', include('apps.sales.urls')),
    path('api/vehicles/', include('apps.vehicles.urls')),

    # Public share links (no authentication, token in path)
    path('api/public/documents/<str:token>/', public_document, name='public-document'),
]


# Custom error handlers
handler404 = 'config.views.error_404'
handler500 = 'config.views.error_500'
