"""
URL configuration for the storeadmin project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""
from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView


@csrf_exempt
@require_http_methods(["GET"])
def api_root(request):
    """API root view with available endpoints."""
    return JsonResponse({
        'message': 'Store Admin Shipping API',
        'version': '1.0.0',
        'endpoints': {
            'authentication': {
                'token': '/api/auth/token/',
                'token_refresh': '/api/auth/token/refresh/',
            },
            'shipment': {
                'create': '/api/shipment/create',
                'get': '/api/shipment/get',
                'tracking': '/api/shipment/tracking',
                'manage': '/api/shipment/manage',
                'waybills': '/api/shipment/waybills',
                'serviceability': '/api/shipment/serviceability',
                'label': '/api/shipment/label',
                'pickup': '/api/shipment/pickup',
                'ewaybill': '/api/shipment/ewaybill',
                'warehouses': '/api/shipment/warehouses',
                'list': '/api/shipments/',
            },
            'documentation': '/api/docs/'
        }
    })


urlpatterns = [
    path("admin/", admin.site.urls),

    # API endpoints
    path('api/', api_root, name='api-root'),  # Exact match for /api/ (must be first)
    path('api/auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/', include('shipping.urls')),

    # API documentation
    path('api/docs/', include('rest_framework.urls')),
]
