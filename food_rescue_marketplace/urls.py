"""
URL configuration for food_rescue_marketplace project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView
from core.views import (
    EmailTokenObtainPairView,
    ProductListCreateView,
    ProductDetailView,
    StoreListCreateView,
    StoreDetailView,
    StoreProductsView,
    PriceRevaluationView,
    OrderListCreateView,
    OrderStatsSummaryView,
    OrderDetailView,
    OrderStatusUpdateView,
    OrderPaymentStatusView,
    CurrentUserView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # Catalog endpoints
    path('api/products/', ProductListCreateView.as_view(), name='product_list'),
    path('api/products/<int:pk>/', ProductDetailView.as_view(), name='product_detail'),
    path('api/admin/revalue-prices/', PriceRevaluationView.as_view(), name='revalue_prices'),
    path('api/stores/', StoreListCreateView.as_view(), name='store_list'),
    path('api/stores/<int:pk>/', StoreDetailView.as_view(), name='store_detail'),
    path('api/stores/<int:pk>/products/', StoreProductsView.as_view(), name='store_products'),

    # Order endpoints
    path('api/orders/', OrderListCreateView.as_view(), name='order_list'),
    path('api/orders/stats/summary/', OrderStatsSummaryView.as_view(), name='order_stats_summary'),
    path('api/orders/<str:order_id>/', OrderDetailView.as_view(), name='order_detail'),
    path('api/orders/<str:order_id>/status/', OrderStatusUpdateView.as_view(), name='order_status_update'),
    path('api/orders/<str:order_id>/payment/', OrderPaymentStatusView.as_view(), name='order_payment_update'),

    # User endpoints
    path('api/users/me/', CurrentUserView.as_view(), name='current_user'),

    # JWT Authentication endpoints
    path('api/token/', EmailTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
]
