from django.urls import path
from .views import CheckoutView, DashboardView, OrderStatusView, PaystackWebhookView

urlpatterns = [
    path('orders/checkout/', CheckoutView.as_view(), name='checkout'),
    path('orders/<str:reference>/status/', OrderStatusView.as_view(), name='order-status'),
    path('webhooks/paystack/', PaystackWebhookView.as_view(), name='paystack-webhook'),
    path('admin/dashboard/', DashboardView.as_view(), name='admin-dashboard'),
]
