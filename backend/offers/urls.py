from django.urls import path

from .views import DiscountValidateView, OrderBumpDetailView, OrderBumpListView, UpsellListView, UpsellPayView

urlpatterns = [
    path('discounts/validate/', DiscountValidateView.as_view(), name='discount-validate'),
    path('order-bumps/', OrderBumpListView.as_view(), name='order-bump-list'),
    path('order-bumps/<int:pk>/', OrderBumpDetailView.as_view(), name='order-bump-detail'),
    path('upsells/', UpsellListView.as_view(), name='upsell-list'),
    path('upsells/<int:pk>/pay/', UpsellPayView.as_view(), name='upsell-pay'),
]
