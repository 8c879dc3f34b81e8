from django.urls import path

from .views import CartInitView, CartItemDetailView, CartItemsView, CartMessagesView, CartSyncView, CartView

urlpatterns = [
    path('cart/', CartView.as_view(), name='cart'),  # GET, DELETE clears
    path('cart/items/', CartItemsView.as_view(), name='cart-items'),  # POST
    path('cart/items/<str:item_id>/', CartItemDetailView.as_view(), name='cart-item'),  # PATCH, DELETE
    path('cart/init/', CartInitView.as_view(), name='cart-init'),
    path('cart/messages/', CartMessagesView.as_view(), name='cart-messages'),  # GET polls, POST receives
    path('cart/sync/', CartSyncView.as_view(), name='cart-sync'),
]
