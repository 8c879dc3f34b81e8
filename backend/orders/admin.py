from django.contrib import admin
from import_export import resources
from import_export.admin import ExportMixin

from .models import Order


class OrderResource(resources.ModelResource):
    class Meta:
        model = Order
        exclude = ('checkout_session_key',)


@admin.register(Order)
class OrderAdmin(ExportMixin, admin.ModelAdmin):
    resource_classes = [OrderResource]
    exclude = ('checkout_session_key',)
    list_display = ('payment_reference', 'customer_name', 'customer_email', 'total_amount',
                    'payment_status', 'order_status', 'source', 'created_at')
    list_filter = ('payment_status', 'order_status', 'source', 'created_at')
    search_fields = ('payment_reference', 'customer_email', 'customer_name', 'customer_phone')
    readonly_fields = ('payment_reference', 'cart_items', 'subtotal', 'discount_amount', 'total_amount',
                       'paid_at', 'email_sent', 'email_sent_at', 'shipping_email_sent', 'abandoned_notified', 'created_at', 'updated_at')
    actions = ['mark_processing', 'mark_shipped', 'mark_delivered']

    def _set_status(self, request, queryset, new_status):
        # save() per order so the post_save signal sees the change
        for order in queryset:
            order.order_status = new_status
            order.save()
        self.message_user(request, f"{queryset.count()} order(s) marked {new_status}.")

    @admin.action(description='Mark selected orders as processing')
    def mark_processing(self, request, queryset):
        self._set_status(request, queryset, 'processing')

    @admin.action(description='Mark selected orders as shipped')
    def mark_shipped(self, request, queryset):
        self._set_status(request, queryset, 'shipped')

    @admin.action(description='Mark selected orders as delivered')
    def mark_delivered(self, request, queryset):
        self._set_status(request, queryset, 'delivered')
