from django.contrib import admin
from import_export.admin import ImportExportModelAdmin

from .models import DiscountCode, OrderBump, UpsellProduct


@admin.register(DiscountCode)
class DiscountCodeAdmin(ImportExportModelAdmin):
    list_display = ('code', 'type', 'value', 'current_uses', 'max_uses', 'is_active', 'expires_at')
    list_filter = ('type', 'is_active')
    list_editable = ('is_active',)
    search_fields = ('code',)
    readonly_fields = ('current_uses', 'created_at')


@admin.register(OrderBump)
class OrderBumpAdmin(admin.ModelAdmin):
    list_display = ('title', 'original_price', 'discounted_price', 'min_cart_value', 'position', 'is_active')
    list_filter = ('is_active',)
    list_editable = ('position', 'is_active')
    search_fields = ('title',)


@admin.register(UpsellProduct)
class UpsellProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'kind', 'price', 'is_active')
    list_filter = ('kind', 'is_active')
    search_fields = ('name',)
