from django.contrib import admin

from .models import Cart, CartStorageEntry


class CartStorageEntryInline(admin.TabularInline):
    model = CartStorageEntry
    extra = 0
    readonly_fields = ('key', 'value', 'updated_at')


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ('session_id', 'created_at', 'updated_at')
    search_fields = ('session_id',)
    inlines = [CartStorageEntryInline]
