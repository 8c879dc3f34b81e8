from django.contrib import admin
from import_export import fields, resources
from import_export.admin import ImportExportModelAdmin
from import_export.widgets import ForeignKeyWidget

from .models import Category, Product


class ProductResource(resources.ModelResource):
    category = fields.Field(
        column_name="category",
        attribute="category",
        widget=ForeignKeyWidget(Category, "name"),
    )

    class Meta:
        model = Product
        import_id_fields = ("sku",)
        fields = ("sku", "name", "slug", "description", "price", "category", "image_url", "stock", "is_active")
        export_order = fields


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    search_fields = ("name",)


@admin.register(Product)
class ProductAdmin(ImportExportModelAdmin):
    resource_classes = [ProductResource]
    list_display = ("name", "sku", "price", "category", "stock", "is_active")
    list_filter = ("category", "is_active")
    list_editable = ("is_active",)
    search_fields = ("name", "sku", "description")
    prepopulated_fields = {"slug": ("name",)}
