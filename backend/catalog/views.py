from rest_framework import generics
from rest_framework.pagination import PageNumberPagination

from .filters import ProductFilter
from .models import Category, Product
from .serializers import CategorySerializer, ProductListSerializer, ProductSerializer


class StandardResultsSetPagination(PageNumberPagination):
    page_size = 12
    page_size_query_param = "page_size"
    max_page_size = 100


class CategoryListView(generics.ListAPIView):
    queryset = Category.objects.all()
    serializer_class = CategorySerializer


class ProductListView(generics.ListAPIView):
    queryset = Product.objects.select_related("category").filter(is_active=True)
    serializer_class = ProductListSerializer
    pagination_class = StandardResultsSetPagination
    filterset_class = ProductFilter


class ProductDetailView(generics.RetrieveAPIView):
    queryset = Product.objects.select_related("category").filter(is_active=True)
    serializer_class = ProductSerializer
    lookup_field = "slug"
