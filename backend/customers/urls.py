from django.urls import path
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
)

from .views import (
    ChangeUserRoleView,
    CustomerListView,
    CustomerTagAssignView,
    CustomerTagListCreateView,
    LogoutView,
    MeView,
    UserListCreateView,
)

urlpatterns = [
    path('admin/login/', TokenObtainPairView.as_view(), name='admin-login'),
    path('admin/token/refresh/', TokenRefreshView.as_view(), name='admin-token-refresh'),
    path('admin/logout/', LogoutView.as_view(), name='admin-logout'),
    path('admin/me/', MeView.as_view(), name='admin-me'),
    path('admin/users/', UserListCreateView.as_view(), name='admin-users'),
    path('admin/users/<int:pk>/role/', ChangeUserRoleView.as_view(), name='admin-user-role'),
    path('admin/customers/', CustomerListView.as_view(), name='admin-customers'),
    path('admin/customers/<int:pk>/tags/', CustomerTagAssignView.as_view(), name='admin-customer-tags'),
    path('admin/tags/', CustomerTagListCreateView.as_view(), name='admin-tags'),
]
