from rest_framework import generics, status
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from .models import Customer, CustomerTag, User
from .permissions import IsAdminRole
from .serializers import (
    CustomerSerializer,
    CustomerTagSerializer,
    RoleSerializer,
    TagAssignmentSerializer,
    UserCreateSerializer,
    UserSerializer,
)


class UserListCreateView(generics.ListCreateAPIView):
    """
    Lists back-office users; admins may invite new ones.
    """
    queryset = User.objects.order_by('email')
    permission_classes = [IsAdminRole]

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return UserCreateSerializer
        return UserSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


class ChangeUserRoleView(APIView):
    permission_classes = [IsAdminRole]

    def post(self, request, pk):
        serializer = RoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            user = User.objects.get(pk=pk)
        except User.DoesNotExist:
            return Response({"detail": "User not found."}, status=status.HTTP_404_NOT_FOUND)

        if user.pk == request.user.pk and serializer.validated_data['role'] != User.ROLE_ADMIN:
            return Response(
                {"detail": "You cannot remove your own admin role."},
                status=status.HTTP_400_BAD_REQUEST
            )

        user.set_role(serializer.validated_data['role'])
        return Response(UserSerializer(user).data, status=status.HTTP_200_OK)


class MeView(APIView):
    """
    Returns the signed-in back-office user.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data, status=status.HTTP_200_OK)

    def patch(self, request):
        serializer = UserSerializer(request.user, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_200_OK)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class LogoutView(APIView):
    """
    Blacklists the refresh token.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        refresh_token = request.data.get("refresh_token")
        if not refresh_token:
            return Response(
                {"detail": "Refresh token is required."},
                status=status.HTTP_400_BAD_REQUEST
            )
        try:
            RefreshToken(refresh_token).blacklist()
        except TokenError:
            return Response(
                {"detail": "Invalid or expired token."},
                status=status.HTTP_400_BAD_REQUEST
            )
        return Response({"detail": "Successfully logged out."}, status=status.HTTP_200_OK)


class CustomerListView(generics.ListAPIView):
    queryset = Customer.objects.prefetch_related('tags').order_by('-created_at')
    serializer_class = CustomerSerializer
    permission_classes = [IsAdminUser]
    filterset_fields = ['tags', 'city', 'state']


class CustomerTagListCreateView(generics.ListCreateAPIView):
    queryset = CustomerTag.objects.all()
    serializer_class = CustomerTagSerializer
    permission_classes = [IsAdminUser]


class CustomerTagAssignView(APIView):
    permission_classes = [IsAdminUser]

    def post(self, request, pk):
        try:
            customer = Customer.objects.get(pk=pk)
        except Customer.DoesNotExist:
            return Response({"detail": "Customer not found."}, status=status.HTTP_404_NOT_FOUND)

        serializer = TagAssignmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tags = serializer.validated_data['tag_ids']
        if serializer.validated_data['replace']:
            customer.tags.set(tags)
        else:
            customer.tags.add(*tags)
        return Response(CustomerSerializer(customer).data, status=status.HTTP_200_OK)
