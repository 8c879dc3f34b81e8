import re

from django.contrib.auth.password_validation import validate_password
from django.core.validators import RegexValidator
from rest_framework import serializers

from .models import Customer, CustomerTag, User

name_validator = RegexValidator(r"^[a-zA-Z\s'-]+$", "Name may only contain letters, spaces, ' and -.")
phone_validator = RegexValidator(r"^\+?[0-9\s\-()]{10,15}$", "Enter a valid phone number.")


def _sanitize(value):
    return re.sub(r"[<>\"'&]", "", value.strip()) if value else value


class CustomerInfoSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, validators=[name_validator])
    email = serializers.EmailField(max_length=254)
    phone = serializers.CharField(required=False, allow_blank=True, validators=[phone_validator])
    address = serializers.CharField(max_length=200, required=False, allow_blank=True)
    city = serializers.CharField(max_length=50, required=False, allow_blank=True)
    state = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def validate_email(self, value):
        return value.lower()

    def validate(self, attrs):
        for field in ('name', 'phone', 'address', 'city', 'state'):
            if field in attrs:
                attrs[field] = _sanitize(attrs[field])
        return attrs


class CustomerTagSerializer(serializers.ModelSerializer):
    customer_count = serializers.IntegerField(source='customers.count', read_only=True)

    class Meta:
        model = CustomerTag
        fields = ('id', 'name', 'color', 'description', 'customer_count')


class CustomerSerializer(serializers.ModelSerializer):
    tags = CustomerTagSerializer(many=True, read_only=True)
    order_count = serializers.IntegerField(source='orders.count', read_only=True)

    class Meta:
        model = Customer
        fields = ('id', 'email', 'name', 'phone', 'city', 'state', 'newsletter', 'tags', 'order_count', 'created_at')


class TagAssignmentSerializer(serializers.Serializer):
    tag_ids = serializers.PrimaryKeyRelatedField(queryset=CustomerTag.objects.all(), many=True)
    replace = serializers.BooleanField(default=False)


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(
        write_only=True,
        required=True,
        validators=[validate_password],
        style={'input_type': 'password'}
    )
    password2 = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )

    class Meta:
        model = User
        fields = ('email', 'password', 'password2', 'first_name', 'last_name', 'role')
        extra_kwargs = {
            'first_name': {'required': False},
            'last_name': {'required': False},
        }

    def validate(self, attrs):
        if attrs['password'] != attrs['password2']:
            raise serializers.ValidationError(
                {"password": "Password fields didn't match."}
            )
        return attrs

    def create(self, validated_data):
        validated_data.pop('password2')
        password = validated_data.pop('password')
        role = validated_data.pop('role', User.ROLE_SUPPORT)

        user = User.objects.create_user(password=password, **validated_data)
        user.set_role(role)
        return user


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ('id', 'email', 'first_name', 'last_name', 'role', 'is_active', 'is_staff', 'date_joined', 'last_login')
        read_only_fields = ('id', 'email', 'role', 'is_staff', 'date_joined', 'last_login')


class RoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)
