"""
Serializers for dashboard authentication.

The user id issued here is the owner id of every generated site. `role` is
only ever set by an administrator; nothing a user submits can change it.
"""
from rest_framework import serializers
from django.contrib.auth import authenticate
from .models import User


def _split_name(name):
    parts = (name or '').strip().split(None, 1)
    first = parts[0] if parts else ''
    last = parts[1] if len(parts) > 1 else ''
    return first, last


class UserSerializer(serializers.ModelSerializer):
    """Current user as shown to the dashboard, including the read-only role."""

    class Meta:
        model = User
        fields = ('id', 'email', 'username', 'first_name', 'last_name', 'role', 'created_at')
        read_only_fields = ('id', 'role', 'created_at')


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})

    def validate(self, attrs):
        email = attrs.get('email')
        password = attrs.get('password')
        if not (email and password):
            raise serializers.ValidationError('Must include "email" and "password".')

        # USERNAME_FIELD is email, so it is passed as the username credential
        user = authenticate(username=email, password=password)
        if not user:
            raise serializers.ValidationError('Invalid email or password.')
        if not user.is_active:
            raise serializers.ValidationError('User account is disabled.')
        attrs['user'] = user
        return attrs


class RegisterSerializer(serializers.Serializer):
    """
    Self-service registration. New accounts always start with the standard role;
    an unknown `role` key in the body is ignored.
    """
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={'input_type': 'password'}, min_length=8)
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    first_name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    last_name = serializers.CharField(required=False, allow_blank=True, max_length=150)

    def validate_email(self, value):
        if User.objects.filter(email=value).exists():
            raise serializers.ValidationError('A user with this email already exists.')
        return value

    def create(self, validated_data):
        first_from_name, last_from_name = _split_name(validated_data.get('name'))
        email = validated_data['email']
        return User.objects.create_user(
            username=email,
            email=email,
            password=validated_data['password'],
            first_name=validated_data.get('first_name', '').strip() or first_from_name,
            last_name=validated_data.get('last_name', '').strip() or last_from_name,
            role=User.ROLE_STANDARD,
        )
