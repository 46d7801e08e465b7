"""
Users — Serializers

Read and write serializers for User, the active-hierarchy switch and
custom JWT token claims.

@file users/serializers.py
"""

from django.contrib.auth import authenticate
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from hierarchy.branches import ALL_USER_FIELDS, Branch

from .models import User

POSITION_FIELDS = list(ALL_USER_FIELDS)


# ---------------------------------------------------------------------------
# JWT — custom claims
# ---------------------------------------------------------------------------

class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Inject status, admin level and active hierarchy into the JWT payload."""

    username_field = 'phone'

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['phone'] = user.phone
        token['status'] = user.status
        token['admin_level'] = user.admin_level
        token['active_hierarchy'] = user.active_hierarchy
        return token

    def validate(self, attrs):
        user = authenticate(
            request=self.context.get('request'),
            phone=attrs.get('phone'),
            password=attrs.get('password'),
        )

        if user is None:
            raise serializers.ValidationError(
                {'detail': 'Invalid credentials or account not active.'},
                code='authentication_failed',
            )

        if user.status != User.StatusChoices.ACTIVE:
            raise serializers.ValidationError(
                {'detail': f'Account status is {user.status}. Only ACTIVE accounts can log in.'},
                code='account_inactive',
            )

        data = super().validate(attrs)
        data['user'] = UserReadSerializer(user).data
        return data


# ---------------------------------------------------------------------------
# User serializers
# ---------------------------------------------------------------------------

class UserReadSerializer(serializers.ModelSerializer):
    """Read-only user representation, returned in list / detail views."""

    full_name = serializers.CharField(source='get_full_name', read_only=True)
    admin_level_display = serializers.CharField(source='get_admin_level_display', read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'phone', 'email', 'first_name', 'last_name', 'full_name',
            'status', 'admin_level', 'admin_level_display', 'active_hierarchy',
            *POSITION_FIELDS,
            'is_staff', 'is_active', 'date_joined',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class UserWriteSerializer(serializers.ModelSerializer):
    """Create / update users. Password is write-only."""

    password = serializers.CharField(write_only=True, required=False, min_length=10)

    class Meta:
        model = User
        fields = [
            'phone', 'email', 'first_name', 'last_name',
            'password', 'status', 'admin_level', 'active_hierarchy',
            *POSITION_FIELDS,
        ]

    def validate_phone(self, value):
        qs = User.objects.filter(phone=value)
        if self.instance:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError('Phone number already in use.')
        return value

    def validate_email(self, value):
        if not value:
            return None
        qs = User.objects.filter(email=value)
        if self.instance:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError('Email already in use.')
        return value


class ChangeStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=User.StatusChoices.choices)
    reason = serializers.CharField(required=False, default='')


class ActiveHierarchySerializer(serializers.Serializer):
    active_hierarchy = serializers.ChoiceField(choices=Branch.choices)
