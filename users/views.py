"""
Users — Views

Auth endpoints (login, refresh, me, hierarchy memberships) and the
scoped user management ViewSet.

@file users/views.py
"""

import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenRefreshView

from core.services import AuditService

from .models import User
from .permissions import CanManageObject, HasAdminLevel, IsActiveUser
from .serializers import (
    ActiveHierarchySerializer,
    ChangeStatusSerializer,
    CustomTokenObtainPairSerializer,
    UserReadSerializer,
    UserWriteSerializer,
)
from .services import AuthService, UserService

logger = logging.getLogger('memberhub')


# ---------------------------------------------------------------------------
# Auth views
# ---------------------------------------------------------------------------

class LoginView(APIView):
    """POST /v1/auth/login: authenticate and obtain a JWT pair."""
    permission_classes = [AllowAny]
    throttle_scope = 'anon'

    def post(self, request):
        serializer = CustomTokenObtainPairSerializer(
            data=request.data, context={'request': request},
        )
        serializer.is_valid(raise_exception=True)

        user_obj = User.objects.get(phone=request.data.get('phone'))
        AuthService.log_auth_event(
            user=user_obj,
            ip_address=AuditService.get_client_ip(request),
            user_agent=request.META.get('HTTP_USER_AGENT', ''),
        )

        return Response({
            'success': True,
            'data': {
                'access': serializer.validated_data['access'],
                'refresh': serializer.validated_data['refresh'],
                'user': serializer.validated_data['user'],
            },
        })


class TokenRefreshAPIView(TokenRefreshView):
    """POST /v1/auth/refresh: rotate the refresh token."""
    pass


class MeView(APIView):
    """GET /v1/auth/me: the current authenticated user."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response({
            'success': True,
            'data': UserReadSerializer(request.user).data,
        })


class MyHierarchyView(APIView):
    """
    GET   /v1/auth/me/hierarchy: memberships per branch.
    PATCH /v1/auth/me/hierarchy: switch the active branch.
    """
    permission_classes = [IsActiveUser]

    def _payload(self, user):
        return {
            'active_hierarchy': user.active_hierarchy,
            'memberships': UserService.get_memberships(user),
        }

    def get(self, request):
        return Response({'success': True, 'data': self._payload(request.user)})

    def patch(self, request):
        serializer = ActiveHierarchySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserService.set_active_hierarchy(request.user, serializer.validated_data['active_hierarchy'])
        return Response({'success': True, 'data': self._payload(user)})


# ---------------------------------------------------------------------------
# User management ViewSet
# ---------------------------------------------------------------------------

class UserViewSet(viewsets.ModelViewSet):
    """
    Members inside the caller's management scope. Any admin level from
    DISTRICT upwards; members outside the scope are invisible (404).
    """

    permission_classes = [IsActiveUser, HasAdminLevel, CanManageObject]
    required_admin_level = User.AdminLevel.DISTRICT
    filterset_fields = ['status', 'admin_level', 'active_hierarchy']
    search_fields = ['phone', 'email', 'first_name', 'last_name']
    ordering_fields = ['created_at', 'first_name', 'last_name', 'status']
    ordering = ['-created_at']
    http_method_names = ['get', 'post', 'put', 'patch', 'head', 'options']

    def get_queryset(self):
        return UserService.get_manageable_users(self.request.user)

    def get_serializer_class(self):
        if self.action in ('list', 'retrieve'):
            return UserReadSerializer
        return UserWriteSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        password = data.pop('password', None)
        self._check_admin_level(data.get('admin_level'))
        user = UserService.create_user(
            phone=data.pop('phone'),
            password=password,
            actor=request.user,
            **data,
        )
        return Response(UserReadSerializer(user).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        password = data.pop('password', None)
        self._check_admin_level(data.get('admin_level'))
        user = UserService.update_user(user_id=instance.pk, actor=request.user, **data)
        if password:
            user.set_password(password)
            user.save(update_fields=['password'])
        return Response(UserReadSerializer(user).data)

    def _check_admin_level(self, admin_level):
        """Admins cannot grant a level above their own."""
        if admin_level and User.ADMIN_LEVEL_RANK[admin_level] > self.request.user.admin_rank:
            raise PermissionDenied('Cannot grant an admin level above your own.')

    @action(detail=True, methods=['post'], url_path='change-status')
    def change_status(self, request, pk=None):
        target = self.get_object()
        serializer = ChangeStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserService.change_status(
            user_id=target.pk,
            new_status=serializer.validated_data['status'],
            actor=request.user,
            reason=serializer.validated_data.get('reason', ''),
        )
        return Response({'success': True, 'data': UserReadSerializer(user).data})
