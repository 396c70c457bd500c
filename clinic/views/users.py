"""
User directory and profile endpoints.

``/api/users/me`` is the self-service profile; the collection and the
per-id routes are for administrators, with the exception that users
may always read and edit their own row.
"""
from django.contrib.auth import get_user_model
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsAdminRole
from clinic.serializers.users import (
    AdminUserUpdateSerializer,
    DoctorListQuerySerializer,
    ProfileUpdateSerializer,
    UserListQuerySerializer,
)
from clinic.services.users import (
    deactivate_user,
    list_doctors,
    list_users,
    serialize_user,
    update_profile,
    update_user,
)
from clinic.views.common import paginated

User = get_user_model()


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def users(request):
    q = UserListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, limit = q.validated_data.get('page', 1), q.validated_data.get('limit', 10)
    data, total = list_users(role=q.validated_data.get('role'), q=q.validated_data.get('q'), page=page, limit=limit)
    return Response(paginated('users', data, total, page, limit))


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def me(request):
    if request.method == 'GET':
        return Response({'ok': True, 'data': {'user': serialize_user(request.user)}})
    s = ProfileUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    user = update_profile(request.user, s.validated_data)
    return Response({'ok': True, 'data': {'user': serialize_user(user)}})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def doctors(request):
    q = DoctorListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, limit = q.validated_data.get('page', 1), q.validated_data.get('limit', 50)
    data, total = list_doctors(specialization=q.validated_data.get('specialization'), page=page, limit=limit)
    return Response(paginated('doctors', data, total, page, limit))


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def user_detail(request, pk: int):
    is_admin = request.user.role == User.ROLE_ADMIN
    if not is_admin and request.user.id != pk:
        return Response({'ok': False, 'detail': 'You do not have permission to perform this action'}, status=403)
    try:
        target = User.objects.get(id=pk)
    except User.DoesNotExist:
        return Response({'ok': False, 'detail': 'No user found with that ID'}, status=404)

    if request.method == 'GET':
        return Response({'ok': True, 'data': {'user': serialize_user(target)}})

    if request.method == 'DELETE':
        try:
            deactivate_user(request.user, target)
        except PermissionError as e:
            return Response({'ok': False, 'detail': str(e)}, status=403)
        except ValueError as e:
            return Response({'ok': False, 'detail': str(e)}, status=400)
        return Response(status=204)

    serializer_cls = AdminUserUpdateSerializer if is_admin else ProfileUpdateSerializer
    s = serializer_cls(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    try:
        target = update_user(request.user, target, s.validated_data)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    return Response({'ok': True, 'data': {'user': serialize_user(target)}})
