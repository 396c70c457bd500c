from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Appointment
from clinic.serializers.appointments import (
    AppointmentCreateSerializer,
    AppointmentListQuerySerializer,
    AppointmentUpdateSerializer,
    AvailabilityQuerySerializer,
    CancelSerializer,
    SuggestQuerySerializer,
)
from clinic.services.analytics import invalidate_dashboards
from clinic.services.appointments import (
    cancel_appointment,
    create_appointment,
    delete_appointment,
    get_appointment,
    list_appointments,
    serialize_appointment,
    update_appointment,
)
from clinic.services.audit import log_action
from clinic.services.scheduling import doctor_availability, suggest_slots
from clinic.views.common import paginated

User = get_user_model()

NOT_FOUND = 'No appointment found with that ID'


def _one(a: Appointment, code=200):
    invalidate_dashboards(a.patient_id, a.doctor_id)
    return Response({'ok': True, 'data': {'appointment': serialize_appointment(a)}}, status=code)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointments(request):
    if request.method == 'POST':
        s = AppointmentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        try:
            a = create_appointment(request.user, s.validated_data, request=request)
        except User.DoesNotExist as e:
            return Response({'ok': False, 'detail': str(e) or 'No user found with that ID'}, status=404)
        except ValueError as e:
            return Response({'ok': False, 'detail': str(e)}, status=400)
        return _one(a, code=status.HTTP_201_CREATED)

    q = AppointmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    page, limit = vd.get('page', 1), vd.get('limit', 10)
    data, total = list_appointments(
        request.user,
        status=vd.get('status'),
        type=vd.get('type'),
        start_date=vd.get('startDate'),
        end_date=vd.get('endDate'),
        page=page,
        limit=limit,
    )
    log_action(user=request.user, action='read', object_type='appointment',
               detail={'filter': {k: str(v) for k, v in vd.items()}}, request=request)
    return Response(paginated('appointments', data, total, page, limit))


@api_view(['GET', 'PATCH', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, pk: int):
    try:
        a = get_appointment(request.user, pk)
    except Appointment.DoesNotExist:
        return Response({'ok': False, 'detail': NOT_FOUND}, status=404)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)

    if request.method == 'GET':
        return Response({'ok': True, 'data': {'appointment': serialize_appointment(a)}})

    if request.method == 'DELETE':
        try:
            removed = delete_appointment(request.user, a, request=request)
        except PermissionError as e:
            return Response({'ok': False, 'detail': str(e)}, status=403)
        invalidate_dashboards(a.patient_id, a.doctor_id)
        return Response({'ok': True, 'data': {'id': removed}})

    s = AppointmentUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    try:
        a = update_appointment(request.user, a, s.validated_data, request=request)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    return _one(a)


@api_view(['PATCH', 'POST'])
@permission_classes([IsAuthenticated])
def appointment_cancel(request, pk: int):
    s = CancelSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    try:
        a = get_appointment(request.user, pk)
        a = cancel_appointment(request.user, a, s.validated_data.get('reason'), request=request)
    except Appointment.DoesNotExist:
        return Response({'ok': False, 'detail': NOT_FOUND}, status=404)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    return _one(a)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def availability(request):
    q = AvailabilityQuerySerializer(data=request.query_params)
    if not q.is_valid():
        return Response({'ok': False, 'detail': 'Doctor ID and date are required', 'errors': q.errors}, status=400)
    try:
        data = doctor_availability(q.validated_data['doctorId'], q.validated_data['date'])
    except User.DoesNotExist as e:
        return Response({'ok': False, 'detail': str(e)}, status=404)
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def suggestions(request):
    q = SuggestQuerySerializer(data=request.query_params)
    if not q.is_valid():
        return Response({'ok': False, 'detail': 'Doctor ID is required', 'errors': q.errors}, status=400)
    patient_id = q.validated_data.get('patientId')
    if request.user.role == User.ROLE_PATIENT:
        patient_id = request.user.id
    try:
        data = suggest_slots(q.validated_data['doctorId'], patient_id)
    except User.DoesNotExist as e:
        return Response({'ok': False, 'detail': str(e)}, status=404)
    return Response({'ok': True, 'data': data})
