from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Appointment
from clinic.services.appointments import serialize_appointment
from clinic.services.telehealth import (
    SessionUnavailable,
    end_session,
    join_session,
    session_history,
    upcoming_sessions,
)

NOT_FOUND = 'No appointment found with that ID'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def session(request, appointment_id: int):
    try:
        data = join_session(request.user, appointment_id, request=request)
    except Appointment.DoesNotExist:
        return Response({'ok': False, 'detail': NOT_FOUND}, status=404)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    except SessionUnavailable as e:
        return Response({'ok': False, 'detail': str(e), 'availableAt': e.available_at.isoformat()}, status=400)
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    return Response({'ok': True, 'data': {'telehealth': data}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def session_end(request, appointment_id: int):
    try:
        a = end_session(request.user, appointment_id, request=request)
    except Appointment.DoesNotExist:
        return Response({'ok': False, 'detail': NOT_FOUND}, status=404)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    return Response({'ok': True, 'message': 'Telehealth session ended successfully',
                     'data': {'appointment': serialize_appointment(a)}})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def upcoming(request):
    sessions = upcoming_sessions(request.user)
    return Response({'ok': True, 'results': len(sessions), 'data': {'sessions': sessions}})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def history(request, patient_id: int):
    try:
        sessions = session_history(request.user, patient_id)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    return Response({'ok': True, 'results': len(sessions), 'data': {'sessions': sessions}})
