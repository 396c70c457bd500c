from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsStaffRole
from clinic.serializers.users import DateRangeQuerySerializer
from clinic.services.analytics import appointment_report, dashboard, financial_report
from clinic.services.audit import log_action


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_stats(request):
    data = dashboard(request.user)
    log_action(user=request.user, action='read', object_type='analytics', detail={'report': 'dashboard'}, request=request)
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def appointment_analytics(request):
    q = DateRangeQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = appointment_report(request.user, start_date=q.validated_data.get('startDate'),
                              end_date=q.validated_data.get('endDate'))
    log_action(user=request.user, action='read', object_type='analytics', detail={'report': 'appointments'}, request=request)
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def financial_analytics(request):
    q = DateRangeQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = financial_report(request.user, start_date=q.validated_data.get('startDate'),
                            end_date=q.validated_data.get('endDate'))
    log_action(user=request.user, action='read', object_type='analytics', detail={'report': 'financial'}, request=request)
    return Response({'ok': True, 'data': data})
