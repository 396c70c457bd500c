from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Appointment, Invoice
from clinic.permissions import IsStaffRole
from clinic.serializers.billing import (
    InvoiceCreateSerializer,
    InvoiceListQuerySerializer,
    InvoiceUpdateSerializer,
    PaymentSerializer,
)
from clinic.services.analytics import invalidate_dashboards
from clinic.services.billing import (
    create_invoice,
    delete_invoice,
    detect_anomalies,
    get_invoice,
    invoice_document,
    list_invoices,
    process_payment,
    serialize_invoice,
    update_invoice,
)
from clinic.views.common import paginated

User = get_user_model()

NOT_FOUND = 'No billing found with that ID'


def _one(inv: Invoice, code=200, **extra):
    invalidate_dashboards(inv.patient_id, inv.doctor_id)
    return Response({'ok': True, **extra, 'data': {'billing': serialize_invoice(inv)}}, status=code)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def billings(request):
    if request.method == 'POST':
        s = InvoiceCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        try:
            inv = create_invoice(request.user, s.validated_data, request=request)
        except PermissionError as e:
            return Response({'ok': False, 'detail': str(e)}, status=403)
        except User.DoesNotExist as e:
            return Response({'ok': False, 'detail': str(e)}, status=404)
        except Appointment.DoesNotExist:
            return Response({'ok': False, 'detail': 'No appointment found with that ID'}, status=404)
        except ValueError as e:
            return Response({'ok': False, 'detail': str(e)}, status=400)
        return _one(inv, code=status.HTTP_201_CREATED)

    q = InvoiceListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, limit = q.validated_data.get('page', 1), q.validated_data.get('limit', 10)
    data, total = list_invoices(request.user, status=q.validated_data.get('status'), page=page, limit=limit)
    return Response(paginated('billings', data, total, page, limit))


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def billing_detail(request, pk: int):
    try:
        inv = get_invoice(request.user, pk)
    except Invoice.DoesNotExist:
        return Response({'ok': False, 'detail': NOT_FOUND}, status=404)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)

    if request.method == 'GET':
        return Response({'ok': True, 'data': {'billing': serialize_invoice(inv)}})

    if request.method == 'DELETE':
        try:
            delete_invoice(request.user, inv, request=request)
        except PermissionError as e:
            return Response({'ok': False, 'detail': str(e)}, status=403)
        invalidate_dashboards(inv.patient_id, inv.doctor_id)
        return Response(status=204)

    if any(k in request.data for k in ('patient', 'doctor', 'appointment')):
        return Response({'ok': False, 'detail': 'You cannot change the patient, doctor or appointment for an existing billing'}, status=400)
    s = InvoiceUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    try:
        inv = update_invoice(request.user, inv, s.validated_data, request=request)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    return _one(inv)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def billing_payment(request, pk: int):
    s = PaymentSerializer(data=request.data)
    if not s.is_valid():
        return Response({'ok': False, 'detail': 'Payment amount and method are required', 'errors': s.errors}, status=400)
    try:
        inv = get_invoice(request.user, pk)
        inv = process_payment(request.user, inv, s.validated_data, request=request)
    except Invoice.DoesNotExist:
        return Response({'ok': False, 'detail': NOT_FOUND}, status=404)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    return _one(inv, message='Payment processed successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def billing_invoice(request, pk: int):
    try:
        inv = get_invoice(request.user, pk)
    except Invoice.DoesNotExist:
        return Response({'ok': False, 'detail': NOT_FOUND}, status=404)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    return Response({'ok': True, 'message': 'Invoice PDF generated successfully',
                     'data': invoice_document(request.user, inv, request=request)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def billing_anomalies(request):
    anomalies = detect_anomalies(request.user, request=request)
    return Response({'ok': True, 'data': {'anomalies': anomalies, 'count': len(anomalies)}})
