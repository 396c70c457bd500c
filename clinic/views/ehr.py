from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Appointment, LabTest, MedicalRecord
from clinic.serializers.ehr import (
    LabResultSerializer,
    LabTestSerializer,
    PrescriptionSerializer,
    RecordCreateSerializer,
    RecordListQuerySerializer,
    RecordUpdateSerializer,
)
from clinic.serializers.users import PatientCreateSerializer, UserListQuerySerializer
from clinic.services.ehr import (
    add_lab_test,
    add_prescription,
    create_record,
    get_patient,
    get_record,
    list_patients,
    list_records,
    patient_records,
    record_lab_results,
    roster_records,
    serialize_lab_test,
    serialize_patient,
    serialize_prescription,
    serialize_record,
    update_record,
)
from clinic.services.users import create_patient
from clinic.views.common import paginated

User = get_user_model()

NOT_FOUND = 'No EHR found with that ID'


def _record_or_response(request, pk):
    try:
        return get_record(request.user, pk, request=request), None
    except MedicalRecord.DoesNotExist:
        return None, Response({'ok': False, 'detail': NOT_FOUND}, status=404)
    except PermissionError as e:
        return None, Response({'ok': False, 'detail': str(e)}, status=403)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def records(request):
    if request.method == 'POST':
        s = RecordCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        try:
            r = create_record(request.user, s.validated_data, request=request)
        except PermissionError as e:
            return Response({'ok': False, 'detail': str(e)}, status=403)
        except (User.DoesNotExist, Appointment.DoesNotExist) as e:
            return Response({'ok': False, 'detail': str(e)}, status=404)
        except ValueError as e:
            return Response({'ok': False, 'detail': str(e)}, status=400)
        return Response({'ok': True, 'data': {'ehr': serialize_record(r, detail=True)}}, status=status.HTTP_201_CREATED)

    q = RecordListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, limit = q.validated_data.get('page', 1), q.validated_data.get('limit', 10)
    try:
        data, total = list_records(request.user, patient_id=q.validated_data.get('patientId'), page=page, limit=limit)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    return Response(paginated('ehrs', data, total, page, limit))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def records_for_patient(request, patient_id: int):
    q = RecordListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, limit = q.validated_data.get('page', 1), q.validated_data.get('limit', 10)
    try:
        data, total = patient_records(request.user, patient_id, page=page, limit=limit, request=request)
    except User.DoesNotExist as e:
        return Response({'ok': False, 'detail': str(e)}, status=404)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    return Response(paginated('ehrs', data, total, page, limit))


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def record_detail(request, pk: int):
    r, err = _record_or_response(request, pk)
    if err:
        return err
    if request.method == 'GET':
        return Response({'ok': True, 'data': {'ehr': serialize_record(r, detail=True)}})

    s = RecordUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    try:
        r = update_record(request.user, r, s.validated_data, request=request)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    return Response({'ok': True, 'data': {'ehr': serialize_record(r, detail=True)}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def record_prescription(request, pk: int):
    s = PrescriptionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    r, err = _record_or_response(request, pk)
    if err:
        return err
    try:
        p = add_prescription(request.user, r, s.validated_data, request=request)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    return Response({'ok': True, 'data': {'prescription': serialize_prescription(p)}}, status=201)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def record_lab_test(request, pk: int):
    s = LabTestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    r, err = _record_or_response(request, pk)
    if err:
        return err
    try:
        t = add_lab_test(request.user, r, s.validated_data, request=request)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    return Response({'ok': True, 'data': {'labTest': serialize_lab_test(t)}}, status=201)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def lab_test_results(request, pk: int, test_id: int):
    s = LabResultSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    r, err = _record_or_response(request, pk)
    if err:
        return err
    try:
        t = record_lab_results(request.user, r, test_id, s.validated_data, request=request)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    except LabTest.DoesNotExist as e:
        return Response({'ok': False, 'detail': str(e)}, status=404)
    return Response({'ok': True, 'data': {'labTest': serialize_lab_test(t)}})


# ---------------------------------------------------------------------
# Patient roster
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def patients(request):
    if request.method == 'POST':
        s = PatientCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        try:
            p = create_patient(request.user, s.validated_data)
        except PermissionError as e:
            return Response({'ok': False, 'detail': str(e)}, status=403)
        except ValueError as e:
            return Response({'ok': False, 'detail': str(e)}, status=400)
        return Response({'ok': True, 'data': {'patient': serialize_patient(p)}}, status=201)

    q = UserListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, limit = q.validated_data.get('page', 1), q.validated_data.get('limit', 20)
    try:
        data, total = list_patients(request.user, q=q.validated_data.get('q'), page=page, limit=limit)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    return Response(paginated('patients', data, total, page, limit))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_detail(request, pk: int):
    try:
        p = get_patient(request.user, pk)
    except User.DoesNotExist as e:
        return Response({'ok': False, 'detail': str(e)}, status=404)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    return Response({'ok': True, 'data': {'patient': serialize_patient(p)}})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_record_list(request, pk: int):
    try:
        data = roster_records(request.user, pk)
    except User.DoesNotExist as e:
        return Response({'ok': False, 'detail': str(e)}, status=404)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    return Response({'ok': True, 'results': len(data), 'data': {'records': data}})
