import pytest
from django.urls import reverse
from rest_framework.test import APITestCase

from clinic.models import MedicalRecord, RecordAccess, User

from .conftest import book, client_for, make_user, tomorrow_at

pytestmark = pytest.mark.django_db


def _record_body(patient, **extra):
    body = {
        'patient': patient.id,
        'chiefComplaint': 'Persistent cough',
        'treatment': 'Rest and fluids',
        'vitalSigns': {'height': 180, 'weight': 81, 'bloodPressure': {'systolic': 120, 'diastolic': 80}},
        'diagnosis': [{'code': 'J20', 'description': 'Acute bronchitis', 'isPrimary': True}],
    }
    body.update(extra)
    return body


def _record(doctor, patient, **extra):
    return MedicalRecord.objects.create(patient=patient, doctor=doctor, chief_complaint='Headache',
                                        treatment='Hydration', **extra)


def test_doctor_creates_record_with_bmi(doctor, patient):
    r = client_for(doctor).post(reverse('ehr'), _record_body(patient), format='json')
    assert r.status_code == 201
    ehr = r.data['data']['ehr']
    assert ehr['bmi'] == 25.0
    assert ehr['doctor']['id'] == doctor.id
    assert ehr['prescriptions'] == [] and ehr['labTests'] == []
    assert RecordAccess.objects.filter(record_id=ehr['id'], action='create').exists()


def test_only_doctors_create_records(admin, patient):
    r = client_for(admin).post(reverse('ehr'), _record_body(patient), format='json')
    assert r.status_code == 403
    assert r.data['detail'] == 'Only doctors can create medical records'


def test_record_appointment_must_match_patient(doctor, patient, other_patient):
    a = book(other_patient, doctor, tomorrow_at(9))
    r = client_for(doctor).post(reverse('ehr'), _record_body(patient, appointment=a.id), format='json')
    assert r.status_code == 400


def test_record_for_unknown_patient(doctor, other_doctor):
    r = client_for(doctor).post(reverse('ehr'), _record_body(other_doctor), format='json')
    assert r.status_code == 404


def test_viewing_a_record_is_logged(doctor, patient):
    rec = _record(doctor, patient)
    r = client_for(patient).get(reverse('ehr-detail', args=[rec.id]))
    assert r.status_code == 200
    assert RecordAccess.objects.filter(record=rec, user=patient, action='view').count() == 1


def test_record_access_is_scoped(doctor, other_doctor, patient, other_patient):
    rec = _record(doctor, patient)
    url = reverse('ehr-detail', args=[rec.id])
    assert client_for(other_patient).get(url).status_code == 403
    assert client_for(other_doctor).get(url).status_code == 403
    assert client_for(doctor).get(reverse('ehr-detail', args=[rec.id + 100])).status_code == 404


def test_only_author_updates(doctor, other_doctor, admin, patient):
    rec = _record(doctor, patient)
    url = reverse('ehr-detail', args=[rec.id])
    assert client_for(admin).patch(url, {'notes': 'x'}, format='json').status_code == 403
    assert client_for(other_doctor).patch(url, {'notes': 'x'}, format='json').status_code == 403
    r = client_for(doctor).patch(url, {'notes': 'Improving', 'vitalSigns': {'height': 160, 'weight': 64}},
                                 format='json')
    assert r.status_code == 200
    assert r.data['data']['ehr']['notes'] == 'Improving'
    assert r.data['data']['ehr']['bmi'] == 25.0


def test_patient_cannot_be_reassigned(doctor, patient, other_patient):
    rec = _record(doctor, patient)
    r = client_for(doctor).patch(reverse('ehr-detail', args=[rec.id]), {'patient': other_patient.id},
                                 format='json')
    assert r.status_code == 400


def test_prescription_and_lab_workflow(doctor, patient):
    rec = _record(doctor, patient)
    client = client_for(doctor)

    r = client.post(reverse('ehr-prescription', args=[rec.id]), {
        'medication': {'name': 'Amoxicillin', 'dosage': '500mg', 'frequency': 'TID'}, 'refills': 1,
    }, format='json')
    assert r.status_code == 201
    assert r.data['data']['prescription']['medication']['name'] == 'Amoxicillin'

    r = client.post(reverse('ehr-lab-test', args=[rec.id]), {'name': 'CBC'}, format='json')
    assert r.status_code == 201
    test_id = r.data['data']['labTest']['id']
    assert r.data['data']['labTest']['isCompleted'] is False

    r = client.patch(reverse('ehr-lab-results', args=[rec.id, test_id]),
                     {'value': '13.5', 'unit': 'g/dL', 'isAbnormal': False}, format='json')
    assert r.status_code == 200
    lab = r.data['data']['labTest']
    assert lab['isCompleted'] is True
    assert lab['results']['value'] == '13.5'

    missing = client.patch(reverse('ehr-lab-results', args=[rec.id, test_id + 50]), {'value': '1'}, format='json')
    assert missing.status_code == 404

    detail = client.get(reverse('ehr-detail', args=[rec.id])).data['data']['ehr']
    assert len(detail['prescriptions']) == 1
    assert len(detail['labTests']) == 1


def test_patient_cannot_prescribe(doctor, patient):
    rec = _record(doctor, patient)
    r = client_for(patient).post(reverse('ehr-prescription', args=[rec.id]), {
        'medication': {'name': 'Aspirin', 'dosage': '81mg', 'frequency': 'QD'},
    }, format='json')
    assert r.status_code == 403


def test_record_listing(doctor, other_doctor, patient, other_patient):
    _record(doctor, patient)
    _record(doctor, other_patient)
    _record(other_doctor, patient)

    assert client_for(doctor).get(reverse('ehr')).data['total'] == 2
    mine = client_for(patient).get(reverse('ehr'))
    assert mine.data['total'] == 2
    assert len(mine.data['data']['ehrs']) == 2

    r = client_for(patient).get(reverse('ehr'), {'patientId': other_patient.id})
    assert r.status_code == 403


def test_records_for_patient(doctor, other_doctor, patient, other_patient):
    _record(doctor, patient)
    assert client_for(doctor).get(reverse('ehr-patient', args=[patient.id])).data['total'] == 1
    assert client_for(other_doctor).get(reverse('ehr-patient', args=[patient.id])).status_code == 403
    assert client_for(other_patient).get(reverse('ehr-patient', args=[patient.id])).status_code == 403
    assert client_for(doctor).get(reverse('ehr-patient', args=[doctor.id])).status_code == 404


class PatientRosterTests(APITestCase):
    def setUp(self):
        self.admin = make_user('boss@example.com', role='admin')
        self.doctor = make_user('house@example.com', role='doctor', first_name='Greg', last_name='House')
        self.mine = make_user('mine@example.com', first_name='Amy', last_name='Able')
        self.charted = make_user('charted@example.com', first_name='Bo', last_name='Baker')
        self.stranger = make_user('stranger@example.com', first_name='Cy', last_name='Cole')
        book(self.mine, self.doctor, tomorrow_at(9))
        book(self.mine, self.doctor, tomorrow_at(10))
        _record(self.doctor, self.charted)

    def test_doctor_sees_booked_and_charted_patients(self):
        r = client_for(self.doctor).get(reverse('patients'))
        self.assertEqual(r.status_code, 200)
        rows = r.data['data']['patients']
        self.assertEqual([p['email'] for p in rows], ['mine@example.com', 'charted@example.com'])
        self.assertEqual(rows[0]['appointmentCount'], 2)
        self.assertEqual(rows[1]['recordCount'], 1)

    def test_admin_sees_everyone_and_can_search(self):
        client = client_for(self.admin)
        self.assertEqual(client.get(reverse('patients')).data['total'], 3)
        r = client.get(reverse('patients'), {'q': 'cole'})
        self.assertEqual(r.data['total'], 1)

    def test_patients_cannot_list_roster(self):
        r = client_for(self.mine).get(reverse('patients'))
        self.assertEqual(r.status_code, 403)

    def test_staff_registers_patient(self):
        r = client_for(self.doctor).post(reverse('patients'), {
            'firstName': 'New', 'lastName': 'Comer', 'email': 'New@Example.com',
        }, format='json')
        self.assertEqual(r.status_code, 201)
        self.assertEqual(r.data['data']['patient']['role'], 'patient')
        created = User.objects.get(email='new@example.com')
        self.assertTrue(created.has_usable_password())

        dup = client_for(self.doctor).post(reverse('patients'), {
            'firstName': 'New', 'lastName': 'Comer', 'email': 'new@example.com',
        }, format='json')
        self.assertEqual(dup.status_code, 400)

    def test_patient_detail_scoping(self):
        self.assertEqual(client_for(self.doctor).get(reverse('patient-detail', args=[self.mine.id])).status_code, 200)
        self.assertEqual(
            client_for(self.doctor).get(reverse('patient-detail', args=[self.stranger.id])).status_code, 403)
        self.assertEqual(client_for(self.mine).get(reverse('patient-detail', args=[self.mine.id])).status_code, 200)
        self.assertEqual(
            client_for(self.mine).get(reverse('patient-detail', args=[self.charted.id])).status_code, 403)
        self.assertEqual(client_for(self.admin).get(reverse('patient-detail', args=[9999])).status_code, 404)

    def test_patient_record_list(self):
        r = client_for(self.doctor).get(reverse('patient-records', args=[self.charted.id]))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['results'], 1)
        self.assertEqual(r.data['data']['records'][0]['chiefComplaint'], 'Headache')
