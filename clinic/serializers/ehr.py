from rest_framework import serializers


class BloodPressureSerializer(serializers.Serializer):
    systolic = serializers.IntegerField(min_value=0, max_value=300)
    diastolic = serializers.IntegerField(min_value=0, max_value=200)


class VitalSignsSerializer(serializers.Serializer):
    temperature = serializers.FloatField(required=False)
    bloodPressure = BloodPressureSerializer(required=False)
    heartRate = serializers.IntegerField(min_value=0, required=False)
    respiratoryRate = serializers.IntegerField(min_value=0, required=False)
    oxygenSaturation = serializers.FloatField(min_value=0, max_value=100, required=False)
    height = serializers.FloatField(min_value=0, required=False)
    weight = serializers.FloatField(min_value=0, required=False)


class DiagnosisSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=32, required=False, allow_blank=True)
    description = serializers.CharField()
    isPrimary = serializers.BooleanField(required=False, default=False)


class RecordCreateSerializer(serializers.Serializer):
    patient = serializers.IntegerField(min_value=1)
    appointment = serializers.IntegerField(min_value=1, required=False)
    visitDate = serializers.DateTimeField(required=False)
    chiefComplaint = serializers.CharField()
    vitalSigns = VitalSignsSerializer(required=False)
    diagnosis = DiagnosisSerializer(many=True, required=False)
    treatment = serializers.CharField()
    notes = serializers.CharField(required=False, allow_blank=True)
    followUp = serializers.DictField(required=False)
    imaging = serializers.ListField(child=serializers.DictField(), required=False)
    attachments = serializers.ListField(child=serializers.DictField(), required=False)


class RecordUpdateSerializer(serializers.Serializer):
    chiefComplaint = serializers.CharField(required=False)
    vitalSigns = VitalSignsSerializer(required=False)
    diagnosis = DiagnosisSerializer(many=True, required=False)
    treatment = serializers.CharField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    followUp = serializers.DictField(required=False)
    imaging = serializers.ListField(child=serializers.DictField(), required=False)
    attachments = serializers.ListField(child=serializers.DictField(), required=False)
    patient = serializers.IntegerField(required=False)


class RecordListQuerySerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False)


class MedicationSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    dosage = serializers.CharField(max_length=128)
    frequency = serializers.CharField(max_length=128)
    duration = serializers.CharField(max_length=128, required=False, allow_blank=True)


class PrescriptionSerializer(serializers.Serializer):
    medication = MedicationSerializer()
    instructions = serializers.CharField(required=False, allow_blank=True)
    dispenseAmount = serializers.CharField(max_length=64, required=False, allow_blank=True)
    refills = serializers.IntegerField(min_value=0, required=False, default=0)
    startDate = serializers.DateField(required=False)
    endDate = serializers.DateField(required=False)


class LabTestSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    code = serializers.CharField(max_length=64, required=False, allow_blank=True)
    instructions = serializers.CharField(required=False, allow_blank=True)


class LabResultSerializer(serializers.Serializer):
    value = serializers.CharField(max_length=255)
    unit = serializers.CharField(max_length=64, required=False, allow_blank=True)
    normalRange = serializers.CharField(max_length=128, required=False, allow_blank=True)
    isAbnormal = serializers.BooleanField(required=False, default=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    documentUrl = serializers.CharField(max_length=512, required=False, allow_blank=True)
