import bleach
from rest_framework import serializers

STATUSES = ['scheduled', 'confirmed', 'completed', 'cancelled', 'no-show']
TYPES = ['in-person', 'telehealth']


class AppointmentListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=STATUSES, required=False)
    type = serializers.ChoiceField(choices=TYPES, required=False)
    startDate = serializers.DateTimeField(required=False)
    endDate = serializers.DateTimeField(required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False)


class AppointmentCreateSerializer(serializers.Serializer):
    doctor = serializers.IntegerField(min_value=1)
    patient = serializers.IntegerField(min_value=1, required=False)
    startTime = serializers.DateTimeField()
    endTime = serializers.DateTimeField()
    type = serializers.ChoiceField(choices=TYPES, required=False, default='in-person')
    status = serializers.ChoiceField(choices=['scheduled', 'confirmed'], required=False, default='scheduled')
    reason = serializers.CharField(max_length=500)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_reason(self, v):
        v = bleach.clean((v or '').strip(), tags=set(), strip=True)
        if not v:
            raise serializers.ValidationError('Appointment must have a reason')
        return v

    def validate(self, attrs):
        if attrs['endTime'] <= attrs['startTime']:
            raise serializers.ValidationError({'endTime': 'End time must be after start time'})
        return attrs


class AppointmentUpdateSerializer(serializers.Serializer):
    startTime = serializers.DateTimeField(required=False)
    endTime = serializers.DateTimeField(required=False)
    type = serializers.ChoiceField(choices=TYPES, required=False)
    status = serializers.ChoiceField(choices=STATUSES, required=False)
    reason = serializers.CharField(max_length=500, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    followUp = serializers.BooleanField(required=False)
    # identity fields are accepted only so they can be refused explicitly
    patient = serializers.IntegerField(required=False)
    doctor = serializers.IntegerField(required=False)


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True)


class AvailabilityQuerySerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1)
    date = serializers.DateField()


class SuggestQuerySerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1)
    patientId = serializers.IntegerField(min_value=1, required=False)
