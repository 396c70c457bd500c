import bleach
from rest_framework import serializers

PASSWORD_FIELDS = ('password', 'confirmPassword', 'currentPassword')


class AddressSerializer(serializers.Serializer):
    street = serializers.CharField(required=False, allow_blank=True)
    city = serializers.CharField(required=False, allow_blank=True)
    state = serializers.CharField(required=False, allow_blank=True)
    zipCode = serializers.CharField(required=False, allow_blank=True)
    country = serializers.CharField(required=False, allow_blank=True)


class EmergencyContactSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True)
    relationship = serializers.CharField(required=False, allow_blank=True)
    phoneNumber = serializers.CharField(required=False, allow_blank=True)


class ProfileUpdateSerializer(serializers.Serializer):
    firstName = serializers.CharField(max_length=150, required=False)
    lastName = serializers.CharField(max_length=150, required=False)
    phoneNumber = serializers.CharField(max_length=32, required=False, allow_blank=True)
    address = AddressSerializer(required=False)
    gender = serializers.ChoiceField(choices=['male', 'female', 'other'], required=False)
    profilePicture = serializers.CharField(max_length=512, required=False)
    emergencyContact = EmergencyContactSerializer(required=False)

    def validate_firstName(self, v):
        return bleach.clean(v.strip(), tags=set(), strip=True)

    def validate_lastName(self, v):
        return bleach.clean(v.strip(), tags=set(), strip=True)

    def validate(self, attrs):
        if any(f in self.initial_data for f in PASSWORD_FIELDS):
            raise serializers.ValidationError('This route is not for password updates. Please use /api/auth/update-password.')
        return attrs


class AdminUserUpdateSerializer(ProfileUpdateSerializer):
    role = serializers.ChoiceField(choices=['patient', 'doctor', 'admin'], required=False)
    email = serializers.EmailField(required=False)
    specialization = serializers.CharField(max_length=128, required=False, allow_blank=True)
    licenseNumber = serializers.CharField(max_length=64, required=False, allow_blank=True)
    yearsOfExperience = serializers.IntegerField(min_value=0, required=False)
    active = serializers.BooleanField(required=False)


class UserListQuerySerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=['patient', 'doctor', 'admin'], required=False)
    q = serializers.CharField(max_length=64, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False)


class DoctorListQuerySerializer(serializers.Serializer):
    specialization = serializers.CharField(max_length=128, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False)


class PatientCreateSerializer(serializers.Serializer):
    firstName = serializers.CharField(max_length=150)
    lastName = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    phoneNumber = serializers.CharField(max_length=32, required=False, allow_blank=True)
    gender = serializers.ChoiceField(choices=['male', 'female', 'other'], required=False)
    dateOfBirth = serializers.DateField(required=False)
    medicalHistory = serializers.ListField(child=serializers.DictField(), required=False)
    emergencyContact = EmergencyContactSerializer(required=False)
    password = serializers.CharField(required=False, allow_blank=True, write_only=True)

    def validate_email(self, v):
        return v.strip().lower()


class DateRangeQuerySerializer(serializers.Serializer):
    startDate = serializers.DateTimeField(required=False)
    endDate = serializers.DateTimeField(required=False)
