import bleach
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers


def _clean(v):
    return bleach.clean((v or '').strip(), tags=set(), strip=True)


def _check_password(v):
    try:
        validate_password(v)
    except DjangoValidationError as e:
        raise serializers.ValidationError(e.messages)
    return v


class SignupSerializer(serializers.Serializer):
    firstName = serializers.CharField(max_length=150)
    lastName = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=8, write_only=True)
    confirmPassword = serializers.CharField(write_only=True)
    role = serializers.ChoiceField(choices=['patient', 'doctor', 'admin'], required=False, default='patient')
    phoneNumber = serializers.CharField(max_length=32, required=False, allow_blank=True)
    gender = serializers.ChoiceField(choices=['male', 'female', 'other'], required=False)
    dateOfBirth = serializers.DateField(required=False)
    specialization = serializers.CharField(max_length=128, required=False, allow_blank=True)
    licenseNumber = serializers.CharField(max_length=64, required=False, allow_blank=True)
    yearsOfExperience = serializers.IntegerField(min_value=0, required=False)

    def validate_firstName(self, v):
        return _clean(v)

    def validate_lastName(self, v):
        return _clean(v)

    def validate_email(self, v):
        return v.strip().lower()

    def validate_password(self, v):
        return _check_password(v)

    def validate_role(self, v):
        if v == 'admin':
            raise serializers.ValidationError('Admin accounts cannot be created through signup')
        return v

    def validate(self, attrs):
        if attrs['password'] != attrs['confirmPassword']:
            raise serializers.ValidationError({'confirmPassword': 'Passwords do not match'})
        if attrs.get('role') == 'doctor' and not (attrs.get('specialization') and attrs.get('licenseNumber')):
            raise serializers.ValidationError('Doctors must provide specialization and license number')
        return attrs


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()
    role = serializers.ChoiceField(choices=['patient', 'doctor', 'admin'], required=False)

    def validate_email(self, v):
        return (v or '').strip().lower()

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Please provide email and password')
        return v


class UpdatePasswordSerializer(serializers.Serializer):
    currentPassword = serializers.CharField()
    password = serializers.CharField(min_length=8)
    confirmPassword = serializers.CharField()

    def validate_password(self, v):
        return _check_password(v)

    def validate(self, attrs):
        if attrs['password'] != attrs['confirmPassword']:
            raise serializers.ValidationError({'confirmPassword': 'Passwords do not match'})
        return attrs


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()

    def validate_email(self, v):
        return v.strip().lower()


class ResetPasswordSerializer(serializers.Serializer):
    password = serializers.CharField(min_length=8)
    confirmPassword = serializers.CharField(required=False)

    def validate_password(self, v):
        return _check_password(v)

    def validate(self, attrs):
        confirm = attrs.get('confirmPassword')
        if confirm is not None and confirm != attrs['password']:
            raise serializers.ValidationError({'confirmPassword': 'Passwords do not match'})
        return attrs
