from rest_framework import serializers

STATUSES = ['draft', 'pending', 'paid', 'overdue', 'cancelled', 'refunded']
METHODS = ['credit_card', 'debit_card', 'cash', 'insurance', 'bank_transfer', 'other']


class InvoiceItemSerializer(serializers.Serializer):
    service = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1, default=1)
    unitPrice = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, coerce_to_string=False)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, coerce_to_string=False)
    tax = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, coerce_to_string=False)


class InvoiceCreateSerializer(serializers.Serializer):
    patient = serializers.IntegerField(min_value=1)
    doctor = serializers.IntegerField(min_value=1, required=False)
    appointment = serializers.IntegerField(min_value=1, required=False)
    items = InvoiceItemSerializer(many=True, required=False)
    tax = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    dueDate = serializers.DateTimeField(required=False)
    status = serializers.ChoiceField(choices=['draft', 'pending'], required=False, default='pending')
    insurance = serializers.DictField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class InvoiceUpdateSerializer(serializers.Serializer):
    items = InvoiceItemSerializer(many=True, required=False)
    tax = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    dueDate = serializers.DateTimeField(required=False)
    status = serializers.ChoiceField(choices=STATUSES, required=False)
    insurance = serializers.DictField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class InvoiceListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=STATUSES, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False)


class PaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    paymentMethod = serializers.ChoiceField(choices=METHODS, required=False)
    paymentDetails = serializers.DictField(required=False)

    def validate(self, attrs):
        if not attrs.get('amount') or not attrs.get('paymentMethod'):
            raise serializers.ValidationError('Payment amount and method are required')
        return attrs
