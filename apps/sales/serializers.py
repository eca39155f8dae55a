from decimal import Decimal

from rest_framework import serializers

from .models import (
    Deal,
    DealPayment,
    DealStatus,
    DocumentCounter,
    DocumentStatus,
    DocumentType,
    PaymentMethod,
    SalesDocument,
)


class DealPaymentSerializer(serializers.ModelSerializer):
    """Serializer for deal payments (read only)."""

    class Meta:
        model = DealPayment
        fields = [
            'id',
            'payment_type',
            'amount',
            'method',
            'reference',
            'notes',
            'paid_at',
            'is_refunded',
        ]
        read_only_fields = fields


class SalesDocumentListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    class Meta:
        model = SalesDocument
        fields = [
            'id',
            'deal',
            'document_type',
            'document_number',
            'status',
            'issued_at',
            'paid_at',
            'voided_at',
        ]
        read_only_fields = fields


class SalesDocumentSerializer(serializers.ModelSerializer):
    """Full document for authenticated dealer staff."""

    class Meta:
        model = SalesDocument
        fields = [
            'id',
            'deal',
            'document_type',
            'document_number',
            'status',
            'issued_at',
            'paid_at',
            'voided_at',
            'void_reason',
            'snapshot_data',
            'share_expires_at',
            'created_by',
            'created_at',
        ]
        read_only_fields = fields


class PublicDocumentSerializer(serializers.ModelSerializer):
    """What a customer sees through a share link."""

    class Meta:
        model = SalesDocument
        fields = [
            'document_type',
            'document_number',
            'status',
            'issued_at',
            'paid_at',
            'snapshot_data',
        ]
        read_only_fields = fields


class DealSerializer(serializers.ModelSerializer):
    """Main serializer for deals, including derived totals."""

    grand_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    total_paid = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    part_exchange_net = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    balance_due = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    payments = DealPaymentSerializer(many=True, read_only=True)
    documents = SalesDocumentListSerializer(many=True, read_only=True)

    class Meta:
        model = Deal
        fields = [
            'id',
            'customer_name',
            'customer_email',
            'customer_phone',
            'customer_address',
            'vehicle_vrm',
            'vehicle_description',
            'vehicle_price_gross',
            'delivery_amount',
            'part_exchange_allowance',
            'part_exchange_settlement',
            'sale_channel',
            'status',
            'deposit_taken_at',
            'invoiced_at',
            'delivered_at',
            'completed_at',
            'completion_notes',
            'cancelled_at',
            'cancellation_reason',
            'grand_total',
            'total_paid',
            'part_exchange_net',
            'balance_due',
            'payments',
            'documents',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'id',
            'status',
            'deposit_taken_at',
            'invoiced_at',
            'delivered_at',
            'completed_at',
            'completion_notes',
            'cancelled_at',
            'cancellation_reason',
            'created_at',
            'updated_at',
        ]

    def validate_vehicle_vrm(self, value):
        return ''.join(value.split()).upper()


class DealListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    class Meta:
        model = Deal
        fields = [
            'id',
            'customer_name',
            'vehicle_vrm',
            'vehicle_description',
            'vehicle_price_gross',
            'status',
            'created_at',
        ]
        read_only_fields = fields


class DealFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for deal filtering.

    Query Parameters:
        status (str): Filter by deal status
        vrm (str): Filter by vehicle registration
    """

    status = serializers.ChoiceField(choices=DealStatus.choices, required=False)
    vrm = serializers.CharField(required=False)


class DocumentFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for document filtering.

    Query Parameters:
        document_type (str): Filter by document type
        status (str): Filter by document status
        deal (UUID): Filter by deal
    """

    document_type = serializers.ChoiceField(choices=DocumentType.choices, required=False)
    status = serializers.ChoiceField(choices=DocumentStatus.choices, required=False)
    deal = serializers.UUIDField(required=False)


class PaymentInputSerializer(serializers.Serializer):
    """Validate input for deposits and balance payments."""

    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    method = serializers.ChoiceField(choices=PaymentMethod.choices)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class BalancePaymentInputSerializer(PaymentInputSerializer):
    generate_receipt = serializers.BooleanField(required=False, default=True)


class VoidInvoiceInputSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class MarkCompletedInputSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class CancelDealInputSerializer(serializers.Serializer):
    """A reason is required by the service when the deal is already completed."""
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')


class DealFlowResponseSerializer(serializers.Serializer):
    """Response for lifecycle actions. share_url is only ever returned here."""

    deal_id = serializers.UUIDField(source='deal.id')
    deal_status = serializers.CharField(source='deal.status')
    document = SalesDocumentListSerializer(allow_null=True)
    share_url = serializers.CharField(allow_null=True)
    payment = DealPaymentSerializer(allow_null=True)
    balance_before = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)
    balance_after = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)
    is_full_payment = serializers.BooleanField()


class DocumentCounterSerializer(serializers.ModelSerializer):
    """Serializer for numbering sequences (read only)."""

    class Meta:
        model = DocumentCounter
        fields = ['id', 'document_type', 'next_number', 'prefix', 'created_at', 'updated_at']
        read_only_fields = fields


class InitializeCounterSerializer(serializers.Serializer):
    """Validate input for seeding a counter."""

    document_type = serializers.ChoiceField(choices=DocumentType.choices)
    start_number = serializers.IntegerField(min_value=1, required=False)
    prefix = serializers.CharField(max_length=10, required=False, allow_blank=True)
