# ==========================================
# apps/sales/models.py
# ==========================================

from django.db import models
from django.db.models import Q, Sum
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


class DocumentType(models.TextChoices):
    INVOICE = 'INVOICE', 'Invoice'
    DEPOSIT_RECEIPT = 'DEPOSIT_RECEIPT', 'Deposit Receipt'
    PAYMENT_RECEIPT = 'PAYMENT_RECEIPT', 'Payment Receipt'
    SELF_BILL_INVOICE = 'SELF_BILL_INVOICE', 'Self-Bill Invoice'


class DocumentStatus(models.TextChoices):
    DRAFT = 'DRAFT', 'Draft'
    ISSUED = 'ISSUED', 'Issued'
    VOID = 'VOID', 'Void'


class DealStatus(models.TextChoices):
    DRAFT = 'DRAFT', 'Draft'
    DEPOSIT_TAKEN = 'DEPOSIT_TAKEN', 'Deposit Taken'
    INVOICED = 'INVOICED', 'Invoiced'
    DELIVERED = 'DELIVERED', 'Delivered'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'


class SaleChannel(models.TextChoices):
    IN_PERSON = 'IN_PERSON', 'In Person'
    DISTANCE = 'DISTANCE', 'Distance'


class PaymentType(models.TextChoices):
    DEPOSIT = 'DEPOSIT', 'Deposit'
    BALANCE = 'BALANCE', 'Balance'
    FINANCE_ADVANCE = 'FINANCE_ADVANCE', 'Finance Advance'
    OTHER = 'OTHER', 'Other'


class PaymentMethod(models.TextChoices):
    CASH = 'CASH', 'Cash'
    CARD = 'CARD', 'Card'
    BANK_TRANSFER = 'BANK_TRANSFER', 'Bank Transfer'
    FINANCE = 'FINANCE', 'Finance'
    OTHER = 'OTHER', 'Other'


class DocumentCounter(models.Model):
    """
    Per-dealer, per-document-type numbering sequence.

    next_number is the value the next allocation will hand out. Rows are
    created on first use and only ever incremented.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    dealer = models.ForeignKey(
        'dealers.Dealer',
        on_delete=models.CASCADE,
        related_name='document_counters'
    )
    document_type = models.CharField(max_length=20, choices=DocumentType.choices)
    next_number = models.PositiveIntegerField(default=1)
    prefix = models.CharField(max_length=10, blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'document_counters'
        constraints = [
            models.UniqueConstraint(
                fields=['dealer', 'document_type'],
                name='unique_counter_per_dealer_type'
            ),
        ]
        ordering = ['dealer', 'document_type']

    def __str__(self):
        return f"{self.dealer_id} {self.document_type} -> {self.next_number}"


class Deal(models.Model):
    """A vehicle sale in progress, from first deposit to completion."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    dealer = models.ForeignKey('dealers.Dealer', on_delete=models.CASCADE, related_name='deals')

    # Customer
    customer_name = models.CharField(max_length=200, blank=True)
    customer_email = models.EmailField(blank=True)
    customer_phone = models.CharField(max_length=40, blank=True)
    customer_address = models.TextField(blank=True)

    # Vehicle
    vehicle_vrm = models.CharField(max_length=10, blank=True)
    vehicle_description = models.CharField(max_length=200, blank=True)

    # Pricing (gross, GBP)
    vehicle_price_gross = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    delivery_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    part_exchange_allowance = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    part_exchange_settlement = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))

    sale_channel = models.CharField(
        max_length=20,
        choices=SaleChannel.choices,
        default=SaleChannel.IN_PERSON
    )
    status = models.CharField(max_length=20, choices=DealStatus.choices, default=DealStatus.DRAFT)

    deposit_taken_at = models.DateTimeField(null=True, blank=True)
    invoiced_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    completion_notes = models.TextField(blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)

    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        related_name='deals_created'
    )
    updated_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'deals'
        indexes = [
            models.Index(fields=['dealer', 'status'], name='deals_dealer_status_idx'),
            models.Index(fields=['dealer', 'created_at'], name='deals_dealer_created_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        vehicle = self.vehicle_vrm or 'No vehicle'
        return f"{vehicle} - {self.customer_name or 'No customer'} ({self.status})"

    @property
    def has_customer(self):
        return bool(self.customer_name.strip())

    @property
    def grand_total(self):
        return (self.vehicle_price_gross or Decimal('0.00')) + self.delivery_amount

    @property
    def total_paid(self):
        """Sum of non-refunded payments."""
        return self.payments.filter(is_refunded=False).aggregate(
            total=Sum('amount')
        )['total'] or Decimal('0.00')

    @property
    def part_exchange_net(self):
        return self.part_exchange_allowance - self.part_exchange_settlement

    @property
    def balance_due(self):
        return self.grand_total - self.total_paid - self.part_exchange_net


class DealPayment(models.Model):
    """A payment received against a deal."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    deal = models.ForeignKey(Deal, on_delete=models.CASCADE, related_name='payments')
    payment_type = models.CharField(max_length=20, choices=PaymentType.choices)
    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    reference = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    paid_at = models.DateTimeField()
    is_refunded = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'deal_payments'
        ordering = ['paid_at']

    def __str__(self):
        return f"{self.payment_type} {self.amount} ({self.method})"


class SalesDocument(models.Model):
    """
    An issued sales document carrying an allocated document number.

    snapshot_data freezes the deal, customer and dealer details at the
    moment of issue so later edits do not change what the customer saw.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    dealer = models.ForeignKey('dealers.Dealer', on_delete=models.CASCADE, related_name='sales_documents')
    deal = models.ForeignKey(
        Deal,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='documents'
    )

    document_type = models.CharField(max_length=20, choices=DocumentType.choices)
    document_number = models.CharField(max_length=30)
    status = models.CharField(max_length=10, choices=DocumentStatus.choices, default=DocumentStatus.DRAFT)

    issued_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)
    void_reason = models.TextField(blank=True)
    voided_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    snapshot_data = models.JSONField(default=dict, blank=True)

    # Public share link: only the SHA-256 digest of the token is stored
    share_token_hash = models.CharField(max_length=64, blank=True, db_index=True)
    share_expires_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        related_name='sales_documents_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'sales_documents'
        constraints = [
            models.UniqueConstraint(
                fields=['dealer', 'document_type', 'document_number'],
                condition=~Q(status=DocumentStatus.VOID),
                name='unique_live_document_number'
            ),
        ]
        indexes = [
            models.Index(fields=['dealer', 'document_type', 'status'], name='sales_docs_type_status_idx'),
            models.Index(fields=['deal', 'document_type'], name='sales_docs_deal_type_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.document_number} ({self.get_document_type_display()}, {self.status})"

    @property
    def is_void(self):
        return self.status == DocumentStatus.VOID
