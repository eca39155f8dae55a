# ==========================================
# apps/dealers/models.py
# ==========================================

from django.db import models
import uuid


class DealerRole(models.TextChoices):
    OWNER = 'OWNER', 'Owner'
    ADMIN = 'ADMIN', 'Admin'
    STAFF = 'STAFF', 'Staff'
    WORKSHOP = 'WORKSHOP', 'Workshop'


ADMIN_ROLES = (DealerRole.OWNER, DealerRole.ADMIN)


class Dealer(models.Model):
    """A dealership account. Every tenant-scoped record points at one."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=80, unique=True)

    # Company details printed on documents
    company_name = models.CharField(max_length=200, blank=True)
    company_address = models.TextField(blank=True)
    company_phone = models.CharField(max_length=40, blank=True)
    company_email = models.EmailField(blank=True)
    company_number = models.CharField(max_length=20, blank=True)
    vat_registered = models.BooleanField(default=True)
    vat_number = models.CharField(max_length=20, blank=True)

    # Sales settings: default prefixes for new numbering sequences
    invoice_number_prefix = models.CharField(max_length=10, default='INV', blank=True)
    deposit_receipt_prefix = models.CharField(max_length=10, default='DEP', blank=True)
    payment_receipt_prefix = models.CharField(max_length=10, default='PAY', blank=True)
    self_bill_prefix = models.CharField(max_length=10, default='SB', blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'dealers'
        ordering = ['name']

    def __str__(self):
        return self.name

    def get_document_prefix(self, document_type):
        """Default prefix for a sales document type (see apps.sales.models.DocumentType)."""
        prefixes = {
            'INVOICE': self.invoice_number_prefix,
            'DEPOSIT_RECEIPT': self.deposit_receipt_prefix,
            'PAYMENT_RECEIPT': self.payment_receipt_prefix,
            'SELF_BILL_INVOICE': self.self_bill_prefix,
        }
        return prefixes.get(document_type, '')

    def get_membership(self, user):
        return self.memberships.filter(user=user, removed_at__isnull=True).first()

    def has_member(self, user):
        return self.memberships.filter(user=user, removed_at__isnull=True).exists()

    def is_admin(self, user):
        membership = self.get_membership(user)
        return membership is not None and membership.role in ADMIN_ROLES


class DealerMembership(models.Model):
    """A user's role at a dealership. Removal is a soft delete."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='dealer_memberships')
    dealer = models.ForeignKey(Dealer, on_delete=models.CASCADE, related_name='memberships')
    role = models.CharField(max_length=20, choices=DealerRole.choices, default=DealerRole.STAFF)
    last_active_at = models.DateTimeField(auto_now_add=True)
    removed_at = models.DateTimeField(null=True, blank=True)
    removed_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'dealer_memberships'
        unique_together = [['user', 'dealer']]
        indexes = [
            models.Index(fields=['dealer', 'role'], name='dealer_memb_role_idx'),
            models.Index(fields=['user', 'removed_at'], name='dealer_memb_active_idx'),
        ]
        ordering = ['created_at']

    def __str__(self):
        return f"{self.user.get_display_name()} at {self.dealer.name} ({self.role})"

    @property
    def is_active(self):
        return self.removed_at is None

    @property
    def is_admin(self):
        return self.role in ADMIN_ROLES
