import pytest
from decimal import Decimal
from django.utils import timezone

from apps.sales.models import Deal, DocumentStatus, SalesDocument


@pytest.fixture
def make_document(db):
    """Factory for existing (e.g. imported legacy) sales documents."""

    def _make(dealer, document_type, document_number, status=DocumentStatus.ISSUED, deal=None):
        return SalesDocument.objects.create(
            dealer=dealer,
            deal=deal,
            document_type=document_type,
            document_number=document_number,
            status=status,
            issued_at=timezone.now(),
        )

    return _make


@pytest.fixture
def deal(dealer, staff_user):
    """A priced draft deal with a customer."""
    return Deal.objects.create(
        dealer=dealer,
        customer_name='Jane Buyer',
        customer_email='jane@example.com',
        vehicle_vrm='AB12CDE',
        vehicle_description='2018 Ford Focus 1.0 EcoBoost',
        vehicle_price_gross=Decimal('10000.00'),
        delivery_amount=Decimal('0.00'),
        created_by=staff_user,
    )


@pytest.fixture
def empty_deal(dealer, staff_user):
    """A draft deal with no customer or price yet."""
    return Deal.objects.create(dealer=dealer, created_by=staff_user)
