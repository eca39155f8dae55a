"""
Dealer management service.

Handles dealer creation, tenant resolution by slug and sales settings.
"""

import secrets
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import structlog
from django.db import transaction, IntegrityError
from django.utils.text import slugify

from apps.accounts.models import User
from apps.dealers.models import Dealer, DealerMembership, DealerRole

from .exceptions import (
    DealerNotFoundError,
    NotDealerMemberError,
    InsufficientPermissionsError,
)

logger = structlog.get_logger(__name__)

SALES_SETTINGS_FIELDS = (
    'company_name',
    'company_address',
    'company_phone',
    'company_email',
    'company_number',
    'vat_registered',
    'vat_number',
    'invoice_number_prefix',
    'deposit_receipt_prefix',
    'payment_receipt_prefix',
    'self_bill_prefix',
)


@dataclass(frozen=True)
class DealerContext:
    """The dealer a request acts for, and the caller's membership there."""

    dealer: Dealer
    membership: DealerMembership

    @property
    def dealer_id(self) -> UUID:
        return self.dealer.id

    @property
    def is_admin(self) -> bool:
        return self.membership.is_admin


def _candidate_slug(base: str, attempt: int) -> str:
    if attempt == 0:
        return base
    return f"{base}-{secrets.token_hex(2)}"


def create_dealer(
    *,
    name: str,
    owner: User,
    slug: Optional[str] = None,
    max_retries: int = 5
) -> Dealer:
    """
    Create a new dealership and make the creator its owner.

    The first attempt uses the slugified name (or the explicit slug); later
    attempts append a short random suffix when the slug is already taken.

    Args:
        name: Trading name of the dealership
        owner: User who becomes the OWNER member
        slug: Optional explicit slug
        max_retries: Maximum attempts to find a free slug

    Returns:
        Created Dealer instance

    Raises:
        RuntimeError: If no unique slug is found after retries
    """
    base = slugify(slug or name)[:70] or 'dealer'

    # Retry logic outside transaction to handle slug collisions
    for attempt in range(max_retries):
        candidate = _candidate_slug(base, attempt)

        try:
            with transaction.atomic():
                dealer = Dealer.objects.create(name=name, slug=candidate)
                DealerMembership.objects.create(
                    user=owner,
                    dealer=dealer,
                    role=DealerRole.OWNER
                )
        except IntegrityError:
            logger.info("dealer_slug_taken", slug=candidate, attempt=attempt + 1)
            continue

        logger.info("dealer_created", dealer_id=str(dealer.id), slug=dealer.slug)
        return dealer

    raise RuntimeError(
        f"Failed to generate unique dealer slug after {max_retries} attempts"
    )


def get_dealer_by_slug(*, slug: str) -> Dealer:
    """
    Get a dealer by its URL slug.

    Raises:
        DealerNotFoundError: If no dealer has this slug
    """
    try:
        return Dealer.objects.get(slug=slug)
    except Dealer.DoesNotExist:
        raise DealerNotFoundError(f"Dealer '{slug}' not found")


def resolve_dealer_context(*, slug: Optional[str], user: User) -> DealerContext:
    """
    Resolve the tenant for a request.

    Args:
        slug: Value of the X-Dealer-Slug header
        user: Authenticated user making the request

    Returns:
        DealerContext with the dealer and the user's active membership

    Raises:
        DealerNotFoundError: If the slug is missing or unknown
        NotDealerMemberError: If the user has no active membership there
    """
    if not slug:
        raise DealerNotFoundError("No dealer selected")

    dealer = get_dealer_by_slug(slug=slug)
    membership = (
        DealerMembership.objects
        .select_related('dealer')
        .filter(dealer=dealer, user=user, removed_at__isnull=True)
        .first()
    )
    if membership is None:
        raise NotDealerMemberError(f"You are not a member of {dealer.name}")

    return DealerContext(dealer=dealer, membership=membership)


@transaction.atomic
def update_sales_settings(*, dealer_id: UUID, user: User, **fields) -> Dealer:
    """
    Update company details and document prefixes (admin only).

    Prefix changes only affect sequences created afterwards; an existing
    DocumentCounter keeps the prefix it was created with.

    Raises:
        DealerNotFoundError: If dealer doesn't exist
        InsufficientPermissionsError: If user is not owner/admin
    """
    try:
        dealer = Dealer.objects.select_for_update().get(id=dealer_id)
    except Dealer.DoesNotExist:
        raise DealerNotFoundError(f"Dealer with ID {dealer_id} not found")

    if not dealer.is_admin(user):
        raise InsufficientPermissionsError("Only dealer admins can change sales settings")

    update_fields = ['updated_at']
    for field, value in fields.items():
        if field not in SALES_SETTINGS_FIELDS:
            raise ValueError(f"Unknown sales setting: {field}")
        setattr(dealer, field, value)
        update_fields.append(field)

    dealer.save(update_fields=update_fields)

    return dealer
