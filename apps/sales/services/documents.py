"""
Sales document issuing, voiding and public share links.

Share tokens are returned to the caller exactly once. Only their SHA-256
digest is stored, so a database leak does not expose working links.
"""

import hashlib
import secrets
from datetime import timedelta
from typing import Optional, Tuple
from urllib.parse import urljoin

import structlog
from django.conf import settings
from django.urls import reverse
from django.utils import timezone

from apps.accounts.models import User
from apps.dealers.models import Dealer
from apps.sales.models import Deal, DocumentStatus, DocumentType, SalesDocument

from .exceptions import ShareLinkInvalidError
from .numbering import AllocatedNumber

logger = structlog.get_logger(__name__)

SHARE_TOKEN_BYTES = 32


def hash_share_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def share_link_lifetime(document_type: str) -> timedelta:
    """Deposit receipts expire soonest, self-bill invoices last a year by default."""
    if document_type == DocumentType.DEPOSIT_RECEIPT:
        return timedelta(days=settings.SALES_SHARE_LINK_DAYS)
    if document_type == DocumentType.SELF_BILL_INVOICE:
        return timedelta(days=settings.SALES_SELF_BILL_SHARE_LINK_DAYS)
    return timedelta(days=settings.SALES_INVOICE_SHARE_LINK_DAYS)


def build_share_url(token: str) -> str:
    path = reverse('public-document', kwargs={'token': token})
    base = settings.PUBLIC_BASE_URL
    return urljoin(base, path) if base else path


def issue_document(
    *,
    dealer: Dealer,
    document_type: str,
    allocated: AllocatedNumber,
    user: Optional[User],
    deal: Optional[Deal] = None,
    snapshot_data: Optional[dict] = None
) -> Tuple[SalesDocument, str]:
    """
    Create an ISSUED document carrying a previously allocated number.

    Call inside the flow's transaction; allocation must already have happened.

    Returns:
        (document, raw_share_token)
    """
    token = secrets.token_urlsafe(SHARE_TOKEN_BYTES)
    now = timezone.now()

    document = SalesDocument.objects.create(
        dealer=dealer,
        deal=deal,
        document_type=document_type,
        document_number=allocated.document_number,
        status=DocumentStatus.ISSUED,
        issued_at=now,
        snapshot_data=snapshot_data or {},
        share_token_hash=hash_share_token(token),
        share_expires_at=now + share_link_lifetime(document_type),
        created_by=user,
    )

    logger.info(
        "sales_document_issued",
        dealer_id=str(dealer.id),
        document_type=document_type,
        document_number=document.document_number,
    )
    return document, token


def void_document(*, document: SalesDocument, user: User, reason: str = '') -> SalesDocument:
    """Mark a document VOID. Its number becomes reusable."""
    document.status = DocumentStatus.VOID
    document.voided_at = timezone.now()
    document.voided_by = user
    document.void_reason = reason or 'Voided by user'
    document.save(update_fields=['status', 'voided_at', 'voided_by', 'void_reason', 'updated_at'])

    logger.info(
        "sales_document_voided",
        dealer_id=str(document.dealer_id),
        document_number=document.document_number,
    )
    return document


def get_document_by_share_token(token: str) -> SalesDocument:
    """
    Resolve a public share token.

    Raises:
        ShareLinkInvalidError: If the token is unknown, voided or expired
    """
    if not token:
        raise ShareLinkInvalidError("Share link is invalid")

    document = (
        SalesDocument.objects
        .select_related('dealer', 'deal')
        .filter(share_token_hash=hash_share_token(token))
        .first()
    )
    if document is None:
        raise ShareLinkInvalidError("Share link is invalid")

    if document.status == DocumentStatus.VOID:
        raise ShareLinkInvalidError("This document has been voided")

    if document.share_expires_at and document.share_expires_at <= timezone.now():
        raise ShareLinkInvalidError("Share link has expired")

    return document
