"""
Deal lifecycle flows that issue numbered documents.

Each flow validates the deal, allocates its document number, and only then
opens the transaction that records payments, issues the document and moves
the deal on. An allocation failure therefore leaves nothing written.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.dealers.models import Dealer
from apps.sales.models import (
    Deal,
    DealPayment,
    DealStatus,
    DocumentStatus,
    DocumentType,
    PaymentType,
    SalesDocument,
)

from .documents import build_share_url, issue_document, void_document
from .exceptions import (
    DealNotFoundError,
    InvalidDealStateError,
    DealIncompleteError,
    InvoiceAlreadyExistsError,
    InvalidPaymentAmountError,
)
from .numbering import AllocatedNumber, allocate_number

logger = structlog.get_logger(__name__)

FULL_PAYMENT_TOLERANCE = Decimal('0.01')


@dataclass
class DealFlowResult:
    """Outcome of a lifecycle flow. share_token is only available here."""

    deal: Deal
    document: Optional[SalesDocument] = None
    share_token: Optional[str] = None
    payment: Optional[DealPayment] = None
    balance_before: Optional[Decimal] = None
    balance_after: Optional[Decimal] = None
    is_full_payment: bool = False

    @property
    def share_url(self) -> Optional[str]:
        if self.share_token is None:
            return None
        return build_share_url(self.share_token)


def _get_deal(deal_id: UUID, dealer: Dealer, lock: bool = False) -> Deal:
    queryset = Deal.objects.filter(dealer=dealer)
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(id=deal_id)
    except Deal.DoesNotExist:
        raise DealNotFoundError(f"Deal with ID {deal_id} not found")


def _allocate(dealer: Dealer, document_type: str) -> AllocatedNumber:
    return allocate_number(
        dealer.id,
        document_type,
        default_prefix=dealer.get_document_prefix(document_type),
        max_retries=settings.DOCUMENT_NUMBER_MAX_RETRIES,
    )


def _check_amount(amount: Decimal) -> None:
    if amount is None or amount <= 0:
        raise InvalidPaymentAmountError("Payment amount must be greater than zero")


def _active_invoice(deal: Deal) -> Optional[SalesDocument]:
    return (
        deal.documents
        .filter(document_type=DocumentType.INVOICE)
        .exclude(status=DocumentStatus.VOID)
        .order_by('-created_at')
        .first()
    )


def _money(value: Decimal) -> str:
    return str(Decimal(value).quantize(Decimal('0.01')))


def build_snapshot(deal: Deal) -> dict:
    """Freeze the parts of a deal a printed document shows."""
    dealer = deal.dealer
    return {
        'vehicle': {
            'vrm': deal.vehicle_vrm,
            'description': deal.vehicle_description,
        },
        'customer': {
            'name': deal.customer_name,
            'email': deal.customer_email,
            'phone': deal.customer_phone,
            'address': deal.customer_address,
        },
        'dealer': {
            'name': dealer.name,
            'company_name': dealer.company_name,
            'address': dealer.company_address,
            'phone': dealer.company_phone,
            'email': dealer.company_email,
            'vat_number': dealer.vat_number if dealer.vat_registered else None,
            'company_number': dealer.company_number,
        },
        'sale_channel': deal.sale_channel,
        'vehicle_price_gross': _money(deal.vehicle_price_gross or 0),
        'delivery_amount': _money(deal.delivery_amount),
        'part_exchange_net': _money(deal.part_exchange_net),
        'grand_total': _money(deal.grand_total),
        'total_paid': _money(deal.total_paid),
        'balance_due': _money(max(Decimal('0.00'), deal.balance_due)),
    }


def take_deposit(
    *,
    deal_id: UUID,
    dealer: Dealer,
    user: User,
    amount: Decimal,
    method: str,
    reference: str = '',
    notes: str = ''
) -> DealFlowResult:
    """
    Record a deposit and issue a deposit receipt.

    The first deposit moves a DRAFT deal to DEPOSIT_TAKEN.

    Raises:
        DealNotFoundError: If the deal isn't this dealer's
        InvalidDealStateError: If the deal is cancelled or completed
        DealIncompleteError: If the deal has no customer
        InvalidPaymentAmountError: If amount is not positive
        DocumentNumberAllocationError: If no receipt number could be allocated
    """
    _check_amount(amount)

    deal = _get_deal(deal_id, dealer)
    if deal.status == DealStatus.CANCELLED:
        raise InvalidDealStateError("Cannot take deposit on cancelled deal")
    if deal.status == DealStatus.COMPLETED:
        raise InvalidDealStateError("Deal is already completed")
    if not deal.has_customer:
        raise DealIncompleteError("Customer is required before taking deposit")

    allocated = _allocate(dealer, DocumentType.DEPOSIT_RECEIPT)

    with transaction.atomic():
        deal = _get_deal(deal_id, dealer, lock=True)
        now = timezone.now()

        payment = DealPayment.objects.create(
            deal=deal,
            payment_type=PaymentType.DEPOSIT,
            amount=amount,
            method=method,
            reference=reference or allocated.document_number,
            notes=notes,
            paid_at=now,
        )

        if deal.status == DealStatus.DRAFT:
            deal.status = DealStatus.DEPOSIT_TAKEN
            deal.deposit_taken_at = now
        deal.updated_by = user
        deal.save(update_fields=['status', 'deposit_taken_at', 'updated_by', 'updated_at'])

        snapshot = build_snapshot(deal)
        snapshot['deposit'] = {
            'amount': _money(amount),
            'method': method,
            'reference': payment.reference,
        }

        document, token = issue_document(
            dealer=dealer,
            document_type=DocumentType.DEPOSIT_RECEIPT,
            allocated=allocated,
            user=user,
            deal=deal,
            snapshot_data=snapshot,
        )

    return DealFlowResult(deal=deal, document=document, share_token=token, payment=payment)


def generate_invoice(*, deal_id: UUID, dealer: Dealer, user: User) -> DealFlowResult:
    """
    Issue the invoice for a deal and move it to INVOICED.

    Raises:
        DealNotFoundError: If the deal isn't this dealer's
        InvalidDealStateError: If the deal is cancelled or completed
        InvoiceAlreadyExistsError: If a non-void invoice exists
        DealIncompleteError: If customer or vehicle price is missing
        DocumentNumberAllocationError: If no invoice number could be allocated
    """
    deal = _get_deal(deal_id, dealer)
    if deal.status == DealStatus.CANCELLED:
        raise InvalidDealStateError("Cannot invoice a cancelled deal")
    if deal.status == DealStatus.COMPLETED:
        raise InvalidDealStateError("Deal is already completed")

    existing = _active_invoice(deal)
    if existing is not None:
        raise InvoiceAlreadyExistsError(existing.document_number)

    if not deal.has_customer:
        raise DealIncompleteError("Customer is required before generating invoice")
    if not deal.vehicle_price_gross:
        raise DealIncompleteError("Vehicle price is required before generating invoice")

    allocated = _allocate(dealer, DocumentType.INVOICE)

    with transaction.atomic():
        deal = _get_deal(deal_id, dealer, lock=True)

        existing = _active_invoice(deal)
        if existing is not None:
            raise InvoiceAlreadyExistsError(existing.document_number)

        document, token = issue_document(
            dealer=dealer,
            document_type=DocumentType.INVOICE,
            allocated=allocated,
            user=user,
            deal=deal,
            snapshot_data=build_snapshot(deal),
        )

        deal.status = DealStatus.INVOICED
        deal.invoiced_at = document.issued_at
        deal.updated_by = user
        deal.save(update_fields=['status', 'invoiced_at', 'updated_by', 'updated_at'])

    return DealFlowResult(deal=deal, document=document, share_token=token)


@transaction.atomic
def void_invoice(*, deal_id: UUID, dealer: Dealer, user: User, reason: str = '') -> DealFlowResult:
    """
    Void the deal's active invoice and revert the deal to DEPOSIT_TAKEN.

    Only INVOICED deals qualify; delivered or completed sales need a
    credit note instead.

    Raises:
        DealNotFoundError: If the deal isn't this dealer's
        InvalidDealStateError: If the deal is not INVOICED or has no active invoice
    """
    deal = _get_deal(deal_id, dealer, lock=True)

    if deal.status != DealStatus.INVOICED:
        raise InvalidDealStateError(
            f"Cannot void invoice for {deal.get_status_display().lower()} deal"
        )

    invoice = _active_invoice(deal)
    if invoice is None:
        raise InvalidDealStateError("No active invoice found for this deal")

    void_document(document=invoice, user=user, reason=reason)

    deal.status = DealStatus.DEPOSIT_TAKEN
    deal.updated_by = user
    deal.save(update_fields=['status', 'updated_by', 'updated_at'])

    return DealFlowResult(deal=deal, document=invoice)


def record_balance_payment(
    *,
    deal_id: UUID,
    dealer: Dealer,
    user: User,
    amount: Decimal,
    method: str,
    reference: str = '',
    notes: str = '',
    generate_receipt: bool = True
) -> DealFlowResult:
    """
    Record a balance payment, optionally issuing a payment receipt.

    When the payment clears the balance the latest issued invoice is
    marked paid.

    Raises:
        DealNotFoundError: If the deal isn't this dealer's
        InvalidDealStateError: If the deal is cancelled
        DealIncompleteError: If the deal has no customer
        InvalidPaymentAmountError: If amount is not positive
        DocumentNumberAllocationError: If no receipt number could be allocated
    """
    _check_amount(amount)

    deal = _get_deal(deal_id, dealer)
    if deal.status == DealStatus.CANCELLED:
        raise InvalidDealStateError("Cannot record payment on cancelled deal")
    if not deal.has_customer:
        raise DealIncompleteError("Customer is required")

    allocated = _allocate(dealer, DocumentType.PAYMENT_RECEIPT) if generate_receipt else None

    with transaction.atomic():
        deal = _get_deal(deal_id, dealer, lock=True)
        now = timezone.now()

        balance_before = deal.balance_due
        balance_after = balance_before - amount
        is_full_payment = balance_after <= FULL_PAYMENT_TOLERANCE

        payment = DealPayment.objects.create(
            deal=deal,
            payment_type=PaymentType.BALANCE,
            amount=amount,
            method=method,
            reference=reference,
            notes=notes,
            paid_at=now,
        )
        deal.updated_by = user
        deal.save(update_fields=['updated_by', 'updated_at'])

        result = DealFlowResult(
            deal=deal,
            payment=payment,
            balance_before=balance_before,
            balance_after=max(Decimal('0.00'), balance_after),
            is_full_payment=is_full_payment,
        )

        if allocated is None:
            return result

        invoice = (
            deal.documents
            .filter(document_type=DocumentType.INVOICE, status=DocumentStatus.ISSUED)
            .order_by('-created_at')
            .first()
        )

        snapshot = build_snapshot(deal)
        snapshot['payment_receipt'] = {
            'payment_amount': _money(amount),
            'payment_method': method,
            'payment_reference': reference or allocated.document_number,
            'invoice_number': invoice.document_number if invoice else 'N/A',
            'invoice_balance_before': _money(balance_before),
            'invoice_balance_after': _money(result.balance_after),
            'is_full_payment': is_full_payment,
        }

        document, token = issue_document(
            dealer=dealer,
            document_type=DocumentType.PAYMENT_RECEIPT,
            allocated=allocated,
            user=user,
            deal=deal,
            snapshot_data=snapshot,
        )

        if is_full_payment and invoice is not None:
            invoice.paid_at = now
            invoice.save(update_fields=['paid_at', 'updated_at'])

    result.document = document
    result.share_token = token
    return result


@transaction.atomic
def mark_delivered(*, deal_id: UUID, dealer: Dealer, user: User) -> DealFlowResult:
    """
    Record handover of the vehicle. Only INVOICED deals can be delivered.

    Raises:
        DealNotFoundError: If the deal isn't this dealer's
        InvalidDealStateError: If the deal is not INVOICED
    """
    deal = _get_deal(deal_id, dealer, lock=True)

    if deal.status != DealStatus.INVOICED:
        raise InvalidDealStateError(
            f"Cannot mark {deal.get_status_display().lower()} deal as delivered"
        )

    deal.status = DealStatus.DELIVERED
    deal.delivered_at = timezone.now()
    deal.updated_by = user
    deal.save(update_fields=['status', 'delivered_at', 'updated_by', 'updated_at'])

    return DealFlowResult(deal=deal)


@transaction.atomic
def mark_completed(*, deal_id: UUID, dealer: Dealer, user: User, notes: str = '') -> DealFlowResult:
    """
    Close a deal as completed, the final lifecycle status.

    An outstanding balance does not block completion; it is logged and
    reported back through is_full_payment.

    Raises:
        DealNotFoundError: If the deal isn't this dealer's
        InvalidDealStateError: If the deal is draft, cancelled or already completed
    """
    deal = _get_deal(deal_id, dealer, lock=True)

    if deal.status == DealStatus.CANCELLED:
        raise InvalidDealStateError("Cannot complete a cancelled deal")
    if deal.status == DealStatus.COMPLETED:
        raise InvalidDealStateError("Deal is already completed")
    if deal.status == DealStatus.DRAFT:
        raise InvalidDealStateError(
            "Deal must progress through deposit/invoice/delivery before completion"
        )

    balance_due = deal.balance_due
    is_full_payment = balance_due <= FULL_PAYMENT_TOLERANCE
    if not is_full_payment:
        logger.warning(
            "deal_completed_with_balance_due",
            deal_id=str(deal.id),
            dealer_id=str(dealer.id),
            balance_due=_money(balance_due),
        )

    deal.status = DealStatus.COMPLETED
    deal.completed_at = timezone.now()
    if notes:
        deal.completion_notes = notes
    deal.updated_by = user
    deal.save(update_fields=['status', 'completed_at', 'completion_notes', 'updated_by', 'updated_at'])

    return DealFlowResult(
        deal=deal,
        balance_after=max(Decimal('0.00'), balance_due),
        is_full_payment=is_full_payment,
    )


@transaction.atomic
def cancel_deal(*, deal_id: UUID, dealer: Dealer, user: User, reason: str = '') -> DealFlowResult:
    """
    Cancel a deal. Issued documents are left as they are.

    Raises:
        DealNotFoundError: If the deal isn't this dealer's
        InvalidDealStateError: If the deal is already cancelled
        DealIncompleteError: If a completed deal is cancelled without a reason
    """
    deal = _get_deal(deal_id, dealer, lock=True)
    reason = (reason or '').strip()

    if deal.status == DealStatus.CANCELLED:
        raise InvalidDealStateError("Deal is already cancelled")
    if deal.status == DealStatus.COMPLETED and not reason:
        raise DealIncompleteError("Cancellation reason is required for completed deals")

    deal.status = DealStatus.CANCELLED
    deal.cancelled_at = timezone.now()
    deal.cancellation_reason = reason or 'Cancelled by user'
    deal.updated_by = user
    deal.save(update_fields=['status', 'cancelled_at', 'cancellation_reason', 'updated_by', 'updated_at'])

    logger.info("deal_cancelled", deal_id=str(deal.id), dealer_id=str(dealer.id))
    return DealFlowResult(deal=deal)


def generate_self_bill(*, deal_id: UUID, dealer: Dealer, user: User) -> DealFlowResult:
    """
    Issue a self-billing invoice for the part exchange the dealer is buying.

    The customer is the seller. Regenerating voids the previous self-bill
    for the deal. The deal status is unchanged.

    Raises:
        DealNotFoundError: If the deal isn't this dealer's
        InvalidDealStateError: If the deal is cancelled
        DealIncompleteError: If there is no customer or part exchange allowance
        DocumentNumberAllocationError: If no self-bill number could be allocated
    """
    deal = _get_deal(deal_id, dealer)
    if deal.status == DealStatus.CANCELLED:
        raise InvalidDealStateError("Cannot generate self-bill for a cancelled deal")
    if not deal.has_customer:
        raise DealIncompleteError("Customer is required before generating self-bill invoice")
    if deal.part_exchange_allowance <= 0:
        raise DealIncompleteError("Part exchange allowance is required before generating self-bill invoice")

    allocated = _allocate(dealer, DocumentType.SELF_BILL_INVOICE)

    with transaction.atomic():
        deal = _get_deal(deal_id, dealer, lock=True)

        previous = (
            deal.documents
            .filter(document_type=DocumentType.SELF_BILL_INVOICE)
            .exclude(status=DocumentStatus.VOID)
        )
        for document in previous:
            void_document(document=document, user=user, reason='Superseded by regenerated self-bill')

        snapshot = build_snapshot(deal)
        snapshot['self_bill'] = {
            'supplier': snapshot['customer'],
            'purchase_price': _money(deal.part_exchange_allowance),
            'finance_settlement': _money(deal.part_exchange_settlement),
            'net_payable': _money(deal.part_exchange_net),
        }

        document, token = issue_document(
            dealer=dealer,
            document_type=DocumentType.SELF_BILL_INVOICE,
            allocated=allocated,
            user=user,
            deal=deal,
            snapshot_data=snapshot,
        )

    return DealFlowResult(deal=deal, document=document, share_token=token)
