"""
Document number allocation.

Every dealer has one DocumentCounter per document type. Allocation bumps
the counter with a single conditional UPDATE, so two callers can never be
handed the same value, then checks the candidate against existing
documents in case legacy data already uses it.

Numbers are allocated in their own short transactions, outside whatever
transaction later writes the document. A flow that fails after allocating
leaves a gap in the sequence; gaps are accepted, duplicates are not.
"""

import re
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import structlog
from django.db import transaction, IntegrityError
from django.db.models import F
from django.utils import timezone

from apps.sales.models import DocumentCounter, DocumentStatus, SalesDocument

from .exceptions import DocumentNumberAllocationError, CounterContentionError

logger = structlog.get_logger(__name__)

DOCUMENT_NUMBER_DIGITS = 5
DEFAULT_MAX_RETRIES = 5
COUNTER_UPSERT_ATTEMPTS = 3

_TRAILING_DIGITS = re.compile(r'(\d+)$')


@dataclass(frozen=True)
class AllocatedNumber:
    number: int
    prefix: str
    document_number: str


def format_document_number(prefix: str, number: int) -> str:
    """INV + 7 -> INV00007. Numbers wider than the padding are not truncated."""
    return f"{prefix}{number:0{DOCUMENT_NUMBER_DIGITS}d}"


def parse_document_sequence(document_number: str) -> Optional[int]:
    """Return the trailing integer of a document number, or None."""
    match = _TRAILING_DIGITS.search(document_number or '')
    if match is None:
        return None
    return int(match.group(1))


# =============================================================================
# Sequence store
# =============================================================================

def get_counter(dealer_id: UUID, document_type: str) -> Optional[DocumentCounter]:
    return DocumentCounter.objects.filter(
        dealer_id=dealer_id,
        document_type=document_type
    ).first()


def increment_and_get(
    dealer_id: UUID,
    document_type: str,
    default_prefix: str = ''
) -> DocumentCounter:
    """
    Atomically increment a counter and return the updated row.

    A missing counter is created with next_number=2, i.e. value 1 is
    consumed by this call. If another caller creates the row first the
    insert fails on the unique constraint and the update is retried.

    Raises:
        CounterContentionError: If neither update nor insert succeeded
            within COUNTER_UPSERT_ATTEMPTS rounds
    """
    counters = DocumentCounter.objects.filter(
        dealer_id=dealer_id,
        document_type=document_type
    )

    for attempt in range(1, COUNTER_UPSERT_ATTEMPTS + 1):
        with transaction.atomic():
            # Row stays locked until this block commits
            updated = counters.update(
                next_number=F('next_number') + 1,
                updated_at=timezone.now()
            )
            if updated:
                return counters.get()

        try:
            with transaction.atomic():
                return DocumentCounter.objects.create(
                    dealer_id=dealer_id,
                    document_type=document_type,
                    next_number=2,
                    prefix=default_prefix,
                )
        except IntegrityError:
            logger.info(
                "document_counter_create_race",
                dealer_id=str(dealer_id),
                document_type=document_type,
                attempt=attempt,
            )

    raise CounterContentionError(
        f"Could not update {document_type} counter after {COUNTER_UPSERT_ATTEMPTS} attempts"
    )


def initialize_counter(
    dealer_id: UUID,
    document_type: str,
    start_number: Optional[int] = None,
    prefix: Optional[str] = None
) -> bool:
    """
    Create a counter if it does not exist yet.

    Existing counters are never touched, so this is safe to call repeatedly.

    Returns:
        True if this call created the counter

    Raises:
        ValueError: If start_number is less than 1
    """
    if start_number is not None and start_number < 1:
        raise ValueError("start_number must be at least 1")

    try:
        with transaction.atomic():
            _, created = DocumentCounter.objects.get_or_create(
                dealer_id=dealer_id,
                document_type=document_type,
                defaults={
                    'next_number': start_number or 1,
                    'prefix': prefix or '',
                }
            )
    except IntegrityError:
        # Lost a concurrent get_or_create only if the other caller's row now exists
        if get_counter(dealer_id, document_type) is None:
            raise
        return False

    if created:
        logger.info(
            "document_counter_initialized",
            dealer_id=str(dealer_id),
            document_type=document_type,
            next_number=start_number or 1,
        )
    return created


# =============================================================================
# Allocator
# =============================================================================

def highest_existing_sequence(dealer_id: UUID, document_type: str) -> Optional[int]:
    """Highest trailing number among the dealer's documents of this type, any status."""
    numbers = (
        SalesDocument.objects
        .filter(dealer_id=dealer_id, document_type=document_type)
        .values_list('document_number', flat=True)
    )

    highest = None
    for document_number in numbers.iterator():
        sequence = parse_document_sequence(document_number)
        if sequence is not None and (highest is None or sequence > highest):
            highest = sequence
    return highest


def _bootstrap_counter(dealer_id: UUID, document_type: str, default_prefix: str) -> None:
    highest = highest_existing_sequence(dealer_id, document_type)
    if highest is None:
        return

    initialize_counter(dealer_id, document_type, highest + 1, default_prefix)


def _is_number_taken(dealer_id: UUID, document_type: str, document_number: str) -> bool:
    return (
        SalesDocument.objects
        .filter(
            dealer_id=dealer_id,
            document_type=document_type,
            document_number=document_number,
        )
        .exclude(status=DocumentStatus.VOID)
        .exists()
    )


def allocate_number(
    dealer_id: UUID,
    document_type: str,
    default_prefix: str = '',
    max_retries: int = DEFAULT_MAX_RETRIES
) -> AllocatedNumber:
    """
    Allocate the next free document number for a dealer and document type.

    The first allocation for a pair with no counter seeds the counter from
    the highest number already used by existing documents. Each candidate
    is checked against non-voided documents; a collision burns the number
    and the next one is tried.

    Args:
        dealer_id: Tenant the number belongs to
        document_type: A DocumentType value
        default_prefix: Prefix for a counter created by this call
        max_retries: Collisions tolerated before giving up

    Returns:
        AllocatedNumber(number, prefix, document_number)

    Raises:
        DocumentNumberAllocationError: After max_retries consecutive collisions
        CounterContentionError: If the counter row could not be written
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    if get_counter(dealer_id, document_type) is None:
        _bootstrap_counter(dealer_id, document_type, default_prefix)

    attempts = 0
    while attempts < max_retries:
        counter = increment_and_get(dealer_id, document_type, default_prefix)

        number = counter.next_number - 1
        prefix = counter.prefix or default_prefix
        document_number = format_document_number(prefix, number)

        if not _is_number_taken(dealer_id, document_type, document_number):
            return AllocatedNumber(
                number=number,
                prefix=prefix,
                document_number=document_number,
            )

        attempts += 1
        logger.warning(
            "document_number_collision",
            dealer_id=str(dealer_id),
            document_type=document_type,
            document_number=document_number,
            attempt=attempts,
            max_retries=max_retries,
        )

    logger.error(
        "document_number_allocation_exhausted",
        dealer_id=str(dealer_id),
        document_type=document_type,
        attempts=attempts,
    )
    raise DocumentNumberAllocationError(attempts=attempts)
