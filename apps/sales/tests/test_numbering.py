"""
Tests for document number allocation.

Tests cover:
- Zero-padded formatting and sequence parsing
- Monotonic allocation and first-use counter creation
- Seeding a new counter from existing documents
- Collision retry and exhaustion
- Tenant isolation
- Concurrency (threaded allocation against a real database)
"""

import threading
import pytest
from unittest.mock import patch
from django.db import IntegrityError, connection
from django.db.models.query import QuerySet

from apps.dealers.models import Dealer
from apps.sales.models import DocumentCounter, DocumentStatus, DocumentType
from apps.sales.services import (
    allocate_number,
    format_document_number,
    get_counter,
    increment_and_get,
    initialize_counter,
    parse_document_sequence,
)
from apps.sales.services.exceptions import (
    CounterContentionError,
    DocumentNumberAllocationError,
)

INVOICE = DocumentType.INVOICE
DEPOSIT = DocumentType.DEPOSIT_RECEIPT


class TestFormatting:

    def test_pads_to_five_digits(self):
        assert format_document_number('INV', 1) == 'INV00001'
        assert format_document_number('', 42) == '00042'

    def test_wide_numbers_are_not_truncated(self):
        assert format_document_number('INV', 123456) == 'INV123456'

    @pytest.mark.parametrize('document_number, expected', [
        ('DEP00007', 7),
        ('INV-2024-0012', 12),
        ('00042', 42),
        ('MANUAL', None),
        ('', None),
    ])
    def test_parse_document_sequence(self, document_number, expected):
        assert parse_document_sequence(document_number) == expected


# =============================================================================
# Sequence store
# =============================================================================

@pytest.mark.django_db
class TestSequenceStore:

    def test_get_counter_missing(self, dealer):
        assert get_counter(dealer.id, INVOICE) is None

    def test_increment_creates_counter_consuming_one(self, dealer):
        counter = increment_and_get(dealer.id, INVOICE, 'INV')

        assert counter.next_number == 2
        assert counter.prefix == 'INV'

    def test_increment_existing_counter(self, dealer):
        initialize_counter(dealer.id, INVOICE, 10, 'INV')

        counter = increment_and_get(dealer.id, INVOICE, 'IGNORED')

        assert counter.next_number == 11
        assert counter.prefix == 'INV'

    def test_initialize_counter_is_idempotent(self, dealer):
        assert initialize_counter(dealer.id, INVOICE, 100, 'A') is True
        assert initialize_counter(dealer.id, INVOICE, 500, 'B') is False

        counter = get_counter(dealer.id, INVOICE)
        assert counter.next_number == 100
        assert counter.prefix == 'A'
        assert DocumentCounter.objects.filter(dealer=dealer).count() == 1

    def test_initialize_counter_defaults(self, dealer):
        initialize_counter(dealer.id, DEPOSIT, None, None)

        counter = get_counter(dealer.id, DEPOSIT)
        assert counter.next_number == 1
        assert counter.prefix == ''

    @pytest.mark.parametrize('start_number', [0, -5])
    def test_initialize_counter_rejects_non_positive_start(self, dealer, start_number):
        with pytest.raises(ValueError):
            initialize_counter(dealer.id, INVOICE, start_number, 'INV')

        assert get_counter(dealer.id, INVOICE) is None

    def test_initialize_counter_reports_lost_creation_race(self, dealer):
        initialize_counter(dealer.id, INVOICE, 9, 'INV')

        with patch.object(
            DocumentCounter.objects, 'get_or_create',
            side_effect=IntegrityError('duplicate key')
        ):
            assert initialize_counter(dealer.id, INVOICE, 1, 'X') is False

        assert get_counter(dealer.id, INVOICE).next_number == 9

    def test_initialize_counter_propagates_integrity_errors(self, dealer):
        with patch.object(
            DocumentCounter.objects, 'get_or_create',
            side_effect=IntegrityError('CHECK constraint failed')
        ):
            with pytest.raises(IntegrityError):
                initialize_counter(dealer.id, INVOICE, 1, 'INV')

        assert get_counter(dealer.id, INVOICE) is None

    def test_increment_recovers_when_creation_race_is_lost(self, dealer):
        """Update misses, insert hits the unique constraint, retried update wins."""
        initialize_counter(dealer.id, INVOICE, 5, 'INV')
        real_update = QuerySet.update
        calls = []

        def first_update_misses(queryset, **kwargs):
            calls.append(kwargs)
            if len(calls) == 1:
                return 0
            return real_update(queryset, **kwargs)

        with patch.object(QuerySet, 'update', autospec=True, side_effect=first_update_misses):
            counter = increment_and_get(dealer.id, INVOICE, 'INV')

        assert len(calls) == 2
        assert counter.next_number == 6
        assert DocumentCounter.objects.filter(dealer=dealer, document_type=INVOICE).count() == 1

    def test_increment_gives_up_on_persistent_contention(self, dealer):
        initialize_counter(dealer.id, INVOICE, 5, 'INV')

        with patch.object(QuerySet, 'update', return_value=0):
            with pytest.raises(CounterContentionError):
                increment_and_get(dealer.id, INVOICE, 'INV')

        assert get_counter(dealer.id, INVOICE).next_number == 5


# =============================================================================
# Allocator
# =============================================================================

@pytest.mark.django_db
class TestAllocateNumber:

    def test_first_allocation(self, dealer):
        allocated = allocate_number(dealer.id, INVOICE, 'INV')

        assert allocated.number == 1
        assert allocated.prefix == 'INV'
        assert allocated.document_number == 'INV00001'
        assert get_counter(dealer.id, INVOICE).next_number == 2

    def test_allocations_are_strictly_increasing(self, dealer):
        numbers = [allocate_number(dealer.id, INVOICE, 'INV').number for _ in range(5)]

        assert numbers == [1, 2, 3, 4, 5]

    def test_counter_prefix_wins_over_default(self, dealer):
        initialize_counter(dealer.id, INVOICE, 1, 'OLD')

        allocated = allocate_number(dealer.id, INVOICE, 'NEW')

        assert allocated.document_number == 'OLD00001'

    def test_empty_counter_prefix_falls_back_to_default(self, dealer):
        initialize_counter(dealer.id, INVOICE, 3, '')

        allocated = allocate_number(dealer.id, INVOICE, 'INV')

        assert allocated.prefix == 'INV'
        assert allocated.document_number == 'INV00003'

    def test_bootstrap_from_existing_documents(self, dealer, make_document):
        make_document(dealer, DEPOSIT, 'DEP00007')

        allocated = allocate_number(dealer.id, DEPOSIT, 'DEP')

        assert allocated.document_number == 'DEP00008'
        assert get_counter(dealer.id, DEPOSIT).next_number == 9

    def test_bootstrap_uses_numeric_maximum(self, dealer, make_document):
        make_document(dealer, DEPOSIT, 'DEP9')
        make_document(dealer, DEPOSIT, 'DEP00010')

        allocated = allocate_number(dealer.id, DEPOSIT, 'DEP')

        assert allocated.number == 11

    def test_bootstrap_counts_voided_documents(self, dealer, make_document):
        make_document(dealer, INVOICE, 'INV00004', status=DocumentStatus.VOID)

        allocated = allocate_number(dealer.id, INVOICE, 'INV')

        assert allocated.document_number == 'INV00005'

    def test_bootstrap_skipped_without_numeric_tail(self, dealer, make_document):
        make_document(dealer, INVOICE, 'MANUAL')

        allocated = allocate_number(dealer.id, INVOICE, 'INV')

        assert allocated.document_number == 'INV00001'

    def test_bootstrap_ignores_other_types(self, dealer, make_document):
        make_document(dealer, DEPOSIT, 'DEP00050')

        allocated = allocate_number(dealer.id, INVOICE, 'INV')

        assert allocated.document_number == 'INV00001'

    def test_collision_skips_to_next_free_number(self, dealer, make_document):
        initialize_counter(dealer.id, INVOICE, 2, 'INV')
        make_document(dealer, INVOICE, 'INV00002')

        allocated = allocate_number(dealer.id, INVOICE, 'INV')

        assert allocated.document_number == 'INV00003'
        assert get_counter(dealer.id, INVOICE).next_number == 4

    def test_voided_document_number_is_reissued(self, dealer, make_document):
        initialize_counter(dealer.id, INVOICE, 1, 'INV')
        make_document(dealer, INVOICE, 'INV00001', status=DocumentStatus.VOID)

        allocated = allocate_number(dealer.id, INVOICE, 'INV')

        assert allocated.document_number == 'INV00001'

    def test_exhaustion_after_max_retries(self, dealer):
        initialize_counter(dealer.id, INVOICE, 1, 'INV')

        with patch('apps.sales.services.numbering._is_number_taken', return_value=True) as taken:
            with pytest.raises(DocumentNumberAllocationError) as exc_info:
                allocate_number(dealer.id, INVOICE, 'INV', max_retries=3)

        assert exc_info.value.attempts == 3
        assert str(exc_info.value) == "Failed to allocate unique document number after 3 attempts"
        assert taken.call_count == 3
        # Every attempt consumed a number
        assert get_counter(dealer.id, INVOICE).next_number == 4

    def test_exhaustion_against_existing_documents(self, dealer, make_document):
        initialize_counter(dealer.id, INVOICE, 1, 'INV')
        for n in range(1, 6):
            make_document(dealer, INVOICE, format_document_number('INV', n))

        with pytest.raises(DocumentNumberAllocationError) as exc_info:
            allocate_number(dealer.id, INVOICE, 'INV', max_retries=5)

        assert exc_info.value.attempts == 5
        assert get_counter(dealer.id, INVOICE).next_number == 6

    def test_succeeds_on_last_allowed_attempt(self, dealer):
        with patch(
            'apps.sales.services.numbering._is_number_taken',
            side_effect=[True, True, False]
        ):
            allocated = allocate_number(dealer.id, INVOICE, 'INV', max_retries=3)

        assert allocated.number == 3

    def test_max_retries_must_be_positive(self, dealer):
        with pytest.raises(ValueError):
            allocate_number(dealer.id, INVOICE, 'INV', max_retries=0)

    def test_tenants_have_independent_sequences(self, dealer, other_dealer):
        for _ in range(3):
            allocate_number(dealer.id, INVOICE, 'INV')

        allocated = allocate_number(other_dealer.id, INVOICE, 'INV')

        assert allocated.document_number == 'INV00001'
        assert get_counter(dealer.id, INVOICE).next_number == 4

    def test_document_types_have_independent_sequences(self, dealer):
        allocate_number(dealer.id, INVOICE, 'INV')
        allocate_number(dealer.id, INVOICE, 'INV')

        allocated = allocate_number(dealer.id, DEPOSIT, 'DEP')

        assert allocated.document_number == 'DEP00001'


# =============================================================================
# Concurrency
# =============================================================================

@pytest.mark.django_db(transaction=True)
class TestConcurrentAllocation:
    """Threaded tests; each thread uses its own database connection."""

    def _run_in_threads(self, target, count):
        results = []
        errors = []

        def worker():
            try:
                results.extend(target())
            except Exception as e:
                errors.append(f"Unexpected error: {e}")
            finally:
                connection.close()

        threads = [threading.Thread(target=worker) for _ in range(count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        return results, errors

    def test_concurrent_first_allocation_creates_one_counter(self):
        dealer = Dealer.objects.create(name='Race Motors', slug='race-motors')

        results, errors = self._run_in_threads(
            lambda: [allocate_number(dealer.id, INVOICE, 'INV').document_number],
            count=8,
        )

        assert errors == []
        assert sorted(results) == [format_document_number('INV', n) for n in range(1, 9)]
        assert DocumentCounter.objects.filter(dealer=dealer, document_type=INVOICE).count() == 1

    def test_concurrent_allocations_are_unique(self):
        dealer = Dealer.objects.create(name='Busy Motors', slug='busy-motors')
        initialize_counter(dealer.id, INVOICE, 1, 'INV')

        results, errors = self._run_in_threads(
            lambda: [allocate_number(dealer.id, INVOICE, 'INV').number for _ in range(5)],
            count=6,
        )

        assert errors == []
        assert len(results) == 30
        assert sorted(results) == list(range(1, 31))
        assert get_counter(dealer.id, INVOICE).next_number == 31
