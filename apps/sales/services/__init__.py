"""
Sales app services layer.

Document numbering lives in numbering.py; everything that issues a
document goes through allocate_number() first.
"""

from .exceptions import (
    SalesServiceError,
    DocumentNumberAllocationError,
    CounterContentionError,
    DealNotFoundError,
    InvalidDealStateError,
    DealIncompleteError,
    InvoiceAlreadyExistsError,
    InvalidPaymentAmountError,
    ShareLinkInvalidError,
)

from .numbering import (
    AllocatedNumber,
    DOCUMENT_NUMBER_DIGITS,
    allocate_number,
    format_document_number,
    get_counter,
    highest_existing_sequence,
    increment_and_get,
    initialize_counter,
    parse_document_sequence,
)

from .documents import (
    build_share_url,
    get_document_by_share_token,
    hash_share_token,
    issue_document,
    void_document,
)

from .deal_lifecycle import (
    DealFlowResult,
    cancel_deal,
    generate_invoice,
    generate_self_bill,
    mark_completed,
    mark_delivered,
    record_balance_payment,
    take_deposit,
    void_invoice,
)


__all__ = [
    # Exceptions
    'SalesServiceError',
    'DocumentNumberAllocationError',
    'CounterContentionError',
    'DealNotFoundError',
    'InvalidDealStateError',
    'DealIncompleteError',
    'InvoiceAlreadyExistsError',
    'InvalidPaymentAmountError',
    'ShareLinkInvalidError',

    # Numbering
    'AllocatedNumber',
    'DOCUMENT_NUMBER_DIGITS',
    'allocate_number',
    'format_document_number',
    'get_counter',
    'highest_existing_sequence',
    'increment_and_get',
    'initialize_counter',
    'parse_document_sequence',

    # Documents
    'build_share_url',
    'get_document_by_share_token',
    'hash_share_token',
    'issue_document',
    'void_document',

    # Deal lifecycle
    'DealFlowResult',
    'cancel_deal',
    'generate_invoice',
    'generate_self_bill',
    'mark_completed',
    'mark_delivered',
    'record_balance_payment',
    'take_deposit',
    'void_invoice',
]
