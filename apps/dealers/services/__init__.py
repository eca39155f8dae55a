"""
Dealers app services layer.

Dealers are the tenants of the system. Services here create them,
resolve them from the ``X-Dealer-Slug`` header and manage who belongs
to which dealership.
"""

from .exceptions import (
    DealersServiceError,
    DealerNotFoundError,
    NotDealerMemberError,
    InsufficientPermissionsError,
    AlreadyMemberError,
    LastOwnerError,
)

from .dealer_management import (
    DealerContext,
    create_dealer,
    get_dealer_by_slug,
    resolve_dealer_context,
    update_sales_settings,
)

from .membership_management import (
    add_member,
    remove_member,
)


__all__ = [
    # Exceptions
    'DealersServiceError',
    'DealerNotFoundError',
    'NotDealerMemberError',
    'InsufficientPermissionsError',
    'AlreadyMemberError',
    'LastOwnerError',

    # Dealer management
    'DealerContext',
    'create_dealer',
    'get_dealer_by_slug',
    'resolve_dealer_context',
    'update_sales_settings',

    # Membership management
    'add_member',
    'remove_member',
]
