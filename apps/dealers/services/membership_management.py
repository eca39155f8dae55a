"""
Membership management service.

Handles adding and removing dealership staff. Removal is a soft delete
so that documents keep a valid reference to whoever issued them.
"""

from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.dealers.models import Dealer, DealerMembership, DealerRole

from .exceptions import (
    DealerNotFoundError,
    NotDealerMemberError,
    InsufficientPermissionsError,
    AlreadyMemberError,
    LastOwnerError,
)

logger = structlog.get_logger(__name__)


def _get_locked_dealer(dealer_id: UUID) -> Dealer:
    try:
        return Dealer.objects.select_for_update().get(id=dealer_id)
    except Dealer.DoesNotExist:
        raise DealerNotFoundError(f"Dealer with ID {dealer_id} not found")


@transaction.atomic
def add_member(
    *,
    dealer_id: UUID,
    user: User,
    added_by: User,
    role: str = DealerRole.STAFF
) -> DealerMembership:
    """
    Add a user to a dealership (admin only).

    A previously removed membership is reactivated with the new role.

    Raises:
        DealerNotFoundError: If dealer doesn't exist
        InsufficientPermissionsError: If added_by is not owner/admin, or
            a non-owner tries to grant OWNER
        AlreadyMemberError: If user already has an active membership
    """
    dealer = _get_locked_dealer(dealer_id)

    acting = dealer.get_membership(added_by)
    if acting is None or not acting.is_admin:
        raise InsufficientPermissionsError("Only dealer admins can add members")

    if role == DealerRole.OWNER and acting.role != DealerRole.OWNER:
        raise InsufficientPermissionsError("Only an owner can add another owner")

    membership = DealerMembership.objects.filter(dealer=dealer, user=user).first()

    if membership is None:
        membership = DealerMembership.objects.create(user=user, dealer=dealer, role=role)
    elif membership.is_active:
        raise AlreadyMemberError(f"{user.email} is already a member of {dealer.name}")
    else:
        membership.role = role
        membership.removed_at = None
        membership.removed_by = None
        membership.save(update_fields=['role', 'removed_at', 'removed_by'])

    logger.info(
        "dealer_member_added",
        dealer_id=str(dealer.id),
        user_id=str(user.id),
        role=role,
    )
    return membership


@transaction.atomic
def remove_member(*, dealer_id: UUID, user_id: UUID, removed_by: User) -> None:
    """
    Soft-remove a member from a dealership (admin only).

    Raises:
        DealerNotFoundError: If dealer doesn't exist
        InsufficientPermissionsError: If removed_by is not owner/admin
        NotDealerMemberError: If target has no active membership
        LastOwnerError: If target is the only remaining owner
    """
    dealer = _get_locked_dealer(dealer_id)

    if not dealer.is_admin(removed_by):
        raise InsufficientPermissionsError("Only dealer admins can remove members")

    try:
        membership = (
            DealerMembership.objects
            .select_for_update()
            .get(dealer=dealer, user_id=user_id, removed_at__isnull=True)
        )
    except DealerMembership.DoesNotExist:
        raise NotDealerMemberError(f"User is not a member of {dealer.name}")

    if membership.role == DealerRole.OWNER:
        owners = DealerMembership.objects.filter(
            dealer=dealer,
            role=DealerRole.OWNER,
            removed_at__isnull=True,
        ).count()
        if owners <= 1:
            raise LastOwnerError("Cannot remove the last owner of a dealership")

    membership.removed_at = timezone.now()
    membership.removed_by = removed_by
    membership.save(update_fields=['removed_at', 'removed_by'])

    logger.info("dealer_member_removed", dealer_id=str(dealer.id), user_id=str(user_id))
