from rest_framework import permissions
from rest_framework.exceptions import NotFound, PermissionDenied

from apps.dealers.services import (
    resolve_dealer_context,
    DealerNotFoundError,
    NotDealerMemberError,
)

DEALER_SLUG_HEADER = 'X-Dealer-Slug'


def get_dealer_slug(request):
    return request.headers.get(DEALER_SLUG_HEADER, '').strip()


class IsDealerMember(permissions.BasePermission):
    """
    Permission: User must be an active member of the dealer named by the
    X-Dealer-Slug header.

    On success the resolved DealerContext is stored as request.dealer_context.
    """

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        try:
            request.dealer_context = resolve_dealer_context(
                slug=get_dealer_slug(request),
                user=request.user
            )
        except DealerNotFoundError as e:
            raise NotFound(str(e))
        except NotDealerMemberError as e:
            raise PermissionDenied(str(e))

        return True


class IsDealerAdmin(permissions.BasePermission):
    """
    Permission: User must be dealer owner or admin.

    Must be listed after IsDealerMember.
    """

    message = 'Only dealer admins can perform this action.'

    def has_permission(self, request, view):
        context = getattr(request, 'dealer_context', None)
        return context is not None and context.is_admin
