from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from .models import DealerMembership
from .permissions import IsDealerMember, IsDealerAdmin
from .serializers import (
    DealerSerializer,
    DealerCreateSerializer,
    SalesSettingsSerializer,
    DealerMembershipSerializer,
    AddMemberSerializer,
)

from apps.dealers.services import (
    create_dealer,
    update_sales_settings,
    add_member,
    remove_member,
    # Exceptions
    NotDealerMemberError,
    InsufficientPermissionsError,
    AlreadyMemberError,
    LastOwnerError,
)


@extend_schema(
    request=DealerCreateSerializer,
    responses={201: DealerSerializer},
    description="Create a dealership. The caller becomes its owner.",
    tags=['dealers'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def dealer_create(request):
    """Create a new dealer."""
    serializer = DealerCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    dealer = create_dealer(
        name=serializer.validated_data['name'],
        owner=request.user,
        slug=serializer.validated_data.get('slug')
    )

    output_serializer = DealerSerializer(dealer, context={'request': request})
    return Response(output_serializer.data, status=status.HTTP_201_CREATED)


@extend_schema(
    responses={200: DealerMembershipSerializer(many=True)},
    description="Get all dealers where the current user is an active member.",
    tags=['dealers'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_dealers(request):
    """Get all dealers where user is a member."""
    memberships = (
        DealerMembership.objects
        .filter(user=request.user, removed_at__isnull=True)
        .select_related('dealer', 'user')
        .order_by('dealer__name')
    )

    serializer = DealerMembershipSerializer(memberships, many=True)
    return Response(serializer.data)


@extend_schema(
    request=SalesSettingsSerializer,
    responses={200: DealerSerializer},
    description="Get or update the dealer selected by the X-Dealer-Slug header.",
    tags=['dealers'],
)
@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsDealerMember])
def current_dealer(request):
    """Get or update the current dealer's sales settings."""
    context = request.dealer_context

    if request.method == 'GET':
        serializer = DealerSerializer(context.dealer, context={'request': request})
        return Response(serializer.data)

    serializer = SalesSettingsSerializer(data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)

    try:
        dealer = update_sales_settings(
            dealer_id=context.dealer_id,
            user=request.user,
            **serializer.validated_data
        )
    except InsufficientPermissionsError as e:
        return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

    return Response(DealerSerializer(dealer, context={'request': request}).data)


@extend_schema(
    request=AddMemberSerializer,
    responses={200: DealerMembershipSerializer(many=True), 201: DealerMembershipSerializer},
    description="List or add members of the current dealer (adding is admin only).",
    tags=['dealers'],
)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsDealerMember])
def dealer_members(request):
    """List members, or add one."""
    context = request.dealer_context

    if request.method == 'GET':
        memberships = (
            DealerMembership.objects
            .filter(dealer=context.dealer, removed_at__isnull=True)
            .select_related('dealer', 'user')
        )
        return Response(DealerMembershipSerializer(memberships, many=True).data)

    serializer = AddMemberSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        membership = add_member(
            dealer_id=context.dealer_id,
            user=serializer.validated_data['email'],
            added_by=request.user,
            role=serializer.validated_data['role']
        )
    except InsufficientPermissionsError as e:
        return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
    except AlreadyMemberError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(DealerMembershipSerializer(membership).data, status=status.HTTP_201_CREATED)


@extend_schema(
    responses={204: None},
    description="Remove a member from the current dealer (admin only).",
    tags=['dealers'],
)
@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsDealerMember, IsDealerAdmin])
def dealer_member_remove(request, user_id):
    """Soft-remove a member."""
    try:
        remove_member(
            dealer_id=request.dealer_context.dealer_id,
            user_id=user_id,
            removed_by=request.user
        )
    except InsufficientPermissionsError as e:
        return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
    except (NotDealerMemberError, LastOwnerError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(status=status.HTTP_204_NO_CONTENT)
