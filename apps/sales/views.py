from rest_framework import viewsets, status, mixins
from rest_framework.decorators import action, api_view, permission_classes, authentication_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from apps.dealers.permissions import IsDealerMember, IsDealerAdmin

from .exceptions import DocumentNumberUnavailable, DealNotFound, DealActionRejected
from .models import Deal, DealStatus, DocumentCounter, SalesDocument
from .serializers import (
    DealSerializer,
    DealListSerializer,
    DealFilterSerializer,
    DealFlowResponseSerializer,
    DocumentFilterSerializer,
    SalesDocumentSerializer,
    SalesDocumentListSerializer,
    PublicDocumentSerializer,
    PaymentInputSerializer,
    BalancePaymentInputSerializer,
    VoidInvoiceInputSerializer,
    MarkCompletedInputSerializer,
    CancelDealInputSerializer,
    DocumentCounterSerializer,
    InitializeCounterSerializer,
)

from apps.sales.services import (
    take_deposit,
    generate_invoice,
    void_invoice,
    record_balance_payment,
    mark_delivered,
    mark_completed,
    cancel_deal,
    generate_self_bill,
    get_counter,
    initialize_counter,
    highest_existing_sequence,
    get_document_by_share_token,
    # Exceptions
    DocumentNumberAllocationError,
    CounterContentionError,
    DealNotFoundError,
    InvalidDealStateError,
    DealIncompleteError,
    InvoiceAlreadyExistsError,
    InvalidPaymentAmountError,
    ShareLinkInvalidError,
)


class SalesPagination(PageNumberPagination):
    """Custom pagination for deals and documents."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


def _run_flow(flow, **kwargs):
    """Call a lifecycle flow, translating service errors to HTTP errors."""
    try:
        return flow(**kwargs)
    except DealNotFoundError as e:
        raise DealNotFound(str(e))
    except (DocumentNumberAllocationError, CounterContentionError):
        raise DocumentNumberUnavailable()
    except (
        InvalidDealStateError,
        DealIncompleteError,
        InvoiceAlreadyExistsError,
        InvalidPaymentAmountError,
    ) as e:
        raise DealActionRejected(str(e))


class DealViewSet(viewsets.ModelViewSet):
    """
    ViewSet for deals at the current dealer.

    list: Get the dealer's deals (filterable by status/vrm)
    create: Create a draft deal
    retrieve: Get a deal with payments and documents
    update: Update deal details
    destroy: Delete a draft deal
    """

    serializer_class = DealSerializer
    permission_classes = [IsAuthenticated, IsDealerMember]
    pagination_class = SalesPagination

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return Deal.objects.none()

        queryset = Deal.objects.filter(
            dealer=self.request.dealer_context.dealer
        ).prefetch_related('payments', 'documents')

        if self.action == 'list':
            filter_serializer = DealFilterSerializer(data=self.request.query_params)
            filter_serializer.is_valid(raise_exception=True)
            params = filter_serializer.validated_data

            if 'status' in params:
                queryset = queryset.filter(status=params['status'])
            if params.get('vrm'):
                queryset = queryset.filter(vehicle_vrm__iexact=''.join(params['vrm'].split()))

        return queryset

    def get_serializer_class(self):
        """Use different serializers for different actions."""
        if self.action == 'list':
            return DealListSerializer
        return DealSerializer

    def perform_create(self, serializer):
        serializer.save(
            dealer=self.request.dealer_context.dealer,
            created_by=self.request.user,
            updated_by=self.request.user
        )

    def perform_update(self, serializer):
        if serializer.instance.status == DealStatus.CANCELLED:
            raise DealActionRejected('Cannot edit a cancelled deal')
        serializer.save(updated_by=self.request.user)

    def destroy(self, request, *args, **kwargs):
        """Delete a deal. Only draft or cancelled deals can be deleted."""
        deal = self.get_object()
        if deal.status not in (DealStatus.DRAFT, DealStatus.CANCELLED):
            return Response(
                {'error': 'Only draft or cancelled deals can be deleted'},
                status=status.HTTP_400_BAD_REQUEST
            )
        deal.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    def _context(self):
        return self.request.dealer_context

    @extend_schema(request=PaymentInputSerializer, responses={201: DealFlowResponseSerializer})
    @action(detail=True, methods=['post'])
    def take_deposit(self, request, pk=None):
        """
        Record a deposit and issue a deposit receipt.

        POST /api/sales/deals/{id}/take_deposit/
        Body: {"amount": "500.00", "method": "CARD", "reference": "", "notes": ""}
        """
        serializer = PaymentInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = _run_flow(
            take_deposit,
            deal_id=pk,
            dealer=self._context().dealer,
            user=request.user,
            **serializer.validated_data
        )
        return Response(DealFlowResponseSerializer(result).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses={201: DealFlowResponseSerializer})
    @action(detail=True, methods=['post'])
    def generate_invoice(self, request, pk=None):
        """
        Issue the invoice for a deal.

        POST /api/sales/deals/{id}/generate_invoice/
        """
        result = _run_flow(
            generate_invoice,
            deal_id=pk,
            dealer=self._context().dealer,
            user=request.user
        )
        return Response(DealFlowResponseSerializer(result).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=VoidInvoiceInputSerializer, responses={200: DealFlowResponseSerializer})
    @action(detail=True, methods=['post'])
    def void_invoice(self, request, pk=None):
        """
        Void the active invoice and revert the deal to DEPOSIT_TAKEN.

        POST /api/sales/deals/{id}/void_invoice/
        Body: {"reason": "optional"}
        """
        serializer = VoidInvoiceInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = _run_flow(
            void_invoice,
            deal_id=pk,
            dealer=self._context().dealer,
            user=request.user,
            reason=serializer.validated_data['reason']
        )
        return Response(DealFlowResponseSerializer(result).data)

    @extend_schema(request=BalancePaymentInputSerializer, responses={201: DealFlowResponseSerializer})
    @action(detail=True, methods=['post'])
    def record_balance_payment(self, request, pk=None):
        """
        Record a balance payment, optionally issuing a payment receipt.

        POST /api/sales/deals/{id}/record_balance_payment/
        Body: {"amount": "9500.00", "method": "BANK_TRANSFER", "generate_receipt": true}
        """
        serializer = BalancePaymentInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = _run_flow(
            record_balance_payment,
            deal_id=pk,
            dealer=self._context().dealer,
            user=request.user,
            **serializer.validated_data
        )
        return Response(DealFlowResponseSerializer(result).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses={200: DealFlowResponseSerializer})
    @action(detail=True, methods=['post'])
    def mark_delivered(self, request, pk=None):
        """POST /api/sales/deals/{id}/mark_delivered/"""
        result = _run_flow(
            mark_delivered,
            deal_id=pk,
            dealer=self._context().dealer,
            user=request.user
        )
        return Response(DealFlowResponseSerializer(result).data)

    @extend_schema(request=MarkCompletedInputSerializer, responses={200: DealFlowResponseSerializer})
    @action(detail=True, methods=['post'])
    def mark_completed(self, request, pk=None):
        """
        Complete the deal. An outstanding balance is reported, not rejected.

        POST /api/sales/deals/{id}/mark_completed/
        Body: {"notes": "optional"}
        """
        serializer = MarkCompletedInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = _run_flow(
            mark_completed,
            deal_id=pk,
            dealer=self._context().dealer,
            user=request.user,
            notes=serializer.validated_data['notes']
        )
        return Response(DealFlowResponseSerializer(result).data)

    @extend_schema(request=CancelDealInputSerializer, responses={200: DealFlowResponseSerializer})
    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """
        Cancel the deal.

        POST /api/sales/deals/{id}/cancel/
        Body: {"reason": "required for completed deals"}
        """
        serializer = CancelDealInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = _run_flow(
            cancel_deal,
            deal_id=pk,
            dealer=self._context().dealer,
            user=request.user,
            reason=serializer.validated_data['reason']
        )
        return Response(DealFlowResponseSerializer(result).data)

    @extend_schema(request=None, responses={201: DealFlowResponseSerializer})
    @action(detail=True, methods=['post'])
    def generate_self_bill(self, request, pk=None):
        """
        Issue a self-billing invoice for the part exchange.

        POST /api/sales/deals/{id}/generate_self_bill/
        """
        result = _run_flow(
            generate_self_bill,
            deal_id=pk,
            dealer=self._context().dealer,
            user=request.user
        )
        return Response(DealFlowResponseSerializer(result).data, status=status.HTTP_201_CREATED)


class SalesDocumentViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Read-only access to the dealer's issued documents.

    list: Filter by document_type, status or deal
    retrieve: Full document including snapshot
    """

    permission_classes = [IsAuthenticated, IsDealerMember]
    pagination_class = SalesPagination

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return SalesDocument.objects.none()

        queryset = SalesDocument.objects.filter(dealer=self.request.dealer_context.dealer)

        if self.action == 'list':
            filter_serializer = DocumentFilterSerializer(data=self.request.query_params)
            filter_serializer.is_valid(raise_exception=True)
            params = filter_serializer.validated_data

            for field in ('document_type', 'status'):
                if field in params:
                    queryset = queryset.filter(**{field: params[field]})
            if 'deal' in params:
                queryset = queryset.filter(deal_id=params['deal'])

        return queryset

    def get_serializer_class(self):
        if self.action == 'list':
            return SalesDocumentListSerializer
        return SalesDocumentSerializer


class DocumentCounterViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Numbering sequences of the current dealer."""

    serializer_class = DocumentCounterSerializer
    permission_classes = [IsAuthenticated, IsDealerMember]

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return DocumentCounter.objects.none()
        return DocumentCounter.objects.filter(dealer=self.request.dealer_context.dealer)

    @extend_schema(request=InitializeCounterSerializer, responses={201: DocumentCounterSerializer})
    @action(
        detail=False,
        methods=['post'],
        permission_classes=[IsAuthenticated, IsDealerMember, IsDealerAdmin]
    )
    def initialize(self, request):
        """
        Seed a counter (admin only). Existing counters are left untouched.

        POST /api/sales/counters/initialize/
        Body: {"document_type": "INVOICE", "start_number": 1001, "prefix": "INV"}

        Without start_number the counter continues after the highest
        existing document number.
        """
        serializer = InitializeCounterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        params = serializer.validated_data

        dealer = request.dealer_context.dealer
        document_type = params['document_type']

        start_number = params.get('start_number')
        if start_number is None:
            start_number = (highest_existing_sequence(dealer.id, document_type) or 0) + 1

        prefix = params.get('prefix')
        if prefix is None:
            prefix = dealer.get_document_prefix(document_type)

        created = initialize_counter(dealer.id, document_type, start_number, prefix)
        counter = get_counter(dealer.id, document_type)

        return Response(
            {'created': created, 'counter': DocumentCounterSerializer(counter).data},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
        )


@extend_schema(
    responses={200: PublicDocumentSerializer},
    description="View a sales document through its public share link.",
    tags=['public'],
)
@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def public_document(request, token):
    """Resolve a share token. No login required."""
    try:
        document = get_document_by_share_token(token)
    except ShareLinkInvalidError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

    serializer = PublicDocumentSerializer(document)
    return Response(serializer.data)
