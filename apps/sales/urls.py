from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'sales'

# Router for ViewSets
router = DefaultRouter()
router.register(r'deals', views.DealViewSet, basename='deal')
router.register(r'documents', views.SalesDocumentViewSet, basename='document')
router.register(r'counters', views.DocumentCounterViewSet, basename='counter')

urlpatterns = [
    # Deal ViewSet routes (X-Dealer-Slug header required)
    # GET    /api/sales/deals/                               - List deals
    # POST   /api/sales/deals/                               - Create deal
    # GET    /api/sales/deals/{id}/                          - Deal with payments/documents
    # PATCH  /api/sales/deals/{id}/                          - Update deal
    # DELETE /api/sales/deals/{id}/                          - Delete draft deal
    # POST   /api/sales/deals/{id}/take_deposit/             - Deposit + receipt
    # POST   /api/sales/deals/{id}/generate_invoice/         - Issue invoice
    # POST   /api/sales/deals/{id}/void_invoice/             - Void invoice
    # POST   /api/sales/deals/{id}/record_balance_payment/   - Balance payment + receipt

    # Documents and counters
    # GET    /api/sales/documents/                           - List issued documents
    # GET    /api/sales/documents/{id}/                      - Document detail
    # GET    /api/sales/counters/                            - Numbering sequences
    # POST   /api/sales/counters/initialize/                 - Seed a sequence (admin)

    path('', include(router.urls)),
]
