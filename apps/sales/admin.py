# ==========================================
# apps/sales/admin.py
# ==========================================

from django.contrib import admin
from apps.sales.models import Deal, DealPayment, DocumentCounter, SalesDocument


class DealPaymentInline(admin.TabularInline):
    """Inline admin for deal payments."""
    model = DealPayment
    extra = 0
    fields = ['payment_type', 'amount', 'method', 'reference', 'paid_at', 'is_refunded']


@admin.register(Deal)
class DealAdmin(admin.ModelAdmin):
    """Admin interface for Deals."""

    list_display = ['vehicle_vrm', 'customer_name', 'dealer', 'status', 'vehicle_price_gross', 'created_at']
    list_filter = ['status', 'sale_channel', 'created_at']
    search_fields = ['vehicle_vrm', 'customer_name', 'customer_email', 'dealer__name']
    readonly_fields = [
        'deposit_taken_at',
        'invoiced_at',
        'delivered_at',
        'completed_at',
        'cancelled_at',
        'created_at',
        'updated_at',
    ]
    inlines = [DealPaymentInline]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Deal', {
            'fields': ('dealer', 'status', 'sale_channel')
        }),
        ('Customer', {
            'fields': ('customer_name', 'customer_email', 'customer_phone', 'customer_address')
        }),
        ('Vehicle & Pricing', {
            'fields': (
                'vehicle_vrm',
                'vehicle_description',
                'vehicle_price_gross',
                'delivery_amount',
                'part_exchange_allowance',
                'part_exchange_settlement',
            )
        }),
        ('Completion', {
            'fields': ('completion_notes', 'cancellation_reason')
        }),
        ('Metadata', {
            'fields': (
                'deposit_taken_at',
                'invoiced_at',
                'delivered_at',
                'completed_at',
                'cancelled_at',
                'created_at',
                'updated_at',
            ),
            'classes': ('collapse',)
        }),
    )


@admin.register(SalesDocument)
class SalesDocumentAdmin(admin.ModelAdmin):
    """Admin interface for Sales Documents. Numbers are never edited by hand."""

    list_display = ['document_number', 'document_type', 'dealer', 'status', 'issued_at', 'paid_at']
    list_filter = ['document_type', 'status', 'issued_at']
    search_fields = ['document_number', 'dealer__name', 'deal__customer_name']
    readonly_fields = [
        'dealer',
        'deal',
        'document_type',
        'document_number',
        'issued_at',
        'share_token_hash',
        'share_expires_at',
        'snapshot_data',
        'created_by',
        'created_at',
        'updated_at',
    ]
    ordering = ['-created_at']


@admin.register(DocumentCounter)
class DocumentCounterAdmin(admin.ModelAdmin):
    """
    Admin interface for numbering sequences.

    Counters can be inspected and their prefix changed, but never deleted
    or moved backwards from here.
    """

    list_display = ['dealer', 'document_type', 'prefix', 'next_number', 'updated_at']
    list_filter = ['document_type']
    search_fields = ['dealer__name', 'dealer__slug']
    readonly_fields = ['dealer', 'document_type', 'next_number', 'created_at', 'updated_at']
    ordering = ['dealer__name', 'document_type']

    def has_delete_permission(self, request, obj=None):
        return False

    def has_add_permission(self, request):
        return False
