# ==========================================
# apps/dealers/admin.py
# ==========================================

from django.contrib import admin
from apps.dealers.models import Dealer, DealerMembership


class DealerMembershipInline(admin.TabularInline):
    """Inline admin for dealer memberships."""
    model = DealerMembership
    fk_name = 'dealer'
    extra = 0
    fields = ['user', 'role', 'created_at', 'removed_at']
    readonly_fields = ['created_at', 'removed_at']


@admin.register(Dealer)
class DealerAdmin(admin.ModelAdmin):
    """Admin interface for Dealers."""

    list_display = ['name', 'slug', 'member_count', 'vat_registered', 'created_at']
    list_filter = ['vat_registered', 'created_at']
    search_fields = ['name', 'slug', 'company_name', 'company_email']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [DealerMembershipInline]
    ordering = ['name']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'slug')
        }),
        ('Company Details', {
            'fields': (
                'company_name',
                'company_address',
                'company_phone',
                'company_email',
                'company_number',
                'vat_registered',
                'vat_number',
            )
        }),
        ('Document Prefixes', {
            'fields': (
                'invoice_number_prefix',
                'deposit_receipt_prefix',
                'payment_receipt_prefix',
                'self_bill_prefix',
            )
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def member_count(self, obj):
        """Show number of active members."""
        return obj.memberships.filter(removed_at__isnull=True).count()
    member_count.short_description = 'Members'


@admin.register(DealerMembership)
class DealerMembershipAdmin(admin.ModelAdmin):
    """Admin interface for Dealer Memberships."""

    list_display = ['user', 'dealer', 'role', 'created_at', 'removed_at']
    list_filter = ['role', 'created_at']
    search_fields = ['user__email', 'dealer__name', 'dealer__slug']
    readonly_fields = ['created_at', 'last_active_at']
    ordering = ['-created_at']
