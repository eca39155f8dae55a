from rest_framework import serializers

from apps.accounts.models import User
from .models import Dealer, DealerMembership, DealerRole


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal user info for nested serialization."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'display_name']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()


class DealerSerializer(serializers.ModelSerializer):
    """Main serializer for dealers, including sales settings."""

    user_role = serializers.SerializerMethodField()

    class Meta:
        model = Dealer
        fields = [
            'id',
            'name',
            'slug',
            'company_name',
            'company_address',
            'company_phone',
            'company_email',
            'company_number',
            'vat_registered',
            'vat_number',
            'invoice_number_prefix',
            'deposit_receipt_prefix',
            'payment_receipt_prefix',
            'self_bill_prefix',
            'user_role',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'slug', 'created_at', 'updated_at']

    def get_user_role(self, obj):
        """Get current user's role at the dealer."""
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            membership = obj.get_membership(request.user)
            return membership.role if membership else None
        return None


class DealerCreateSerializer(serializers.Serializer):
    """Serializer for creating dealers."""

    name = serializers.CharField(max_length=200)
    slug = serializers.SlugField(max_length=70, required=False)


class SalesSettingsSerializer(serializers.ModelSerializer):
    """Writable subset of dealer fields for PATCH /api/dealers/current/."""

    class Meta:
        model = Dealer
        fields = [
            'company_name',
            'company_address',
            'company_phone',
            'company_email',
            'company_number',
            'vat_registered',
            'vat_number',
            'invoice_number_prefix',
            'deposit_receipt_prefix',
            'payment_receipt_prefix',
            'self_bill_prefix',
        ]


class DealerMembershipSerializer(serializers.ModelSerializer):
    """Serializer for a user's membership, with the dealer summarised."""

    dealer_name = serializers.CharField(source='dealer.name', read_only=True)
    dealer_slug = serializers.CharField(source='dealer.slug', read_only=True)
    user = UserMinimalSerializer(read_only=True)

    class Meta:
        model = DealerMembership
        fields = ['id', 'dealer', 'dealer_name', 'dealer_slug', 'user', 'role', 'created_at']
        read_only_fields = fields


class AddMemberSerializer(serializers.Serializer):
    """Serializer for adding a member by email."""

    email = serializers.EmailField()
    role = serializers.ChoiceField(choices=DealerRole.choices, default=DealerRole.STAFF)

    def validate_email(self, value):
        try:
            return User.objects.get(email__iexact=value)
        except User.DoesNotExist:
            raise serializers.ValidationError('No user with this email')
