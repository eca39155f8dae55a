"""
API tests for sales app.
"""

import pytest
from decimal import Decimal
from unittest.mock import patch
from django.urls import reverse
from rest_framework import status

from apps.sales.models import Deal, DealStatus, DocumentCounter, DocumentType
from apps.sales.services import initialize_counter
from apps.sales.services.exceptions import DocumentNumberAllocationError


def deal_action(deal, name):
    return reverse(f'sales:deal-{name}', kwargs={'pk': deal.id})


@pytest.mark.django_db
class TestDealAPI:

    def test_create_deal_is_scoped_to_dealer(self, staff_client, dealer, staff_user):
        response = staff_client.post(
            reverse('sales:deal-list'),
            {
                'customer_name': 'Sam Driver',
                'vehicle_vrm': 'ab12 cde',
                'vehicle_price_gross': '7495.00',
            },
            format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['vehicle_vrm'] == 'AB12CDE'
        assert response.data['status'] == DealStatus.DRAFT
        assert response.data['grand_total'] == '7495.00'
        deal = Deal.objects.get(id=response.data['id'])
        assert deal.dealer == dealer
        assert deal.created_by == staff_user

    def test_list_only_shows_own_dealer(self, staff_client, deal, other_dealer):
        Deal.objects.create(dealer=other_dealer, customer_name='Elsewhere')

        response = staff_client.get(reverse('sales:deal-list'))

        assert response.status_code == status.HTTP_200_OK
        assert [d['id'] for d in response.data['results']] == [str(deal.id)]

    def test_list_filter_by_status(self, staff_client, deal):
        response = staff_client.get(reverse('sales:deal-list'), {'status': 'INVOICED'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 0

    def test_other_tenants_deal_is_404(self, api_client, authenticate, other_user, other_dealer, deal):
        authenticate(api_client, other_user, other_dealer)

        response = api_client.get(reverse('sales:deal-detail', kwargs={'pk': deal.id}))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delete_only_drafts(self, staff_client, deal):
        deal.status = DealStatus.DEPOSIT_TAKEN
        deal.save()

        response = staff_client.delete(reverse('sales:deal-detail', kwargs={'pk': deal.id}))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert Deal.objects.filter(id=deal.id).exists()

    def test_take_deposit(self, staff_client, deal):
        response = staff_client.post(
            deal_action(deal, 'take-deposit'),
            {'amount': '500.00', 'method': 'CARD'},
            format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['deal_status'] == DealStatus.DEPOSIT_TAKEN
        assert response.data['document']['document_number'] == 'DEP00001'
        assert '/api/public/documents/' in response.data['share_url']

    def test_take_deposit_validates_amount(self, staff_client, deal):
        response = staff_client.post(
            deal_action(deal, 'take-deposit'),
            {'amount': '0', 'method': 'CARD'},
            format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_allocation_failure_is_503(self, staff_client, deal):
        with patch(
            'apps.sales.services.deal_lifecycle.allocate_number',
            side_effect=DocumentNumberAllocationError(attempts=5)
        ):
            response = staff_client.post(deal_action(deal, 'generate-invoice'))

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.data['detail'] == 'Failed to generate document number, please retry.'
        deal.refresh_from_db()
        assert deal.status == DealStatus.DRAFT

    def test_invoice_void_reissue(self, staff_client, deal):
        first = staff_client.post(deal_action(deal, 'generate-invoice'))
        assert first.status_code == status.HTTP_201_CREATED
        assert first.data['document']['document_number'] == 'INV00001'

        duplicate = staff_client.post(deal_action(deal, 'generate-invoice'))
        assert duplicate.status_code == status.HTTP_400_BAD_REQUEST

        voided = staff_client.post(
            deal_action(deal, 'void-invoice'),
            {'reason': 'Wrong address'},
            format='json'
        )
        assert voided.status_code == status.HTTP_200_OK
        assert voided.data['document']['status'] == 'VOID'
        assert voided.data['share_url'] is None

        second = staff_client.post(deal_action(deal, 'generate-invoice'))
        assert second.status_code == status.HTTP_201_CREATED
        assert second.data['document']['document_number'] == 'INV00002'

    def test_record_balance_payment(self, staff_client, deal):
        response = staff_client.post(
            deal_action(deal, 'record-balance-payment'),
            {'amount': '10000.00', 'method': 'BANK_TRANSFER'},
            format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['is_full_payment'] is True
        assert response.data['balance_after'] == '0.00'
        assert response.data['document']['document_number'] == 'PAY00001'

    def test_deal_lifecycle_to_completion(self, staff_client, deal):
        staff_client.post(deal_action(deal, 'generate-invoice'))

        delivered = staff_client.post(deal_action(deal, 'mark-delivered'))
        assert delivered.status_code == status.HTTP_200_OK
        assert delivered.data['deal_status'] == DealStatus.DELIVERED
        assert delivered.data['document'] is None

        completed = staff_client.post(
            deal_action(deal, 'mark-completed'),
            {'notes': 'Collected'},
            format='json'
        )
        assert completed.status_code == status.HTTP_200_OK
        assert completed.data['deal_status'] == DealStatus.COMPLETED
        assert completed.data['is_full_payment'] is False

        again = staff_client.post(deal_action(deal, 'mark-completed'))
        assert again.status_code == status.HTTP_400_BAD_REQUEST

    def test_mark_delivered_requires_invoice(self, staff_client, deal):
        response = staff_client.post(deal_action(deal, 'mark-delivered'))

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_cancel_deal(self, staff_client, deal):
        response = staff_client.post(
            deal_action(deal, 'cancel'),
            {'reason': 'Finance declined'},
            format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['deal_status'] == DealStatus.CANCELLED
        deal.refresh_from_db()
        assert deal.cancellation_reason == 'Finance declined'

    def test_cancelled_deal_is_read_only(self, staff_client, deal):
        staff_client.post(deal_action(deal, 'cancel'))

        response = staff_client.patch(
            reverse('sales:deal-detail', kwargs={'pk': deal.id}),
            {'customer_name': 'Someone Else'},
            format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        deal.refresh_from_db()
        assert deal.customer_name == 'Jane Buyer'

    def test_cancelled_deal_can_be_deleted(self, staff_client, deal):
        staff_client.post(deal_action(deal, 'cancel'))

        response = staff_client.delete(reverse('sales:deal-detail', kwargs={'pk': deal.id}))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Deal.objects.filter(id=deal.id).exists()

    def test_generate_self_bill(self, staff_client, deal):
        deal.part_exchange_allowance = Decimal('2500.00')
        deal.save()

        response = staff_client.post(deal_action(deal, 'generate-self-bill'))

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['document']['document_number'] == 'SB00001'
        assert response.data['document']['document_type'] == DocumentType.SELF_BILL_INVOICE

    def test_generate_self_bill_without_part_exchange(self, staff_client, deal):
        response = staff_client.post(deal_action(deal, 'generate-self-bill'))

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_missing_dealer_header(self, api_client, authenticate, staff_user, deal):
        authenticate(api_client, staff_user)

        response = api_client.get(reverse('sales:deal-list'))

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestDocumentAPI:

    def test_list_and_filter_documents(self, staff_client, deal):
        staff_client.post(deal_action(deal, 'take-deposit'), {'amount': '100.00', 'method': 'CASH'}, format='json')
        staff_client.post(deal_action(deal, 'generate-invoice'))

        response = staff_client.get(reverse('sales:document-list'), {'document_type': 'INVOICE'})

        assert response.status_code == status.HTTP_200_OK
        assert [d['document_number'] for d in response.data['results']] == ['INV00001']

    def test_public_document(self, api_client, staff_client, deal):
        created = staff_client.post(deal_action(deal, 'generate-invoice'))
        token = created.data['share_url'].rstrip('/').rsplit('/', 1)[-1]
        api_client.credentials()

        response = api_client.get(reverse('public-document', kwargs={'token': token}))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['document_number'] == 'INV00001'
        assert 'share_token_hash' not in response.data

    def test_public_document_unknown_token(self, api_client, db):
        response = api_client.get(reverse('public-document', kwargs={'token': 'nope'}))

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestCounterAPI:

    def test_list_counters(self, staff_client, dealer):
        initialize_counter(dealer.id, DocumentType.INVOICE, 40, 'INV')

        response = staff_client.get(reverse('sales:counter-list'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data[0]['next_number'] == 40

    def test_initialize_counter(self, owner_client, dealer):
        url = reverse('sales:counter-initialize')

        response = owner_client.post(
            url,
            {'document_type': 'INVOICE', 'start_number': 1001},
            format='json'
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['created'] is True
        assert response.data['counter']['prefix'] == 'INV'

        again = owner_client.post(
            url,
            {'document_type': 'INVOICE', 'start_number': 1},
            format='json'
        )
        assert again.status_code == status.HTTP_200_OK
        assert again.data['created'] is False
        assert DocumentCounter.objects.get(dealer=dealer).next_number == 1001

    def test_initialize_counter_admin_only(self, staff_client):
        response = staff_client.post(
            reverse('sales:counter-initialize'),
            {'document_type': 'INVOICE'},
            format='json'
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
