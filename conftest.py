import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User
from apps.dealers.models import Dealer, DealerMembership, DealerRole


def make_user(email, name=''):
    return User.objects.create_user(email=email, password='TestPass123!', name=name)


def _authenticate(client, user, dealer=None):
    """Attach JWT credentials and, optionally, the dealer slug header."""
    refresh = RefreshToken.for_user(user)
    headers = {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}
    if dealer is not None:
        headers['HTTP_X_DEALER_SLUG'] = dealer.slug
    client.credentials(**headers)
    return client


@pytest.fixture
def authenticate():
    """Return a helper that authenticates a client as a user at a dealer."""
    return _authenticate


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def owner_user(db):
    """Create and return the dealer owner."""
    return make_user('owner@example.com', 'Dealer Owner')


@pytest.fixture
def staff_user(db):
    """Create and return a staff member."""
    return make_user('staff@example.com', 'Sales Staff')


@pytest.fixture
def other_user(db):
    """Create and return a user with no dealer."""
    return make_user('other@example.com', 'Other User')


@pytest.fixture
def dealer(owner_user, staff_user):
    """Dealer with an owner and one staff member."""
    dealer = Dealer.objects.create(
        name='Northside Motors',
        slug='northside-motors',
        company_name='Northside Motors Ltd',
    )
    DealerMembership.objects.create(user=owner_user, dealer=dealer, role=DealerRole.OWNER)
    DealerMembership.objects.create(user=staff_user, dealer=dealer, role=DealerRole.STAFF)
    return dealer


@pytest.fixture
def other_dealer(other_user):
    """A second tenant, owned by other_user."""
    dealer = Dealer.objects.create(name='Southside Cars', slug='southside-cars')
    DealerMembership.objects.create(user=other_user, dealer=dealer, role=DealerRole.OWNER)
    return dealer


@pytest.fixture
def owner_client(api_client, owner_user, dealer):
    """API client authenticated as the owner, scoped to dealer."""
    return _authenticate(api_client, owner_user, dealer)


@pytest.fixture
def staff_client(api_client, staff_user, dealer):
    """API client authenticated as staff, scoped to dealer."""
    return _authenticate(api_client, staff_user, dealer)
