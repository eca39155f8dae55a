"""
Tests for the DVSA MOT lookup client and endpoint.

HTTP is served by httpx.MockTransport; token expiry uses a fake clock.
"""

import httpx
import pytest
from unittest.mock import patch
from django.urls import reverse
from rest_framework import status

from apps.vehicles.services import (
    AccessTokenCache,
    MOTLookupClient,
    MOTLookupConfigurationError,
    VehicleSummary,
    normalize_vrm,
)

TOKEN_URL = 'https://login.example.com/oauth2/token'
API_BASE = 'https://mot.example.com'


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeDVSA:
    """Minimal DVSA token + vehicle endpoints."""

    def __init__(self, vehicles=None, expires_in=3600):
        self.vehicles = vehicles or {}
        self.expires_in = expires_in
        self.token_requests = 0
        self.lookups = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if str(request.url) == TOKEN_URL:
            self.token_requests += 1
            return httpx.Response(200, json={
                'access_token': f'token-{self.token_requests}',
                'expires_in': self.expires_in,
            })

        vrm = request.url.path.rsplit('/', 1)[-1]
        self.lookups.append((vrm, request.headers.get('Authorization'), request.headers.get('X-API-Key')))
        if vrm in self.vehicles:
            return httpx.Response(200, json=[self.vehicles[vrm]])
        return httpx.Response(404, json={'errorMessage': 'No data found'})


def make_client(dvsa, clock=None, **overrides):
    options = {
        'token_url': TOKEN_URL,
        'client_id': 'client',
        'client_secret': 'secret',
        'scope': 'https://tapi.dvsa.gov.uk/.default',
        'api_key': 'api-key',
        'api_base': API_BASE,
    }
    options.update(overrides)
    return MOTLookupClient(
        token_cache=AccessTokenCache(clock=clock or FakeClock()),
        http_client=httpx.Client(transport=httpx.MockTransport(dvsa)),
        **options
    )


class TestNormalizeVrm:

    @pytest.mark.parametrize('raw, expected', [
        (' ab12 cde ', 'AB12CDE'),
        ('A1', 'A1'),
        ('A', None),
        ('ABCDEFGHI', None),
        ('', None),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_vrm(raw) == expected


class TestAccessTokenCache:

    def test_empty(self):
        assert AccessTokenCache(clock=FakeClock()).get() is None

    def test_token_goes_stale_before_expiry(self):
        clock = FakeClock()
        cache = AccessTokenCache(clock=clock)
        cache.store('abc', expires_in=300)

        clock.advance(239)
        assert cache.get() == 'abc'

        clock.advance(1)
        assert cache.get() is None

    def test_clear(self):
        cache = AccessTokenCache(clock=FakeClock())
        cache.store('abc', expires_in=300)
        cache.clear()

        assert cache.get() is None


class TestMOTLookupClient:

    def test_lookup_vehicle(self):
        dvsa = FakeDVSA(vehicles={'AB12CDE': {'make': 'FORD', 'model': 'FOCUS'}})
        client = make_client(dvsa)

        vehicle = client.lookup_vehicle('ab12 cde')

        assert vehicle == VehicleSummary(make='FORD', model='FOCUS')
        assert dvsa.lookups == [('AB12CDE', 'Bearer token-1', 'api-key')]

    def test_token_is_reused_until_stale(self):
        clock = FakeClock()
        dvsa = FakeDVSA(vehicles={'AB12CDE': {'make': 'FORD', 'model': 'FOCUS'}}, expires_in=600)
        client = make_client(dvsa, clock=clock)

        client.lookup_vehicle('AB12CDE')
        client.lookup_vehicle('AB12CDE')
        assert dvsa.token_requests == 1

        clock.advance(541)
        client.lookup_vehicle('AB12CDE')
        assert dvsa.token_requests == 2
        assert dvsa.lookups[-1][1] == 'Bearer token-2'

    def test_unknown_vehicle(self):
        client = make_client(FakeDVSA())

        assert client.lookup_vehicle('ZZ99ZZZ') is None

    def test_invalid_vrm_skips_http(self):
        dvsa = FakeDVSA()
        client = make_client(dvsa)

        assert client.lookup_vehicle('A') is None
        assert dvsa.token_requests == 0

    def test_missing_oauth_configuration(self):
        client = make_client(FakeDVSA(), client_secret='')

        with pytest.raises(MOTLookupConfigurationError):
            client.lookup_vehicle('AB12CDE')

    def test_missing_api_key_returns_none(self):
        client = make_client(FakeDVSA(), api_key='')

        assert client.lookup_vehicle('AB12CDE') is None

    def test_token_endpoint_failure_returns_none(self):
        def handler(request):
            return httpx.Response(500)

        client = make_client(handler)

        assert client.lookup_vehicle('AB12CDE') is None

    def test_network_error_returns_none(self):
        dvsa = FakeDVSA()

        def handler(request):
            if str(request.url) == TOKEN_URL:
                return dvsa(request)
            raise httpx.ConnectError('connection refused', request=request)

        client = make_client(handler)

        assert client.lookup_vehicle('AB12CDE') is None

    def test_unauthorized_clears_token(self):
        dvsa = FakeDVSA()

        def handler(request):
            if str(request.url) == TOKEN_URL:
                return dvsa(request)
            return httpx.Response(401)

        client = make_client(handler)

        assert client.lookup_vehicle('AB12CDE') is None
        assert client.token_cache.get() is None


@pytest.mark.django_db
class TestVehicleLookupAPI:

    def test_lookup(self, staff_client):
        dvsa = FakeDVSA(vehicles={'AB12CDE': {'make': 'FORD', 'model': 'FOCUS'}})

        with patch('apps.vehicles.views.get_mot_client', return_value=make_client(dvsa)):
            response = staff_client.get(reverse('vehicles:vehicle-lookup'), {'vrm': 'ab12cde'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'vrm': 'AB12CDE', 'make': 'FORD', 'model': 'FOCUS'}

    def test_not_found(self, staff_client):
        with patch('apps.vehicles.views.get_mot_client', return_value=make_client(FakeDVSA())):
            response = staff_client.get(reverse('vehicles:vehicle-lookup'), {'vrm': 'ZZ99ZZZ'})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_invalid_vrm(self, staff_client):
        response = staff_client.get(reverse('vehicles:vehicle-lookup'), {'vrm': 'X'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unconfigured_service(self, staff_client):
        unconfigured = make_client(FakeDVSA(), token_url='')

        with patch('apps.vehicles.views.get_mot_client', return_value=unconfigured):
            response = staff_client.get(reverse('vehicles:vehicle-lookup'), {'vrm': 'AB12CDE'})

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    def test_client_built_at_startup(self):
        from django.apps import apps

        client = apps.get_app_config('vehicles').mot_client

        assert isinstance(client, MOTLookupClient)
        assert isinstance(client.token_cache, AccessTokenCache)
