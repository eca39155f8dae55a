"""DVSA MOT History API client for vehicle make/model lookup by registration."""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx
import structlog

logger = structlog.get_logger(__name__)

TOKEN_REFRESH_SKEW_SECONDS = 60.0
MIN_VRM_LENGTH = 2
MAX_VRM_LENGTH = 8


class MOTLookupError(Exception):
    """DVSA API error."""

    pass


class MOTLookupConfigurationError(MOTLookupError):
    """OAuth client credentials are not configured."""

    pass


@dataclass(frozen=True)
class VehicleSummary:
    make: Optional[str]
    model: Optional[str]


def normalize_vrm(vrm: str) -> Optional[str]:
    """Strip whitespace and upper-case. Returns None for implausible lengths."""
    clean = ''.join((vrm or '').split()).upper()
    if not MIN_VRM_LENGTH <= len(clean) <= MAX_VRM_LENGTH:
        return None
    return clean


class AccessTokenCache:
    """OAuth access token with its expiry.

    A token is treated as stale TOKEN_REFRESH_SKEW_SECONDS before it actually
    expires. The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        skew_seconds: float = TOKEN_REFRESH_SKEW_SECONDS,
    ):
        self._clock = clock
        self._skew = skew_seconds
        self._lock = threading.Lock()
        self._token: Optional[str] = None
        self._expires_at = 0.0

    def get(self) -> Optional[str]:
        """Return the cached token, or None if missing or about to expire."""
        with self._lock:
            if self._token and self._expires_at > self._clock() + self._skew:
                return self._token
            return None

    def store(self, token: str, expires_in: float) -> None:
        with self._lock:
            self._token = token
            self._expires_at = self._clock() + expires_in

    def clear(self) -> None:
        with self._lock:
            self._token = None
            self._expires_at = 0.0


class MOTLookupClient:
    """Looks up vehicles by VRM using OAuth client credentials plus an API key.

    Lookups are best effort: HTTP and network failures are logged and
    reported as "no result". Missing OAuth configuration is a deployment
    error and raises MOTLookupConfigurationError.
    """

    def __init__(
        self,
        token_cache: AccessTokenCache,
        http_client: Optional[httpx.Client] = None,
        *,
        token_url: str = '',
        client_id: str = '',
        client_secret: str = '',
        scope: str = '',
        api_key: str = '',
        api_base: str = 'https://history.mot.api.gov.uk',
        timeout: float = 10.0,
    ):
        self.token_cache = token_cache
        self._http_client = http_client
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = scope
        self.api_key = api_key
        self.api_base = api_base.rstrip('/')
        self.timeout = timeout

    @property
    def http(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(timeout=self.timeout)
        return self._http_client

    @property
    def is_configured(self) -> bool:
        return bool(self.token_url and self.client_id and self.client_secret and self.api_key)

    def get_access_token(self) -> str:
        """Return a cached token or fetch a new one.

        Raises:
            MOTLookupConfigurationError: If OAuth settings are missing
            MOTLookupError: If the token endpoint fails
        """
        token = self.token_cache.get()
        if token:
            return token

        if not (self.token_url and self.client_id and self.client_secret):
            raise MOTLookupConfigurationError("Missing DVSA OAuth configuration")

        data = {
            'grant_type': 'client_credentials',
            'client_id': self.client_id,
            'client_secret': self.client_secret,
        }
        if self.scope:
            data['scope'] = self.scope

        try:
            response = self.http.post(self.token_url, data=data)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise MOTLookupError(f"Failed to obtain OAuth token: {e}") from e

        token = payload.get('access_token')
        if not token:
            raise MOTLookupError("OAuth response did not include an access token")

        self.token_cache.store(token, float(payload.get('expires_in', 0)))
        logger.info("dvsa_token_refreshed", expires_in=payload.get('expires_in'))
        return token

    def lookup_vehicle(self, vrm: str) -> Optional[VehicleSummary]:
        """Return make and model for a VRM, or None if it cannot be found."""
        clean_vrm = normalize_vrm(vrm)
        if clean_vrm is None:
            return None

        if not self.api_key:
            logger.warning("dvsa_api_key_missing")
            return None

        try:
            token = self.get_access_token()
        except MOTLookupConfigurationError:
            raise
        except MOTLookupError as e:
            logger.error("dvsa_token_failed", error=str(e))
            return None

        try:
            response = self.http.get(
                f"{self.api_base}/v1/trade/vehicles/registration/{clean_vrm}",
                headers={
                    'Authorization': f'Bearer {token}',
                    'X-API-Key': self.api_key,
                },
            )
        except httpx.HTTPError as e:
            logger.error("dvsa_lookup_failed", vrm=clean_vrm, error=str(e))
            return None

        if response.status_code == 401:
            # Token revoked early; drop it so the next lookup fetches a new one
            self.token_cache.clear()

        if response.status_code != 200:
            logger.info("dvsa_lookup_no_result", vrm=clean_vrm, status_code=response.status_code)
            return None

        try:
            data = response.json()
        except ValueError:
            logger.error("dvsa_lookup_bad_json", vrm=clean_vrm)
            return None

        vehicle = data[0] if isinstance(data, list) and data else data
        if not vehicle or not isinstance(vehicle, dict):
            return None

        return VehicleSummary(
            make=vehicle.get('make') or None,
            model=vehicle.get('model') or None,
        )
