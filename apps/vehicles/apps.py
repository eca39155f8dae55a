from django.apps import AppConfig
from django.conf import settings


class VehiclesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.vehicles'

    def ready(self):
        from apps.vehicles.services import AccessTokenCache, MOTLookupClient

        # One token cache per process, shared by every request
        self.mot_client = MOTLookupClient(
            token_cache=AccessTokenCache(),
            token_url=settings.DVSA_TOKEN_URL,
            client_id=settings.DVSA_CLIENT_ID,
            client_secret=settings.DVSA_CLIENT_SECRET,
            scope=settings.DVSA_SCOPE,
            api_key=settings.DVSA_API_KEY,
            api_base=settings.DVSA_API_BASE,
            timeout=settings.DVSA_TIMEOUT_SECONDS,
        )
