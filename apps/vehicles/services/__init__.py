from .mot_lookup import (
    AccessTokenCache,
    MOTLookupClient,
    MOTLookupConfigurationError,
    MOTLookupError,
    VehicleSummary,
    normalize_vrm,
)


__all__ = [
    'AccessTokenCache',
    'MOTLookupClient',
    'MOTLookupConfigurationError',
    'MOTLookupError',
    'VehicleSummary',
    'normalize_vrm',
]
