from bbe_admin.schemas.clients import (
    CURRENCY_OPTIONS,
    INTEGRATION_TYPES,
    LANGUAGE_OPTIONS,
    ClientData,
    ClientPreferences,
    ClientStats,
    ClientStatus,
    ClientSummary,
    NewClient,
    Todo,
    display_status,
    integration_label,
    integration_type,
)

__all__ = [
    "CURRENCY_OPTIONS",
    "INTEGRATION_TYPES",
    "LANGUAGE_OPTIONS",
    "ClientData",
    "ClientPreferences",
    "ClientStats",
    "ClientStatus",
    "ClientSummary",
    "NewClient",
    "Todo",
    "display_status",
    "integration_label",
    "integration_type",
]
