from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

# integrationId -> label the widget expects in INTEGRATION_TYPE
INTEGRATION_LABELS = {
    "1": "guesty",
    "2": "lodgify",
    "3": "hostaway",
}
INTEGRATION_IDS = {label: int(key) for key, label in INTEGRATION_LABELS.items()}

# Record status -> status shown in the client list
DISPLAY_STATUSES = {
    "Production": "Active",
    "Testing": "Pending",
    "Development": "Development",
}
DISPLAY_STATUS_LABELS = {
    "Active": "Production",
    "Pending": "Testing",
    "Development": "Development",
    "Inactive": "Inactive",
}
INTEGRATION_TYPES = ["Guesty", "Lodgify", "Hostaway", "Unknown"]
CURRENCY_OPTIONS = ["USD", "EUR", "CAD"]
LANGUAGE_OPTIONS = {"en": "English", "es": "Spanish", "fr": "French"}


def integration_label(integration_id: Any) -> str:
    key = "" if integration_id is None else str(integration_id)
    return INTEGRATION_LABELS.get(key, "")


def integration_type(integration_id: Any) -> str:
    label = integration_label(integration_id)
    return label.capitalize() if label else "Unknown"


def display_status(status: Any) -> str:
    return DISPLAY_STATUSES.get(status, "Inactive")


class ClientStatus(str, Enum):
    PRODUCTION = "Production"
    INACTIVE = "Inactive"
    DEVELOPMENT = "Development"
    TESTING = "Testing"


class Todo(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: str
    text: str
    completed: bool = False
    created_at: str
    completed_at: Optional[str] = None


class ClientPreferences(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    integration_label: str = ""
    location_filter: bool = False
    lodgify_ws_url: str = ""
    lodgify_ws_id: str = ""
    primary_color: str = ""
    secondary_color: str = ""
    booking_footer_color: str = ""
    button_font_color_on_hover: str = ""
    custom_domain: str = ""
    production_url: str = ""
    channel_manager_site_url: str = ""
    heading_font: str = ""
    body_font: str = ""
    font_link: str = ""
    currencies: list[str] = Field(default_factory=list)
    img_link: str = ""
    wix_cms_url: str = ""
    max_guests: int = 0
    language: str = ""
    dev_mode: bool = False
    todos: list[Todo] = Field(default_factory=list)

    @field_validator("max_guests", mode="before")
    @classmethod
    def coerce_max_guests(cls, v):
        if v in (None, ""):
            return 0
        try:
            return int(v)
        except (TypeError, ValueError):
            return 0

    @field_validator("currencies", mode="before")
    @classmethod
    def coerce_currencies(cls, v):
        return list(v) if isinstance(v, (list, tuple)) else []

    @field_validator("location_filter", "dev_mode", mode="before")
    @classmethod
    def coerce_flags(cls, v):
        return bool(v)


class ClientData(BaseModel):
    """Full record for one tenant, in the shape the admin-data API speaks."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    status: ClientStatus = ClientStatus.DEVELOPMENT
    access_key: str = ""
    name: str = ""
    email: str = ""
    api_key: str = Field(default="", alias="ApiKey")
    client_id: str = Field(default="", alias="clientID")
    client_secret: str = ""
    integration_id: str = ""
    preferences: ClientPreferences = Field(default_factory=ClientPreferences)

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v):
        if isinstance(v, ClientStatus):
            return v
        if v in (None, ""):
            return ClientStatus.DEVELOPMENT
        if not isinstance(v, str) or v not in {s.value for s in ClientStatus}:
            return ClientStatus.INACTIVE
        return v

    @field_validator("integration_id", "access_key", "name", "email", "api_key",
                     "client_id", "client_secret", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return "" if v is None else str(v)

    @model_validator(mode="after")
    def derive_integration_label(self):
        self.preferences.integration_label = integration_label(self.integration_id)
        return self

    @field_serializer("integration_id")
    def serialize_integration_id(self, v: str):
        return int(v) if v.isdigit() else v

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def fingerprint(self) -> str:
        """Structural JSON form used to detect unsaved changes."""
        return self.model_dump_json(by_alias=True)


class NewClient(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=254)
    integration: str = "guesty"
    api_key: str = ""
    client_id: str = ""
    client_secret: str = ""

    def to_wire(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "email": self.email,
            "integrationId": INTEGRATION_IDS.get(self.integration, INTEGRATION_IDS["guesty"]),
        }
        if self.integration == "lodgify":
            payload["apikey"] = self.api_key
        elif self.integration in ("guesty", "hostaway"):
            payload["clientID"] = self.client_id
            payload["clientSecret"] = self.client_secret
        return payload


class ClientSummary(BaseModel):
    """One row of the client list."""

    id: str
    cuid: str
    name: str = ""
    email: str = ""
    last_active: str = ""
    updated_at: Optional[datetime] = None
    status: str = "Inactive"
    integration_type: str = "Unknown"
    production_url: str = ""

    @property
    def status_label(self) -> str:
        return DISPLAY_STATUS_LABELS.get(self.status, "Inactive")

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ClientSummary":
        record_id = str(record.get("id", ""))
        preferences = record.get("preferences") or {}
        updated_at = _parse_timestamp(record.get("updatedAt"))
        return cls(
            id=record_id,
            cuid=record.get("cuid") or record_id,
            name=record.get("name") or "",
            email=record.get("email") or "",
            last_active=updated_at.date().isoformat() if updated_at else "",
            updated_at=updated_at,
            status=display_status(record.get("status")),
            integration_type=integration_type(record.get("integrationId")),
            production_url=preferences.get("productionUrl") or "",
        )


class ClientStats(BaseModel):
    total_clients: int = 0
    active_clients: int = 0
    pending_clients: int = 0
    development_clients: int = 0
    inactive_clients: int = 0

    @classmethod
    def from_summaries(cls, clients: list[ClientSummary]) -> "ClientStats":
        def count(status: str) -> int:
            return sum(1 for c in clients if c.status == status)

        return cls(
            total_clients=len(clients),
            active_clients=count("Active"),
            pending_clients=count("Pending"),
            development_clients=count("Development"),
            inactive_clients=count("Inactive"),
        )

    def percentage(self, value: int) -> float:
        if not self.total_clients:
            return 0.0
        return round(value / self.total_clients * 100, 1)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
