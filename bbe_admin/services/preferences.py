import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError

from bbe_admin.core.colors import normalize_color
from bbe_admin.core.logging import log_cache, log_error, log_payload, log_success, safe_map
from bbe_admin.integrations.admin_api import AdminApiClient, AdminApiError
from bbe_admin.schemas.clients import ClientData, Todo

logger = logging.getLogger(__name__)

DEFAULT_TODO_TEXTS = [
    "Client Colors and Font set",
    "Max guests set",
    "Image uploaded to blob server",
    "All listings wix page completed",
    "Dynamic pages completed",
    "Search bar connected",
    "Target domain set to iframe code",
    "Page size set for all listing and single page",
    "Headers size checked",
    "Mobile size check",
]

CLIENT_TEXT_FIELDS = {
    "name": "name",
    "email": "email",
    "ApiKey": "api_key",
    "clientID": "client_id",
    "clientSecret": "client_secret",
    "integrationId": "integration_id",
}
PREFERENCE_TEXT_FIELDS = {
    "imgLink": "img_link",
    "language": "language",
    "wixCmsUrl": "wix_cms_url",
    "customDomain": "custom_domain",
    "productionUrl": "production_url",
    "channelManagerSiteUrl": "channel_manager_site_url",
    "lodgifyWsUrl": "lodgify_ws_url",
    "lodgifyWsId": "lodgify_ws_id",
    "headingFont": "heading_font",
    "bodyFont": "body_font",
    "fontLink": "font_link",
}
COLOR_FIELDS = {
    "primaryColor": "primary_color",
    "secondaryColor": "secondary_color",
    "bookingFooterColor": "booking_footer_color",
    "buttonFontColorOnHover": "button_font_color_on_hover",
}
FLAG_FIELDS = {
    "locationFilter": "location_filter",
    "devMode": "dev_mode",
}
DEFAULT_COLOR = "0,0,0"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def default_todos(created_at: Optional[str] = None) -> list[Todo]:
    created_at = created_at or _now_iso()
    return [
        Todo(id=f"default-{i}", text=text, completed=False, created_at=created_at)
        for i, text in enumerate(DEFAULT_TODO_TEXTS, start=1)
    ]


def normalize_client_data(record: Mapping[str, Any]) -> ClientData:
    """Build the editable record from a raw admin-data payload, filling defaults."""
    prefs = dict(record.get("preferences") or {})

    todos = prefs.get("todos")
    valid_todos = []
    if isinstance(todos, list):
        for item in todos:
            try:
                valid_todos.append(Todo.model_validate(item))
            except ValidationError:
                logger.warning(f"Dropping malformed todo: {item!r}")
    prefs["todos"] = valid_todos or default_todos()
    prefs.pop("integrationLabel", None)

    for wire_name in COLOR_FIELDS:
        prefs[wire_name] = prefs.get(wire_name) or DEFAULT_COLOR

    return ClientData.model_validate({
        "status": record.get("status"),
        "accessKey": record.get("cuid") or record.get("accessKey") or "",
        "name": record.get("name"),
        "email": record.get("email"),
        "ApiKey": record.get("ApiKey"),
        "clientID": record.get("clientID"),
        "clientSecret": record.get("clientSecret"),
        "integrationId": record.get("integrationId"),
        "preferences": prefs,
    })


class PreferencesEditor:
    """
    Working copy of one client's record for one staff session.

    ``original`` is a deep clone of the last loaded or saved state; the record
    is dirty whenever its JSON form differs from that snapshot.
    """

    def __init__(
        self,
        cuid: str,
        api: AdminApiClient,
        cache_seconds: int = 180,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cuid = cuid
        self.api = api
        self.cache_seconds = cache_seconds
        self._clock = clock
        self.client_data: Optional[ClientData] = None
        self.original: Optional[ClientData] = None
        self.error: Optional[str] = None
        self.last_fetch: Optional[float] = None

    @property
    def has_unsaved_changes(self) -> bool:
        if self.client_data is None or self.original is None:
            return False
        return self.client_data.fingerprint() != self.original.fingerprint()

    def is_fresh(self) -> bool:
        return (
            self.client_data is not None
            and self.last_fetch is not None
            and (self._clock() - self.last_fetch) < self.cache_seconds
        )

    async def load(self, force: bool = False) -> Optional[ClientData]:
        if not force and self.is_fresh():
            log_cache(logger, f"preferences for {self.cuid} fresh")
            return self.client_data

        try:
            record = await self.api.get_client(self.cuid)
        except AdminApiError as e:
            log_error(logger, f"Error fetching client preferences for {self.cuid}: {e}")
            # Keep whatever is already loaded
            self.error = e.user_message
            return self.client_data

        self.client_data = normalize_client_data(record)
        self.original = self.client_data.model_copy(deep=True)
        self.last_fetch = self._clock()
        self.error = None
        return self.client_data

    def update(self, data: ClientData) -> ClientData:
        # Re-validate so derived fields (integrationLabel) follow the edit
        self.client_data = ClientData.model_validate(data.model_dump(by_alias=True))
        return self.client_data

    def _require_data(self) -> ClientData:
        if self.client_data is None:
            raise LookupError(f"Preferences for {self.cuid} are not loaded")
        return self.client_data

    def apply_form(self, form: Mapping[str, str], currencies: list[str]) -> ClientData:
        """Fold a submitted preferences form into the working copy."""
        current = self._require_data()
        data = current.model_dump(by_alias=True)
        prefs = data["preferences"]

        if form.get("status"):
            data["status"] = form["status"]
        for wire_name in CLIENT_TEXT_FIELDS:
            if wire_name in form:
                data[wire_name] = form[wire_name].strip()
        for wire_name in PREFERENCE_TEXT_FIELDS:
            if wire_name in form:
                prefs[wire_name] = form[wire_name].strip()
        for wire_name in COLOR_FIELDS:
            if wire_name in form:
                prefs[wire_name] = normalize_color(form[wire_name]) or DEFAULT_COLOR
        if "maxGuests" in form:
            prefs["maxGuests"] = form["maxGuests"]
        for wire_name in FLAG_FIELDS:
            prefs[wire_name] = wire_name in form
        selected = [c for c in prefs.get("currencies") or [] if c in currencies]
        for code in currencies:
            if code not in selected:
                selected.append(code)
        prefs["currencies"] = selected

        return self.update(ClientData.model_validate(data))

    def set_image(self, url: str) -> ClientData:
        data = self._require_data().model_copy(deep=True)
        data.preferences.img_link = url
        return self.update(data)

    def add_todo(self, text: str) -> ClientData:
        text = text.strip()
        data = self._require_data().model_copy(deep=True)
        if text:
            data.preferences.todos.append(
                Todo(id=f"todo-{uuid.uuid4().hex[:12]}", text=text, created_at=_now_iso())
            )
        return self.update(data)

    def toggle_todo(self, todo_id: str) -> ClientData:
        data = self._require_data().model_copy(deep=True)
        for todo in data.preferences.todos:
            if todo.id == todo_id:
                todo.completed = not todo.completed
                todo.completed_at = _now_iso() if todo.completed else None
        return self.update(data)

    def remove_todo(self, todo_id: str) -> ClientData:
        data = self._require_data().model_copy(deep=True)
        data.preferences.todos = [t for t in data.preferences.todos if t.id != todo_id]
        return self.update(data)

    async def save(self) -> ClientData:
        """PUT the whole working copy; the response is merged over it and becomes the snapshot."""
        data = self._require_data()
        sent = data.to_wire()
        log_payload(logger, safe_map(sent), f"Saving client {self.cuid}")
        response = await self.api.update_client(self.cuid, sent)

        merged = {**sent, **response}
        merged["preferences"] = {**sent["preferences"], **(response.get("preferences") or {})}
        merged.pop("id", None)
        self.client_data = normalize_client_data({**merged, "cuid": sent["accessKey"]})
        self.original = self.client_data.model_copy(deep=True)
        self.last_fetch = self._clock()
        self.error = None
        log_success(logger, f"preferences saved for {self.cuid}")
        return self.client_data
