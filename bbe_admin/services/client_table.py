from dataclasses import dataclass, field
from math import ceil
from typing import Any, Callable

from bbe_admin.schemas.clients import ClientSummary

STATUS_ORDER = {"Active": 1, "Pending": 2, "Development": 3, "Inactive": 4}

_SORT_KEYS: dict[str, Callable[[ClientSummary], Any]] = {
    "name": lambda c: c.name.lower(),
    "email": lambda c: c.email.lower(),
    "integrationType": lambda c: c.integration_type.lower(),
    "status": lambda c: STATUS_ORDER.get(c.status, 5),
    "lastActive": lambda c: c.last_active,
}


@dataclass(frozen=True)
class SortKey:
    column: str
    desc: bool = False

    def __str__(self) -> str:
        return f"{self.column}:{'desc' if self.desc else 'asc'}"


DEFAULT_SORT = (SortKey("lastActive", desc=True), SortKey("status"))


def parse_sort(raw: str | None) -> tuple[SortKey, ...]:
    """'lastActive:desc,status' -> SortKey tuple; unknown columns are dropped."""
    if not raw:
        return DEFAULT_SORT
    keys = []
    for part in raw.split(","):
        column, _, direction = part.strip().partition(":")
        if column in _SORT_KEYS:
            keys.append(SortKey(column, desc=direction.lower() == "desc"))
    return tuple(keys) or DEFAULT_SORT


def toggle_sort(current: tuple[SortKey, ...], column: str) -> tuple[SortKey, ...]:
    """Clicking a header makes it the primary key, flipping direction if it already was."""
    if current and current[0].column == column:
        first = SortKey(column, desc=not current[0].desc)
    else:
        first = SortKey(column)
    return (first,) + tuple(k for k in current if k.column != column)


def filter_clients(
    clients: list[ClientSummary],
    search: str = "",
    status: str = "all",
    integration: str = "all",
) -> list[ClientSummary]:
    needle = search.strip().lower()
    result = []
    for client in clients:
        if status != "all" and client.status != status:
            continue
        if integration != "all" and client.integration_type != integration:
            continue
        if needle and not any(
            needle in value.lower()
            for value in (client.name, client.email, client.integration_type)
        ):
            continue
        result.append(client)
    return result


def sort_clients(clients: list[ClientSummary], keys: tuple[SortKey, ...]) -> list[ClientSummary]:
    ordered = list(clients)
    # Stable sorts applied from the least significant key up
    for key in reversed(keys):
        ordered.sort(key=_SORT_KEYS[key.column], reverse=key.desc)
    return ordered


@dataclass
class Page:
    items: list[ClientSummary]
    page: int
    page_size: int
    total: int

    @property
    def pages(self) -> int:
        return max(1, ceil(self.total / self.page_size))

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


def paginate(items: list[ClientSummary], page: int, page_size: int) -> Page:
    page_size = max(1, page_size)
    pages = max(1, ceil(len(items) / page_size))
    page = min(max(1, page), pages)
    start = (page - 1) * page_size
    return Page(items=items[start:start + page_size], page=page, page_size=page_size, total=len(items))


@dataclass
class ClientQuery:
    search: str = ""
    status: str = "all"
    integration: str = "all"
    sort: tuple[SortKey, ...] = field(default=DEFAULT_SORT)
    page: int = 1
    page_size: int = 10

    @property
    def is_filtered(self) -> bool:
        return self.status != "all" or self.integration != "all" or bool(self.search.strip())

    @property
    def sort_param(self) -> str:
        return ",".join(str(k) for k in self.sort)

    def apply(self, clients: list[ClientSummary]) -> Page:
        matching = filter_clients(clients, self.search, self.status, self.integration)
        return paginate(sort_clients(matching, self.sort), self.page, self.page_size)
