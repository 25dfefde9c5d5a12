"""Generic list pipeline: fetch -> filter -> sort -> paginate -> select.

Every list page in the portal drives one ``ListPipeline`` configured with a
``ListConfig``. The pipeline owns the page's ``PipelineState`` and keeps
pagination and selection consistent as inputs change.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, Mapping, Optional, TypeVar

import aiohttp

from .timestamps import timestamp_sort_key

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]
R = TypeVar("R", bound=Mapping[str, Any])


class FetchError(Exception):
    """A failed page fetch.

    ``kind`` is one of ``transport`` (non-2xx or no response), ``application``
    (``success: false``) or ``shape`` (body is not the expected envelope).
    """

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass(slots=True, frozen=True)
class CategoricalFilter:
    name: str
    field: str
    default: str = ""
    match: str = "exact"  # or "contains"
    label: str = ""


@dataclass(slots=True, frozen=True)
class ListConfig:
    """Declarative per-page pipeline configuration."""

    label: str
    search_fields: Optional[tuple[str, ...]] = None  # None searches every value
    categorical_filters: tuple[CategoricalFilter, ...] = ()
    sort_field: Optional[str] = None
    page_size: int = 20
    id_field: Optional[str] = "id"

    def filter_named(self, name: str) -> Optional[CategoricalFilter]:
        for flt in self.categorical_filters:
            if flt.name == name:
                return flt
        return None


@dataclass(slots=True)
class Notification:
    level: str
    message: str


@dataclass
class PipelineState(Generic[R]):
    raw_records: list[R] = field(default_factory=list)
    search_text: str = ""
    categorical_filters: dict[str, str] = field(default_factory=dict)
    current_page: int = 1
    page_size: int = 20
    selected_ids: set[str] = field(default_factory=set)


def get_field(record: Record, path: str) -> Any:
    """Read a possibly dotted field path (``filter.expression``) from a record."""
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def _iter_text(value: Any) -> Iterable[str]:
    if value is None:
        return
    if isinstance(value, Mapping):
        for nested in value.values():
            yield from _iter_text(nested)
    elif isinstance(value, (list, tuple)):
        for nested in value:
            yield from _iter_text(nested)
    elif isinstance(value, bool):
        yield "true" if value else "false"
    else:
        yield str(value)


def matches_search(record: Record, search_text: str, fields: Optional[Iterable[str]]) -> bool:
    needle = (search_text or "").lower()
    if not needle:
        return True
    values = [record] if fields is None else [get_field(record, f) for f in fields]
    return any(needle in text.lower() for value in values for text in _iter_text(value))


def matches_filter(record: Record, flt: CategoricalFilter, selected: str) -> bool:
    if selected is None or selected == flt.default:
        return True
    value = get_field(record, flt.field)
    if value is None:
        return False
    if isinstance(value, str) or isinstance(selected, str):
        needle = str(selected).strip().lower()
        haystack = str(value).strip().lower()
        if flt.match == "contains":
            return needle in haystack
        return haystack == needle
    return value == selected


def validate_envelope(status: int, payload: Any, body_text: str | None = None) -> list:
    """Return the envelope's ``data`` list or raise ``FetchError``."""
    if status < 200 or status >= 300:
        if body_text is None:
            body_text = json.dumps(payload) if payload is not None else ""
        raise FetchError("transport", f"HTTP {status}: {body_text}")
    if not isinstance(payload, Mapping):
        raise FetchError("shape", "Invalid data format from server")
    if payload.get("success") is False:
        message = payload.get("error") or payload.get("errors") or payload.get("message") or "Request failed"
        if not isinstance(message, str):
            message = json.dumps(message)
        raise FetchError("application", message)
    data = payload.get("data")
    if not isinstance(data, list):
        raise FetchError("shape", "Invalid data format from server")
    return data


class ListPipeline(Generic[R]):
    """Per-page list state machine."""

    def __init__(
        self,
        config: ListConfig,
        *,
        on_notify: Callable[[Notification], None] | None = None,
    ):
        self.config = config
        self.state: PipelineState[R] = PipelineState(page_size=config.page_size)
        self.notifications: list[Notification] = []
        self.error: Optional[FetchError] = None
        self.loaded = False
        self._on_notify = on_notify

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def notify(self, level: str, message: str) -> None:
        note = Notification(level=level, message=message)
        self.notifications.append(note)
        if self._on_notify:
            self._on_notify(note)

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    def load(self, status: int, payload: Any, body_text: str | None = None) -> bool:
        """Apply one fetch result. Returns False (and notifies) on failure."""
        try:
            records = validate_envelope(status, payload, body_text)
        except FetchError as exc:
            self._fail(exc)
            return False
        self.replace_records(records)
        self.error = None
        self.loaded = True
        return True

    async def fetch(self, session: aiohttp.ClientSession, url: str) -> bool:
        """Issue the page's single read request and load the result. No retry."""
        try:
            async with session.get(url, headers={"Accept": "application/json"}) as resp:
                status = resp.status
                body_text = await resp.text()
        except aiohttp.ClientError as exc:
            self._fail(FetchError("transport", str(exc) or exc.__class__.__name__))
            return False
        except asyncio.TimeoutError:
            self._fail(FetchError("transport", "Request timed out"))
            return False

        try:
            payload = json.loads(body_text) if body_text else None
        except ValueError:
            if 200 <= status < 300:
                self._fail(FetchError("shape", "Invalid data format from server"))
                return False
            payload = None
        return self.load(status, payload, body_text)

    def _fail(self, exc: FetchError) -> None:
        self.state.raw_records = []
        self.state.selected_ids = set()
        self.state.current_page = 1
        self.error = exc
        self.loaded = True
        logger.warning("Fetch failed for %s (%s): %s", self.config.label, exc.kind, exc.message)
        self.notify("error", f"Error fetching {self.config.label}: {exc.message}")

    def replace_records(self, records: Iterable[R]) -> None:
        self.state.raw_records = list(records)
        self.state.current_page = 1
        self.state.selected_ids = set()

    # ------------------------------------------------------------------
    # Filter / sort / paginate
    # ------------------------------------------------------------------

    def set_search(self, text: str) -> None:
        self.state.search_text = text or ""
        self.state.current_page = 1
        self._revalidate_selection()

    def set_filter(self, name: str, value: str) -> None:
        flt = self.config.filter_named(name)
        if flt is None:
            raise KeyError(f"Unknown filter: {name}")
        if value is None or value == flt.default:
            self.state.categorical_filters.pop(name, None)
        else:
            self.state.categorical_filters[name] = value
        self.state.current_page = 1
        self._revalidate_selection()

    def filtered(self) -> list[R]:
        cfg = self.config
        active = [
            (flt, self.state.categorical_filters[flt.name])
            for flt in cfg.categorical_filters
            if flt.name in self.state.categorical_filters
        ]
        return [
            record
            for record in self.state.raw_records
            if matches_search(record, self.state.search_text, cfg.search_fields)
            and all(matches_filter(record, flt, value) for flt, value in active)
        ]

    def sorted_filtered(self) -> list[R]:
        records = self.filtered()
        if not self.config.sort_field:
            return records
        field_name = self.config.sort_field
        # sorted() is stable, reverse=True keeps equal keys in fetch order
        return sorted(records, key=lambda r: timestamp_sort_key(get_field(r, field_name)), reverse=True)

    def filtered_count(self) -> int:
        return len(self.filtered())

    def total_pages(self) -> int:
        return max(1, math.ceil(self.filtered_count() / self.state.page_size))

    def visible(self) -> list[R]:
        size = self.state.page_size
        start = (self.state.current_page - 1) * size
        return self.sorted_filtered()[start:start + size]

    def go_to_page(self, page: int) -> bool:
        if page < 1 or page > self.total_pages():
            return False
        self.state.current_page = page
        self._revalidate_selection()
        return True

    def next_page(self) -> bool:
        return self.go_to_page(self.state.current_page + 1)

    def previous_page(self) -> bool:
        return self.go_to_page(self.state.current_page - 1)

    def has_next(self) -> bool:
        return self.state.current_page < self.total_pages()

    def has_previous(self) -> bool:
        return self.state.current_page > 1

    def filter_options(self, name: str) -> list[str]:
        """Distinct non-empty values seen for a categorical filter, in arrival order."""
        flt = self.config.filter_named(name)
        if flt is None:
            return []
        seen: list[str] = []
        for record in self.state.raw_records:
            value = get_field(record, flt.field)
            if value in (None, "") or value in seen:
                continue
            seen.append(value)
        return seen

    def apply_query(self, query: Mapping[str, str]) -> None:
        """Drive search/filter/page state from request query parameters."""
        self.set_search((query.get("q") or "").strip())
        for flt in self.config.categorical_filters:
            raw = query.get(flt.name)
            if raw is not None and raw.strip():
                self.set_filter(flt.name, raw.strip())
        try:
            page = int(query.get("page") or 1)
        except (TypeError, ValueError):
            page = 1
        self.go_to_page(page)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _record_id(self, record: Record) -> Optional[str]:
        if not self.config.id_field:
            return None
        value = get_field(record, self.config.id_field)
        return None if value is None else str(value)

    def visible_ids(self) -> list[str]:
        return [rid for rid in (self._record_id(r) for r in self.visible()) if rid is not None]

    def toggle_select(self, record_id: str) -> None:
        record_id = str(record_id)
        if record_id in self.state.selected_ids:
            self.state.selected_ids.discard(record_id)
        elif record_id in self.visible_ids():
            self.state.selected_ids.add(record_id)

    def toggle_select_all(self) -> None:
        ids = self.visible_ids()
        if ids and self.state.selected_ids == set(ids):
            self.state.selected_ids = set()
        elif not ids:
            self.state.selected_ids = set()
        else:
            self.state.selected_ids = set(ids)

    def all_selected(self) -> bool:
        ids = self.visible_ids()
        return bool(ids) and self.state.selected_ids == set(ids)

    def _revalidate_selection(self) -> None:
        if not self.state.selected_ids:
            return
        self.state.selected_ids &= set(self.visible_ids())

    def _clamp_page(self) -> None:
        total = self.total_pages()
        if self.state.current_page > total:
            self.state.current_page = total

    # ------------------------------------------------------------------
    # Confirmed local mutations
    # ------------------------------------------------------------------

    def apply_confirmed_removal(self, ids: Iterable[str]) -> int:
        """Splice out rows after the backend confirmed their deletion."""
        removed = {str(i) for i in ids}
        before = len(self.state.raw_records)
        self.state.raw_records = [r for r in self.state.raw_records if self._record_id(r) not in removed]
        self.state.selected_ids -= removed
        self._clamp_page()
        self._revalidate_selection()
        return before - len(self.state.raw_records)

    def apply_confirmed_update(
        self, updates: Mapping[str, Mapping[str, Any]], id_field: Optional[str] = None
    ) -> int:
        """Merge confirmed field changes into rows keyed by ``id_field`` (the page id by default)."""
        key_field = id_field or self.config.id_field
        changed = 0
        rows: list[R] = []
        for record in self.state.raw_records:
            value = get_field(record, key_field) if key_field else None
            rid = None if value is None else str(value)
            if rid is not None and rid in updates:
                record = {**record, **updates[rid]}  # type: ignore[assignment]
                changed += 1
            rows.append(record)
        self.state.raw_records = rows
        self._clamp_page()
        self._revalidate_selection()
        return changed
