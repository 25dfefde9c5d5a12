"""HTML fragments for list pages: filter bar, table, pagination, cards."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

from ..export.encoder import ExportColumn
from ..pipeline.listing import ListPipeline, Notification, get_field
from ..pipeline.pages import PageDefinition
from .server_helpers import _build_query_link, _escape, _hidden_inputs

CELL_PLACEHOLDER = "-"

_NOTICE_ICONS = {"error": "&#10005;", "success": "&#10003;", "warning": "!", "info": "i"}


def _pipeline_query(pipeline: ListPipeline, *, page: Optional[int] = None) -> dict[str, object]:
    """Query parameters that reproduce the pipeline's search/filter (and page) state."""
    params: dict[str, object] = {"q": pipeline.state.search_text}
    params.update(pipeline.state.categorical_filters)
    if page and page > 1:
        params["page"] = page
    return params


def _render_notifications(notes: Iterable[Notification]) -> str:
    parts = []
    for note in notes:
        level = note.level if note.level in _NOTICE_ICONS else "info"
        parts.append(
            f'<div class="pt-flash pt-flash-{level}"><span>{_NOTICE_ICONS[level]}</span>'
            f"<span>{_escape(note.message)}</span></div>"
        )
    return "".join(parts)


def _render_filter_bar(
    page_def: PageDefinition,
    pipeline: ListPipeline,
    *,
    base: str,
    extra: Optional[Mapping[str, object]] = None,
) -> str:
    selects = []
    for flt in page_def.list_config.categorical_filters:
        current = str(pipeline.state.categorical_filters.get(flt.name, flt.default)).lower()
        choices = page_def.filter_choices.get(flt.name)
        if choices is None:
            choices = ((flt.default, "All"),) + tuple((v, v) for v in pipeline.filter_options(flt.name))
        options = "".join(
            f'<option value="{_escape(value)}"{" selected" if str(value).lower() == current else ""}>'
            f"{_escape(label)}</option>"
            for value, label in choices
        )
        selects.append(
            f'<label class="pt-muted">{_escape(flt.label or flt.name)} '
            f'<select class="pt-select" name="{_escape(flt.name)}">{options}</select></label>'
        )

    exports = "".join(
        f'<a class="pt-btn" href="{_escape(_build_query_link(f"/admin/export/{page_def.name}.{fmt}", **_pipeline_query(pipeline)))}">'
        f"Export {fmt.upper()}</a>"
        for fmt in page_def.exports
    )
    return f"""
    <form class="pt-panel pt-row" method="get" action="{_escape(base)}">
      {_hidden_inputs((extra or {}).items())}
      <input class="pt-input" type="search" name="q" value="{_escape(pipeline.state.search_text)}"
             placeholder="Search {_escape(pipeline.config.label)}" />
      {"".join(selects)}
      <button class="pt-btn" type="submit">Apply</button>
      {exports}
    </form>
    """


def _render_table(
    columns: Sequence[ExportColumn],
    records: Sequence[Mapping],
    *,
    id_field: Optional[str] = None,
    selected: Iterable[str] = (),
    all_selected: bool = False,
) -> str:
    """Render rows; with ``id_field`` each row gets a selection checkbox."""
    selected = set(selected)
    head = "".join(f"<th>{_escape(col.header)}</th>" for col in columns)
    if id_field:
        checked = " checked" if all_selected else ""
        head = f'<th><input type="checkbox" name="select_all" value="1" title="Select page"{checked} /></th>{head}'

    if not records:
        colspan = len(columns) + (1 if id_field else 0)
        rows = f'<tr><td colspan="{colspan}" class="pt-muted">No records found.</td></tr>'
    else:
        parts = []
        for record in records:
            cells = "".join(f"<td>{_escape(col.render(record, CELL_PLACEHOLDER))}</td>" for col in columns)
            if id_field:
                rid = str(get_field(record, id_field))
                checked = " checked" if rid in selected else ""
                cells = f'<td><input type="checkbox" name="ids" value="{_escape(rid)}"{checked} /></td>{cells}'
            parts.append(f"<tr>{cells}</tr>")
        rows = "".join(parts)

    return f"""
    <div class="pt-panel">
      <table class="pt-table">
        <thead><tr>{head}</tr></thead>
        <tbody>{rows}</tbody>
      </table>
    </div>
    """


def _render_pagination(
    pipeline: ListPipeline,
    *,
    base: str,
    extra: Optional[Mapping[str, object]] = None,
) -> str:
    current = pipeline.state.current_page
    total = pipeline.total_pages()
    query = {**_pipeline_query(pipeline), **(extra or {})}

    def _link(label: str, page: int, enabled: bool) -> str:
        if not enabled:
            return f'<span class="pt-btn" aria-disabled="true">{label}</span>'
        href = _build_query_link(base, **query, page=page)
        return f'<a class="pt-btn" href="{_escape(href)}">{label}</a>'

    return f"""
    <div class="pt-pagination">
      <div class="pt-muted">Page {current} of {total} &middot; {pipeline.filtered_count()} record(s)</div>
      <div class="pt-row">
        {_link("Previous", current - 1, pipeline.has_previous())}
        {_link("Next", current + 1, pipeline.has_next())}
      </div>
    </div>
    """


def _render_cards(records: Sequence[Mapping]) -> str:
    if not records:
        return '<p class="pt-muted">No records found.</p>'
    cards = "".join(
        f"""
        <div class="pt-panel pt-card">
          <img src="{_escape(record.get("image"))}" alt="" />
          <h3>{_escape(record.get("title"))}</h3>
          <p class="pt-muted">{_escape(record.get("description"))}</p>
        </div>
        """
        for record in records
    )
    return f'<div class="pt-cards">{cards}</div>'
