"""Per-page list and export definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..export.encoder import ExportColumn
from .listing import CategoricalFilter, ListConfig


@dataclass(slots=True, frozen=True)
class ExportSpec:
    columns: tuple[ExportColumn, ...]
    stem: str
    sheet_name: str = ""
    placeholder: str = ""


@dataclass(slots=True, frozen=True)
class PageDefinition:
    name: str
    title: str
    list_config: ListConfig
    exports: dict[str, ExportSpec] = field(default_factory=dict)
    filter_choices: dict[str, tuple[tuple[str, str], ...]] = field(default_factory=dict)


DNS_PAGE = PageDefinition(
    name="dns",
    title="DNS Records",
    list_config=ListConfig(
        label="DNS data",
        search_fields=("name", "zoneName", "id"),
        categorical_filters=(CategoricalFilter(name="status", field="status", default="", label="Status"),),
        sort_field="lastModified",
        page_size=20,
    ),
    exports={
        "xlsx": ExportSpec(
            columns=(
                ExportColumn("ID", "id", 30),
                ExportColumn("Name", "name", 30),
                ExportColumn("Status", "status", 15),
                ExportColumn("Zone", "zoneName", 30),
                ExportColumn("Last Modified", "lastModified", 25, kind="timestamp"),
            ),
            stem="Cloudflare_DNS_Records",
            sheet_name="DNS Records",
            placeholder="-",
        ),
    },
    filter_choices={"status": (("", "All"), ("proxied", "Proxied"), ("dns only", "DNS Only"))},
)

FIREWALL_PAGE = PageDefinition(
    name="firewall",
    title="Firewall Rules",
    list_config=ListConfig(
        label="firewall rules",
        search_fields=("description", "action", "filter.expression", "zone_id"),
        sort_field="modified_on",
        page_size=20,
    ),
    exports={
        "xlsx": ExportSpec(
            columns=(
                ExportColumn("ID", "id", 36),
                ExportColumn("Description", "description", 40),
                ExportColumn("Action", "action", 20),
                ExportColumn("Filter Expression", "filter.expression", 50),
                ExportColumn("Paused", "paused", 10, kind="bool"),
                ExportColumn("Created On", "created_on", 25, kind="timestamp"),
                ExportColumn("Modified On", "modified_on", 25, kind="timestamp"),
                ExportColumn("Zone ID", "zone_id", 36),
            ),
            stem="Cloudflare_Firewall_Rules",
            sheet_name="Cloudflare Firewall Rules",
            placeholder="-",
        ),
    },
)

ZONES_PAGE = PageDefinition(
    name="zones",
    title="Zones",
    list_config=ListConfig(
        label="zones",
        search_fields=("name", "id"),
        categorical_filters=(CategoricalFilter(name="status", field="status", default="", label="Status"),),
        sort_field="created_on",
        page_size=20,
    ),
    exports={
        "xlsx": ExportSpec(
            columns=(
                ExportColumn("ID", "id", 36),
                ExportColumn("Name", "name", 30),
                ExportColumn("Status", "status", 15),
                ExportColumn("Paused", "paused", 10, kind="bool"),
                ExportColumn("Created On", "created_on", 25, kind="timestamp"),
            ),
            stem="Cloudflare_Zones",
            sheet_name="Cloudflare Zones",
            placeholder="-",
        ),
    },
    filter_choices={
        "status": (("", "All"), ("active", "Active"), ("pending", "Pending"), ("moved", "Moved")),
    },
)

ANALYTICS_PAGE = PageDefinition(
    name="analytics",
    title="Zone Analytics",
    list_config=ListConfig(label="analytics", search_fields=("zoneId",), page_size=20, id_field="zoneId"),
)

SESSIONS_PAGE = PageDefinition(
    name="sessions",
    title="Sessions",
    list_config=ListConfig(
        label="session logs",
        search_fields=("email", "department"),
        categorical_filters=(
            CategoricalFilter(name="department", field="department", default="all", label="Department"),
        ),
        sort_field="timestamp",
        page_size=20,
    ),
    exports={
        "csv": ExportSpec(
            columns=(
                ExportColumn("Status", "status"),
                ExportColumn("Email", "email"),
                ExportColumn("Department", "department"),
                ExportColumn("Timestamp", "timestamp"),
                ExportColumn("IP Address", "ipAddress"),
                ExportColumn("Device ID", "deviceId"),
                ExportColumn("Latitude", "latitude"),
                ExportColumn("Longitude", "longitude"),
                ExportColumn("User Agent", "userAgent"),
            ),
            stem="sessions",
        ),
        "xlsx": ExportSpec(
            columns=(
                ExportColumn("Status", "status", 15),
                ExportColumn("Email", "email", 25),
                ExportColumn("Department", "department", 20),
                ExportColumn("Timestamp", "timestamp", 25, kind="timestamp"),
                ExportColumn("IP Address", "ipAddress", 20),
                ExportColumn("User Agent", "userAgent", 40),
                ExportColumn("Device ID", "deviceId", 25),
                ExportColumn("Latitude", "latitude", 15),
                ExportColumn("Longitude", "longitude", 15),
            ),
            stem="Session_Logs",
            sheet_name="Session Logs",
            placeholder="N/A",
        ),
    },
)

ACTIVITY_PAGE = PageDefinition(
    name="activity",
    title="Activity Logs",
    list_config=ListConfig(
        label="activities",
        search_fields=None,
        sort_field="date_created",
        page_size=20,
    ),
    exports={
        "csv": ExportSpec(
            columns=tuple(
                ExportColumn(key, key)
                for key in (
                    "activitynumber",
                    "referenceid",
                    "companyname",
                    "contactperson",
                    "contactnumber",
                    "emailaddress",
                    "address",
                    "projectname",
                    "projectcategory",
                    "projecttype",
                    "source",
                    "targetquota",
                    "csragent",
                    "date_created",
                )
            ),
            stem="activity",
        ),
    },
)

USERS_PAGE = PageDefinition(
    name="users",
    title="Users",
    list_config=ListConfig(
        label="users",
        search_fields=("email", "firstname", "lastname", "company", "referenceid"),
        categorical_filters=(
            CategoricalFilter(name="department", field="department", default="all", label="Department"),
            CategoricalFilter(name="status", field="status", default="all", label="Status"),
        ),
        sort_field="updated_at",
        page_size=20,
    ),
    exports={
        "csv": ExportSpec(
            columns=tuple(
                ExportColumn(key, key)
                for key in (
                    "referenceid",
                    "firstname",
                    "lastname",
                    "email",
                    "company",
                    "department",
                    "role",
                    "status",
                    "tsm",
                    "manager",
                    "targetquota",
                )
            ),
            stem="users",
        ),
    },
)

APPLICATIONS_PAGE = PageDefinition(
    name="applications",
    title="Applications",
    list_config=ListConfig(
        label="applications",
        search_fields=("title", "description"),
        page_size=9,
        id_field="title",
    ),
)

# Row count per page when the catalog is shown as a table instead of cards.
APPLICATIONS_TABLE_PAGE_SIZE = 10

PAGES: dict[str, PageDefinition] = {
    page.name: page
    for page in (
        DNS_PAGE,
        FIREWALL_PAGE,
        ZONES_PAGE,
        ANALYTICS_PAGE,
        SESSIONS_PAGE,
        ACTIVITY_PAGE,
        USERS_PAGE,
        APPLICATIONS_PAGE,
    )
}


def get_page(name: str) -> Optional[PageDefinition]:
    return PAGES.get((name or "").strip().lower())
