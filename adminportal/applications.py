"""Catalog of internal applications shown on the applications page."""

from __future__ import annotations

from typing import Iterable, Optional

DEFAULT_IMAGE = "/logo/default.jpg"

# (title, description, image)
DEFAULT_APPLICATIONS: list[tuple[str, str, str]] = [
    (
        "Taskflow - Activity Time and Motion Management System",
        "Manage and track activity time and motion efficiently.",
        "/images/logo/1.jpg",
    ),
    (
        "Ecodesk - Customer Ticketing System",
        "Customer support ticketing system for seamless issue tracking.",
        "/images/logo/2.jpg",
    ),
    (
        "Acculog - Attendance Tracking System",
        "Attendance tracking system to monitor employee hours.",
        "/images/logo/3.jpg",
    ),
    (
        "Shifts - Room Reservation System",
        "Reserve rooms and manage shift schedules easily.",
        "/images/logo/9.png",
    ),
    (
        "Linker X - Store and Shared Links Platform",
        "Platform to store and share links securely.",
        "/images/logo/10.png",
    ),
    (
        "Stash - IT Asset Management System",
        "IT asset management system to track company equipment.",
        "/images/logo/11.png",
    ),
    (
        "IT Ticketing Management System",
        "IT support ticketing and workflow management.",
        "/ecoshift.png",
    ),
    ("Know My Employee", "Employee analytics and HR insights platform.", "/ecoshift.png"),
    ("WooCommerce", "E-commerce platform for WordPress stores.", "/images/logo/4.jpg"),
    ("Shopify", "Complete e-commerce solution for online stores.", "/images/logo/5.jpg"),
    ("Cloudinary", "Media management and image hosting solution.", "/images/logo/6.jpg"),
]


def build_catalog(overrides: Optional[Iterable[dict]] = None) -> list[dict]:
    """Return catalog items with sequential ids.

    ``overrides`` (from ``config/applications.yaml``) replaces the built-in
    list when it is non-empty.
    """
    entries = list(overrides or [])
    if entries:
        source = [
            (
                str(e.get("title") or ""),
                str(e.get("description") or "") or f"Description for {e.get('title')}",
                e.get("image") or DEFAULT_IMAGE,
            )
            for e in entries
            if e.get("title")
        ]
    else:
        source = DEFAULT_APPLICATIONS
    return [
        {"id": idx, "title": title, "description": description, "image": image}
        for idx, (title, description, image) in enumerate(source, start=1)
    ]
