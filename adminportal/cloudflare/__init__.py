"""Cloudflare upstream client and multi-zone aggregation."""

from .aggregation import (
    analytics_entry,
    analytics_envelope,
    analytics_totals,
    dns_envelope,
    firewall_envelope,
    gather_zones,
    tag_dns_record,
    tag_firewall_rule,
    zones_envelope,
)
from .client import CloudflareAPIError, CloudflareClient

__all__ = [
    "CloudflareAPIError",
    "CloudflareClient",
    "analytics_entry",
    "analytics_envelope",
    "analytics_totals",
    "dns_envelope",
    "firewall_envelope",
    "gather_zones",
    "tag_dns_record",
    "tag_firewall_rule",
    "zones_envelope",
]
