"""Prometheus metrics definitions for Basket."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "basket_http_requests_total",
    "Total number of HTTP requests processed by the Basket API",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "basket_http_request_duration_seconds",
    "Latency of HTTP requests processed by the Basket API",
    ["method", "path"],
)

INVITATION_EVENTS = Counter(
    "basket_invitation_events_total",
    "Invitation lifecycle transitions by scope and action",
    ["scope", "action"],
)

CATALOG_UPSERTS = Counter(
    "basket_catalog_upserts_total",
    "Catalog item lookups by name, split by whether a new item was created",
    ["result"],
)

AUTHZ_DENIALS = Counter(
    "basket_authz_denials_total",
    "Rejected authorization checks by error kind",
    ["kind"],
)

__all__ = [
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "INVITATION_EVENTS",
    "CATALOG_UPSERTS",
    "AUTHZ_DENIALS",
]
