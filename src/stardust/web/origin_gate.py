# src/stardust/web/origin_gate.py

"""
Origin allow-list matching for cross-origin responses.

Allow-list entries come in two flavors:
- exact origins, e.g. "https://stardust.example.org",
- domain-suffix patterns starting with ".", e.g. ".c.websim.com".

A suffix pattern keeps its leading dot when matching, so ".example.com"
accepts "https://a.example.com" but never "https://evilexample.com".
"""

from __future__ import annotations

from collections.abc import Iterable

ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization"


def _clean(allowlist: Iterable[str]) -> list[str]:
    return [e.strip() for e in allowlist if isinstance(e, str) and e.strip()]


def resolve_origin(request_origin: str | None, allowlist: Iterable[str]) -> str | None:
    """Return the origin to echo back, or None if the caller is not trusted."""
    if not request_origin:
        return None

    entries = _clean(allowlist)

    # Exact entries win over suffix patterns.
    for entry in entries:
        if not entry.startswith(".") and entry == request_origin:
            return request_origin

    for entry in entries:
        if entry.startswith(".") and request_origin.endswith(entry):
            return request_origin

    return None


class OriginGate:
    """Allow-list bound once from settings; `resolve` is a pure lookup."""

    def __init__(self, allowlist: Iterable[str], default_origin: str | None = None) -> None:
        self._allowlist = tuple(_clean(allowlist))
        self._default_origin = default_origin or None

    @property
    def allowlist(self) -> tuple[str, ...]:
        return self._allowlist

    def resolve(self, request_origin: str | None) -> str | None:
        return resolve_origin(request_origin, self._allowlist)

    def cors_headers(self, request_origin: str | None) -> dict[str, str]:
        """
        CORS headers for one response.

        Untrusted callers get the configured default origin if there is one,
        otherwise no Access-Control-Allow-Origin header at all.
        """
        headers = {
            "Access-Control-Allow-Methods": ALLOW_METHODS,
            "Access-Control-Allow-Headers": ALLOW_HEADERS,
            "Vary": "Origin",
        }
        granted = self.resolve(request_origin) or self._default_origin
        if granted:
            headers["Access-Control-Allow-Origin"] = granted
        return headers
