# tests/test_origin_gate.py

from __future__ import annotations

import pytest

from stardust.web.origin_gate import OriginGate, resolve_origin


@pytest.mark.parametrize(
    ("origin", "allowlist", "granted"),
    [
        ("https://a.example.com", [".example.com"], "https://a.example.com"),
        ("https://evilexample.com", [".example.com"], None),
        ("https://stardust.example.org", ["https://stardust.example.org"], "https://stardust.example.org"),
        ("https://stardust.example.org.evil.net", ["https://stardust.example.org"], None),
        ("https://x.c.websim.com", [".c.websim.com"], "https://x.c.websim.com"),
        ("https://evil-c.websim.com.attacker.net", [".c.websim.com"], None),
        ("https://evil-c.websim.com", [".c.websim.com"], None),
        ("https://a.example.com", [], None),
        ("https://anything.dev", ["*"], None),
        ("https://a.example.com", ["  .example.com  ", ""], "https://a.example.com"),
    ],
)
def test_resolve_origin(origin, allowlist, granted) -> None:
    assert resolve_origin(origin, allowlist) == granted


@pytest.mark.parametrize("origin", [None, ""])
def test_absent_origin_is_never_granted(origin) -> None:
    assert resolve_origin(origin, ["https://a.example.com", ".example.com", "*"]) is None


def test_cors_headers_echo_granted_origin() -> None:
    gate = OriginGate(["https://app.example.org", ".c.websim.com"])

    headers = gate.cors_headers("https://x.c.websim.com")
    assert headers["Access-Control-Allow-Origin"] == "https://x.c.websim.com"
    assert headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE, OPTIONS"
    assert headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"
    assert headers["Vary"] == "Origin"

    assert "Access-Control-Allow-Origin" not in gate.cors_headers("https://evil.net")
    assert "Access-Control-Allow-Origin" not in gate.cors_headers(None)


def test_cors_headers_fall_back_to_default_origin() -> None:
    gate = OriginGate(["https://app.example.org"], default_origin="https://app.example.org")

    assert gate.cors_headers("https://evil.net")["Access-Control-Allow-Origin"] == "https://app.example.org"
    assert gate.cors_headers(None)["Access-Control-Allow-Origin"] == "https://app.example.org"
