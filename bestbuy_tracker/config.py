"""Configuration loader.

Reads environment variables and `.env` to configure the tracker.
"""

from __future__ import annotations

import os
from typing import Optional, List
from pathlib import Path

from dotenv import load_dotenv

# Load variables from a .env file if present (project root).
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _get_list(name: str, default: str = "", sep: str = ",") -> List[str]:
    raw = _get_env(name, default) or ""
    return [s.strip() for s in raw.split(sep) if s.strip()]


# ---- Upstream API ------------------------------------------------------------

BASE_API_URL: str = _get_env(
    "BASE_API_URL", "https://www.bestbuy.ca/ecomm-api/availability/products"
)

# Product pages. The alert e-mail links to /<sku>/<sku>, the dashboard to /<sku>.
PRODUCT_BASE_URL: str = _get_env("PRODUCT_BASE_URL", "https://www.bestbuy.ca/en-ca/product")

# Fixed API-version / locale parameters sent with every availability query.
API_ACCEPT: str = "application/vnd.bestbuy.standardproduct.v1+json"
API_ACCEPT_LANGUAGE: str = _get_env("API_ACCEPT_LANGUAGE", "en-CA")

# Public CORS proxy used by the dashboard so its query mirrors the browser client.
CORS_PROXY_PREFIX: str = _get_env("CORS_PROXY_PREFIX", "https://corsproxy.io/?")
USE_CORS_PROXY: bool = _parse_bool(_get_env("USE_CORS_PROXY", "true"), True)

# Seconds; passed straight to requests.
FETCH_TIMEOUT: int = _parse_int(_get_env("FETCH_TIMEOUT", "20"), 20)

# ---- Tracked set -------------------------------------------------------------

DEFAULT_SKUS: List[str] = ["18391208", "18391209", "18391210", "18391211"]
DEFAULT_POSTAL_CODE: str = "V3M0B2"
DEFAULT_LOCATIONS: List[str] = (
    "600|134|973|961|152|994|941|147|388|899|900|952|958|705|701|318|328|450|451"
    "|501|763|796|915|13|929|133|992"
).split("|")

SKUS: List[str] = _get_list("SKUS") or list(DEFAULT_SKUS)
POSTAL_CODE: str = _get_env("POSTAL_CODE", DEFAULT_POSTAL_CODE) or DEFAULT_POSTAL_CODE
LOCATIONS: List[str] = _get_list("LOCATIONS", sep="|") or list(DEFAULT_LOCATIONS)

# ---- Interactive dashboard ---------------------------------------------------

MIN_REFRESH_INTERVAL_SECONDS: int = 5
REFRESH_INTERVAL_SECONDS: int = _parse_int(_get_env("REFRESH_INTERVAL_SECONDS", "30"), 30)
AUTO_REFRESH: bool = _parse_bool(_get_env("AUTO_REFRESH", "true"), True)

DASHBOARD_HOST: str = _get_env("DASHBOARD_HOST", "127.0.0.1")
DASHBOARD_PORT: int = _parse_int(_get_env("DASHBOARD_PORT", "8080"), 8080)

# ---- Scheduled checker -------------------------------------------------------

TRIGGER_HOST: str = _get_env("TRIGGER_HOST", "127.0.0.1")
TRIGGER_PORT: int = _parse_int(_get_env("TRIGGER_PORT", "8081"), 8081)

# Optional shared secret for the HTTP trigger (?secret=...). Unset = open.
TRIGGER_SECRET: Optional[str] = _get_env("TRIGGER_SECRET") or None

# Injects a synthetic in-stock record so the mail path can be exercised.
TEST_MODE: bool = _parse_bool(_get_env("TEST_MODE", "false"), False)

# Logging level: DEBUG, INFO, WARNING, ERROR.
LOG_LEVEL: str = _get_env("LOG_LEVEL", "INFO")

# ---- Email notifications -----------------------------------------------------

EMAIL_SMTP_HOST: str = _get_env("EMAIL_SMTP_HOST", "smtp.gmail.com")
EMAIL_SMTP_PORT: int = _parse_int(_get_env("EMAIL_SMTP_PORT", "587"), 587)  # 587 (TLS) or 465 (SSL)
EMAIL_USE_TLS: bool = _parse_bool(_get_env("EMAIL_USE_TLS", "true"), True)  # STARTTLS on plain ports; port 465 is always SSL
EMAIL_USER: Optional[str] = _get_env("EMAIL_USER")
EMAIL_PASS: Optional[str] = _get_env("EMAIL_PASS")  # app password if using Gmail
EMAIL_TO: Optional[str] = _get_env("EMAIL_TO") or EMAIL_USER
EMAIL_FROM_NAME: str = _get_env("EMAIL_FROM_NAME", "BestBuy Tracker")
EMAIL_SUBJECT_PREFIX: str = _get_env("EMAIL_SUBJECT_PREFIX", "") or ""


__all__ = [
    # Upstream
    "BASE_API_URL",
    "PRODUCT_BASE_URL",
    "API_ACCEPT",
    "API_ACCEPT_LANGUAGE",
    "CORS_PROXY_PREFIX",
    "USE_CORS_PROXY",
    "FETCH_TIMEOUT",
    # Tracked set
    "DEFAULT_SKUS",
    "DEFAULT_POSTAL_CODE",
    "DEFAULT_LOCATIONS",
    "SKUS",
    "POSTAL_CODE",
    "LOCATIONS",
    # Dashboard
    "MIN_REFRESH_INTERVAL_SECONDS",
    "REFRESH_INTERVAL_SECONDS",
    "AUTO_REFRESH",
    "DASHBOARD_HOST",
    "DASHBOARD_PORT",
    # Checker
    "TRIGGER_HOST",
    "TRIGGER_PORT",
    "TRIGGER_SECRET",
    "TEST_MODE",
    "LOG_LEVEL",
    # Email
    "EMAIL_SMTP_HOST", "EMAIL_SMTP_PORT", "EMAIL_USE_TLS",
    "EMAIL_USER", "EMAIL_PASS", "EMAIL_TO", "EMAIL_FROM_NAME", "EMAIL_SUBJECT_PREFIX",
]
