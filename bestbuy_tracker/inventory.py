from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union
from urllib.parse import quote, urlencode

import requests

from . import config
from .models import AvailabilityRecord, parse_availabilities
from .utils import InvalidInput, ParseError, TransportError, get_http_session

logger = logging.getLogger(__name__)

Locations = Union[str, Sequence[str]]

# Characters encodeURIComponent leaves alone.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def _join_locations(locations: Locations) -> str:
    if isinstance(locations, str):
        return locations
    return "|".join(str(loc) for loc in locations)


def build_query_url(
    skus: Sequence[str],
    postal_code: str,
    locations: Locations,
    *,
    base_url: Optional[str] = None,
    proxy_prefix: Optional[str] = None,
) -> str:
    """Build the availability URL for `skus` around `postal_code`.

    With `proxy_prefix`, the finished URL is percent-encoded as a whole and
    appended to the prefix (the dashboard mirrors the browser client, which
    can only reach the API through a CORS proxy).
    """
    if not skus:
        raise InvalidInput("At least one SKU is required to query availability")

    params = {
        "accept": config.API_ACCEPT,
        "accept-language": config.API_ACCEPT_LANGUAGE,
        "locations": _join_locations(locations),
        "postalCode": postal_code,
        "skus": "|".join(skus),
    }
    target = f"{(base_url or config.BASE_API_URL).rstrip('?')}?{urlencode(params)}"
    if proxy_prefix:
        return f"{proxy_prefix}{quote(target, safe=_URI_COMPONENT_SAFE)}"
    return target


def fetch_inventory(
    skus: Sequence[str],
    postal_code: str,
    locations: Locations,
    *,
    proxy_prefix: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> List[AvailabilityRecord]:
    """Fetch and parse availability for `skus`.

    Returns [] without touching the network when no SKUs are given.  Issues
    exactly one GET; callers own any retry policy.
    """
    if not skus:
        return []

    url = build_query_url(skus, postal_code, locations, proxy_prefix=proxy_prefix)

    close_session = False
    if session is None:
        session = get_http_session()
        close_session = True

    try:
        logger.debug("GET %s", url)
        try:
            resp = session.get(url, timeout=config.FETCH_TIMEOUT)
        except requests.RequestException as e:
            raise TransportError(f"Request failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise TransportError(
                f"API returned status: {resp.status_code} {resp.reason or ''}".rstrip(),
                status_code=resp.status_code,
                reason=resp.reason or "",
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise ParseError(f"Response is not valid JSON: {e}") from e
    finally:
        if close_session:
            session.close()

    records = parse_availabilities(payload)
    logger.info("Fetched availability for %d of %d SKUs", len(records), len(skus))
    return records


__all__ = ["build_query_url", "fetch_inventory"]
