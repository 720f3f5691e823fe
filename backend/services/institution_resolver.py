"""Derive canonical institution identity from bridge organization data."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

# The bridge spells the site URL two ways; plain "url" wins when both are set.
_URL_KEYS = ("url", "sfin-url")


@dataclass(frozen=True)
class InstitutionInfo:
    """Normalized institution fields."""

    id: Optional[str] = None
    name: Optional[str] = None
    domain: Optional[str] = None
    url: Optional[str] = None


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def domain_from_url(url: str) -> str | None:
    """Extract the host from a URL, without a leading ``www.`` label.

    Returns None (and logs a warning) when the URL cannot be parsed, and
    None when it has no host component.
    """
    try:
        host = urlsplit(url).hostname
    except ValueError:
        logger.warning("Invalid institution URL: %r", url)
        return None
    if not host:
        return None
    if host.startswith("www."):
        host = host[len("www."):]
    return host or None


def resolve_institution(org_data: Mapping[str, Any] | None) -> InstitutionInfo:
    """Normalize raw organization data to ``{id, name, domain, url}``.

    An explicit ``domain`` wins. Otherwise the domain is derived from the
    URL. A malformed URL leaves the domain unset; it never fails the
    import.

    Args:
        org_data: The ``org`` mapping from a bridge snapshot, or None.

    Returns:
        InstitutionInfo with every field None when org_data is empty.
    """
    if not isinstance(org_data, Mapping):
        return InstitutionInfo()

    url = next(
        (org_data[key] for key in _URL_KEYS if not _blank(org_data.get(key))),
        None,
    )
    domain = org_data.get("domain")
    if _blank(domain):
        domain = domain_from_url(str(url)) if url is not None else None

    return InstitutionInfo(
        id=org_data.get("id"),
        name=org_data.get("name"),
        domain=domain,
        url=url,
    )
