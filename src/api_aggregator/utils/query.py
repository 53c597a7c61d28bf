"""Canonical query-string and cache-key helpers shared by providers."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional
from urllib.parse import quote

# Parameter names that always carry secrets and never belong in a cache key.
SECRET_PARAMETER_NAMES = frozenset(
    {"apikey", "api_key", "appid", "key", "token", "access_token", "secret"}
)


def is_secret_parameter(name: str, credential_parameter: Optional[str] = None) -> bool:
    lowered = name.lower()
    if credential_parameter and lowered == credential_parameter.lower():
        return True
    return lowered in SECRET_PARAMETER_NAMES


def build_query_string(
    names: Iterable[str],
    values: Mapping[str, str],
    *,
    credential_parameter: Optional[str] = None,
) -> str:
    """Join ``name=value`` pairs in the order of ``names``.

    ``values`` must be keyed by lower-cased parameter names. Duplicate names,
    empty values and credential parameters are skipped so the result can be
    reused verbatim as a cache fingerprint.
    """

    seen: set[str] = set()
    parts = []
    for name in names:
        lowered = name.lower()
        if lowered in seen or is_secret_parameter(name, credential_parameter):
            continue
        seen.add(lowered)
        value = values.get(lowered)
        if value:
            parts.append(f"{name}={quote(value, safe='')}")
    return "&".join(parts)


def build_cache_key(prefix: str, fingerprint: str) -> str:
    return f"{prefix}:{fingerprint}".lower()


def append_credential(url: str, query: str, name: str, secret: Optional[str]) -> str:
    """Compose the outgoing URL; the credential never re-enters ``query``."""

    parts = [part for part in (query,) if part]
    if secret:
        parts.append(f"{name}={quote(secret, safe='')}")
    if not parts:
        return url
    return f"{url}?{'&'.join(parts)}"
