"""Client cache policy published by the API.

Clients key their query cache by endpoint name. Each endpoint has a TTL and a
stale-while-revalidate window (seconds), and each kind of mutation lists the
query keys a client must invalidate afterwards.
"""

from dataclasses import asdict, dataclass
import hashlib
import json
import re
from typing import Any, Optional


@dataclass(frozen=True)
class CachePolicy:
    ttl: int
    stale_while_revalidate: int
    max_size: int
    enabled: bool = True


DEFAULT_POLICY = CachePolicy(ttl=180, stale_while_revalidate=30, max_size=100)

CACHE_CONFIGS: dict[str, CachePolicy] = {
    "groups": CachePolicy(ttl=300, stale_while_revalidate=60, max_size=100),
    "analytics": CachePolicy(ttl=180, stale_while_revalidate=30, max_size=50),
    "score-records": CachePolicy(ttl=120, stale_while_revalidate=30, max_size=200),
    "scoring-rules": CachePolicy(ttl=600, stale_while_revalidate=120, max_size=50),
    "group-members": CachePolicy(ttl=180, stale_while_revalidate=30, max_size=100),
    "user-profile": CachePolicy(ttl=900, stale_while_revalidate=180, max_size=20),
}

INVALIDATION_MAP: dict[str, tuple[str, ...]] = {
    "groups": ("groups", "analytics", "group-members"),
    "score-records": ("analytics", "score-records", "groups"),
    "scoring-rules": ("scoring-rules", "analytics", "groups"),
    "group-members": ("group-members", "groups", "analytics"),
    "user-profile": ("user-profile",),
}

# Endpoints whose responses depend on credentials or change on every call
UNCACHEABLE_ENDPOINTS = frozenset({"auth", "admin", "setup", "activity-logs", "cache"})

_GROUP_SUBRESOURCES = {
    "members": "group-members",
    "rules": "scoring-rules",
    "stats": "analytics",
}
_API_PATH = re.compile(r"^/api/([^/?]+)(?:/([^/?]+))?(?:/([^/?]+))?")


def endpoint_for_path(path: str) -> str:
    match = _API_PATH.match(path)
    if not match:
        return "default"
    resource, ident, sub = match.groups()
    if resource == "groups" and sub in _GROUP_SUBRESOURCES:
        return _GROUP_SUBRESOURCES[sub]
    if resource == "user":
        return "user-profile"
    return resource


def policy_for(endpoint: str) -> CachePolicy:
    return CACHE_CONFIGS.get(endpoint, DEFAULT_POLICY)


def invalidated_keys(endpoint: str) -> tuple[str, ...]:
    return INVALIDATION_MAP.get(endpoint, ())


def cache_key(endpoint: str, params: Optional[dict[str, Any]] = None) -> str:
    base = f"api:{endpoint}"
    if not params:
        return base
    return f"{base}:{json.dumps(params, sort_keys=True, separators=(',', ':'), default=str)}"


def cache_control(endpoint: str, enabled: bool = True) -> str:
    if endpoint in UNCACHEABLE_ENDPOINTS:
        return "no-store"
    policy = policy_for(endpoint)
    if not enabled or not policy.enabled:
        return "no-cache"
    return f"private, max-age={policy.ttl}, stale-while-revalidate={policy.stale_while_revalidate}"


def etag_for(body: bytes) -> str:
    return '"' + hashlib.sha256(body).hexdigest() + '"'


def describe() -> dict:
    return {
        "default": asdict(DEFAULT_POLICY),
        "endpoints": {name: asdict(policy) for name, policy in CACHE_CONFIGS.items()},
        "invalidation": {name: list(keys) for name, keys in INVALIDATION_MAP.items()},
    }
