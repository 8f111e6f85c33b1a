from __future__ import annotations

import json
import time
from typing import Any

import boto3

from ..observability.logging import get_logger
from ..settings import settings


log = get_logger("secrets")

# Simple in-process cache so we don't hit Secrets Manager on every lookup.
_CACHE_TTL_SECONDS = 60
_cache: dict[str, tuple[float, dict[str, Any] | None]] = {}


def get_secret_json(arn: str | None, *, force_refresh: bool = False) -> dict[str, Any] | None:
    """
    Fetch a Secrets Manager secret whose SecretString is a JSON object.

    Returns None when no ARN is given, the secret is empty or not an object,
    or the call fails (logged).
    """
    key = str(arn or "").strip()
    if not key:
        return None

    now = time.time()
    cached = _cache.get(key)
    if (not force_refresh) and cached is not None and (now - cached[0]) < _CACHE_TTL_SECONDS:
        return cached[1]

    try:
        sm = boto3.client("secretsmanager", region_name=settings.aws_region)
        resp = sm.get_secret_value(SecretId=key)
    except Exception as e:
        log.warning("secret_fetch_failed", error=str(e) or "unknown_error")
        return None

    raw = resp.get("SecretString")
    obj: dict[str, Any] | None = None
    if isinstance(raw, str) and raw.strip():
        try:
            parsed = json.loads(raw)
        except ValueError:
            log.warning("secret_not_json")
            parsed = None
        obj = parsed if isinstance(parsed, dict) else None
    _cache[key] = (now, obj)
    return obj


def clear_cache() -> None:
    _cache.clear()
