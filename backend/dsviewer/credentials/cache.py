from __future__ import annotations

import json
from typing import Any, Mapping

from ..observability.logging import get_logger
from ..settings import Settings
from .secrets import get_secret_json


log = get_logger("credentials")


def _parse_universe_id(raw: Any) -> int | None:
    try:
        uid = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return uid if uid > 0 else None


class CredentialCache:
    """
    Per-universe API keys, loaded once and read-only afterwards.

    Passed by reference into the handler and the HTTP client so tests can hand
    in their own instance. has_credential() never reveals the key itself.
    """

    def __init__(self, keys: Mapping[Any, Any] | None = None) -> None:
        self._keys: dict[int, str] = {}
        for raw_id, raw_key in (keys or {}).items():
            uid = _parse_universe_id(raw_id)
            key = str(raw_key or "").strip()
            if uid is None or not key:
                log.warning("credential_entry_skipped", universe_id=str(raw_id))
                continue
            self._keys[uid] = key

    def __len__(self) -> int:
        return len(self._keys)

    def has_credential(self, universe_id: int) -> bool:
        return universe_id in self._keys

    def get(self, universe_id: int) -> str | None:
        return self._keys.get(universe_id)

    def universe_ids(self) -> list[int]:
        return sorted(self._keys)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialCache":
        """
        Merge DATASTORE_API_KEYS (env JSON) with the optional Secrets Manager
        secret. Secret values win on conflict.
        """
        merged: dict[Any, Any] = {}

        raw = str(settings.datastore_api_keys or "").strip()
        if raw:
            try:
                parsed = json.loads(raw)
            except ValueError:
                log.warning("credential_env_not_json")
                parsed = None
            if isinstance(parsed, dict):
                merged.update(parsed)
            elif parsed is not None:
                log.warning("credential_env_not_object")

        secret = get_secret_json(settings.datastore_secret_arn)
        if secret:
            merged.update(secret)

        cache = cls(merged)
        log.info("credentials_loaded", universe_count=len(cache))
        return cache
