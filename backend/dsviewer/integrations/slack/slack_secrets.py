from __future__ import annotations

from typing import Any

from ...credentials.secrets import get_secret_json
from ...settings import settings


def get_slack_secret(*, force_refresh: bool = False) -> dict[str, Any] | None:
    return get_secret_json(settings.slack_secret_arn, force_refresh=force_refresh)


def get_secret_str(key: str) -> str | None:
    sec = get_slack_secret()
    if not sec:
        return None
    v = sec.get(key)
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def get_bot_token() -> str | None:
    """
    Resolve the Slack bot token from settings or Secrets Manager.

    Only file uploads need it; slash-command replies go through response_url.
    """
    if not bool(settings.slack_enabled):
        return None
    return (str(settings.slack_bot_token or "").strip() or None) or get_secret_str("SLACK_BOT_TOKEN")


def get_signing_secret() -> str | None:
    direct = str(settings.slack_signing_secret or "").strip() or None
    if direct:
        return direct
    # If SLACK_SECRET_ARN is configured, secrets are stored as JSON keys.
    return get_secret_str("SLACK_SIGNING_SECRET")
