from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # Runtime
    environment: str = Field(default="development", validation_alias="NODE_ENV")
    port: int = Field(default=8080, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # AWS (only used to resolve secrets)
    aws_region: str = Field(default="us-east-1", validation_alias="AWS_REGION")

    # Credentials: JSON object {"<universeId>": "<api key>"}.
    datastore_api_keys: str | None = Field(default=None, validation_alias="DATASTORE_API_KEYS")
    # Optional Secrets Manager secret with the same JSON shape.
    datastore_secret_arn: str | None = Field(default=None, validation_alias="DATASTORE_SECRET_ARN")

    # Remote key-value service
    open_cloud_base_url: str = Field(
        default="https://apis.roblox.com", validation_alias="OPEN_CLOUD_BASE_URL"
    )
    thumbnails_base_url: str = Field(
        default="https://thumbnails.roblox.com", validation_alias="THUMBNAILS_BASE_URL"
    )
    open_cloud_timeout_seconds: float = Field(
        default=20.0, validation_alias="OPEN_CLOUD_TIMEOUT_SECONDS"
    )
    # Entry key used by per-player records.
    record_key_template: str = Field(
        default="Player_{user_id}", validation_alias="RECORD_KEY_TEMPLATE"
    )

    # Host surface size limits. Overrides are applied on top of the profile.
    surface_profile: str = Field(default="slack", validation_alias="SURFACE_PROFILE")
    surface_message_limit: int | None = Field(default=None, validation_alias="SURFACE_MESSAGE_LIMIT")
    surface_fenced_soft_limit: int | None = Field(
        default=None, validation_alias="SURFACE_FENCED_SOFT_LIMIT"
    )
    surface_description_limit: int | None = Field(
        default=None, validation_alias="SURFACE_DESCRIPTION_LIMIT"
    )
    surface_inline_field_limit: int | None = Field(
        default=None, validation_alias="SURFACE_INLINE_FIELD_LIMIT"
    )
    surface_label_max_len: int | None = Field(default=None, validation_alias="SURFACE_LABEL_MAX_LEN")
    render_layout: str = Field(default="auto", validation_alias="RENDER_LAYOUT")

    # Slack (optional; enables /api/integrations/slack/*)
    slack_enabled: bool = Field(default=False, validation_alias="SLACK_ENABLED")
    slack_bot_token: str | None = Field(default=None, validation_alias="SLACK_BOT_TOKEN")
    slack_signing_secret: str | None = Field(default=None, validation_alias="SLACK_SIGNING_SECRET")
    # Prefer injecting a single Secrets Manager ARN and resolving keys at runtime.
    slack_secret_arn: str | None = Field(default=None, validation_alias="SLACK_SECRET_ARN")
    slack_default_datastore: str = Field(
        default="player_currency", validation_alias="SLACK_DEFAULT_DATASTORE"
    )

    # ---- helpers / derived flags ----
    @property
    def normalized_environment(self) -> str:
        v = (self.environment or "").strip().lower()
        if v in ("prod", "production"):
            return "production"
        if v in ("stage", "staging"):
            return "staging"
        if v in ("dev", "development"):
            return "development"
        return v or "development"

    @property
    def is_production(self) -> bool:
        return self.normalized_environment == "production"

    def require_in_production(self) -> None:
        """
        Enforce required settings in production.

        Development/staging may run without credentials or Slack wiring,
        production must be able to answer the commands it exposes.
        """
        if not self.is_production:
            return

        missing: list[str] = []

        if not (self.datastore_api_keys or self.datastore_secret_arn):
            missing.append("DATASTORE_API_KEYS (or DATASTORE_SECRET_ARN)")

        # Slack (optional) - but if explicitly enabled, require full config.
        if bool(self.slack_enabled):
            if not (self.slack_secret_arn and str(self.slack_secret_arn).strip()):
                if not self.slack_bot_token:
                    missing.append("SLACK_BOT_TOKEN (or SLACK_SECRET_ARN)")
                if not self.slack_signing_secret:
                    missing.append("SLACK_SIGNING_SECRET (or SLACK_SECRET_ARN)")

        if missing:
            raise RuntimeError(
                "Missing required production environment variables: "
                + ", ".join(missing)
            )

    def to_log_safe_dict(self) -> dict[str, object]:
        """
        A redacted representation safe for structured logs / diagnostics.
        """
        def _has(v: object) -> bool:
            return v is not None and str(v).strip() != ""

        return {
            "environment": self.normalized_environment,
            "port": self.port,
            "datastore": {
                "api_keys_configured": _has(self.datastore_api_keys),
                "secret_arn_configured": _has(self.datastore_secret_arn),
                "open_cloud_base_url": self.open_cloud_base_url,
                "record_key_template": self.record_key_template,
            },
            "surface": {
                "profile": self.surface_profile,
                "layout": self.render_layout,
            },
            "slack": {
                "slack_enabled": bool(self.slack_enabled),
                "slack_bot_token_configured": _has(self.slack_bot_token),
                "slack_signing_secret_configured": _has(self.slack_signing_secret),
                "slack_secret_arn_configured": _has(self.slack_secret_arn),
                "slack_default_datastore": self.slack_default_datastore,
            },
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    s = Settings()
    s.require_in_production()
    return s


# Backwards-compatible module-level singleton.
settings = get_settings()
