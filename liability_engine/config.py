from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10-18.v1"
    database_url: str = "sqlite:///./liability_engine.db"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Caller identity ----
    # dev: identity headers, org/user/membership auto-provisioned
    # headers: identity headers set by an upstream gateway, rows must already exist
    auth_mode: str = "dev"  # dev|headers
    dev_auto_provision: bool = True

    header_org_slug: str = "X-Org-Slug"
    header_user_email: str = "X-User-Email"
    header_user_role: str = "X-User-Role"

    # ---- Tenant approval window ----
    # Organizations may override with check_in_approval_period_days.
    default_approval_period_days: int = 5

    # ---- External collaborators ----
    document_renderer_url: str | None = None
    notifier_url: str | None = None
    notifier_api_key: str | None = None
    finance_email: str | None = None
    external_timeout_seconds: float = 20.0

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        # Hard fail: spoofable identity headers must never reach prod
        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")

        if int(self.default_approval_period_days) < 0:
            raise ValueError("default_approval_period_days must be >= 0")


settings = Settings()
