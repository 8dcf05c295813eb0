from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel

DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_MODEL = "google/gemini-2.5-flash"


class ConfigError(RuntimeError):
    """Raised when a required environment variable is missing."""


class Settings(BaseModel):
    """
    Service configuration, built once at startup and handed to the
    collaborator factory.
    """

    supabase_url: str
    supabase_service_role_key: str
    ai_api_key: str
    ai_gateway_url: str = DEFAULT_GATEWAY_URL
    ai_model: str = DEFAULT_MODEL
    storage_bucket: str = "thermal-images"
    signed_url_ttl: int = 3600
    http_timeout_s: float = 30.0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        def required(name: str) -> str:
            value = (env.get(name) or "").strip()
            if not value:
                raise ConfigError(f"{name} is not set")
            return value

        return cls(
            supabase_url=required("SUPABASE_URL").rstrip("/"),
            supabase_service_role_key=required("SUPABASE_SERVICE_ROLE_KEY"),
            ai_api_key=required("LOVABLE_API_KEY"),
            ai_gateway_url=env.get("AI_GATEWAY_URL") or DEFAULT_GATEWAY_URL,
            ai_model=env.get("AI_MODEL") or DEFAULT_MODEL,
            storage_bucket=env.get("THERMAL_BUCKET") or "thermal-images",
            signed_url_ttl=int(env.get("SIGNED_URL_TTL") or 3600),
            http_timeout_s=float(env.get("HTTP_TIMEOUT_S") or 30.0),
        )
