from __future__ import annotations

from typing import Optional

from clients.base import Services
from clients.gateway import ChatCompletionGateway
from clients.supabase import SupabaseClient
from config import Settings

_services: Optional[Services] = None


def build_services(settings: Settings) -> Services:
    """Wire the Supabase and AI gateway clients from explicit settings."""
    supabase = SupabaseClient(
        settings.supabase_url,
        settings.supabase_service_role_key,
        bucket=settings.storage_bucket,
        timeout_s=settings.http_timeout_s,
    )
    gateway = ChatCompletionGateway(
        settings.ai_api_key,
        url=settings.ai_gateway_url,
        timeout_s=settings.http_timeout_s,
    )
    return Services(
        authenticator=supabase,
        blob_store=supabase,
        record_store=supabase,
        vision=gateway,
        model=settings.ai_model,
        signed_url_ttl=settings.signed_url_ttl,
    )


def get_services() -> Services:
    """
    Returns a singleton `Services` bundle built from the environment.

    Settings are read on first use; there is no hot reload.
    """
    global _services

    if _services is None:
        _services = build_services(Settings.from_env())

    return _services
