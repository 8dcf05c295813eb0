from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from clients.base import CompletionHTTPError, ServiceError
from clients.gateway import ChatCompletionGateway
from clients.memory import InMemoryBlobStore
from clients.registry import build_services
from clients.supabase import SupabaseClient
from config import ConfigError, Settings


def fake_response(status=200, body=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.json.return_value = body
    resp.text = text
    return resp


def supabase(session):
    return SupabaseClient("https://proj.supabase.co/", "service-key", session=session)


def test_get_user_uses_caller_token():
    session = MagicMock()
    session.get.return_value = fake_response(body={"id": "user-1", "email": "a@b.c"})
    user = supabase(session).get_user("caller-token")

    assert user.id == "user-1"
    url = session.get.call_args.args[0]
    headers = session.get.call_args.kwargs["headers"]
    assert url == "https://proj.supabase.co/auth/v1/user"
    assert headers["Authorization"] == "Bearer caller-token"
    assert headers["apikey"] == "service-key"


def test_get_user_rejected():
    session = MagicMock()
    session.get.return_value = fake_response(status=401, body={"msg": "invalid JWT"})
    with pytest.raises(ServiceError):
        supabase(session).get_user("bad")


def test_get_user_network_error():
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("boom")
    with pytest.raises(ServiceError):
        supabase(session).get_user("tok")


def test_upload_never_upserts():
    session = MagicMock()
    session.post.return_value = fake_response(body={"Key": "thermal-images/user-1/1_scan.png"})
    path = supabase(session).upload("user-1/1_scan.png", b"png", "image/png")

    assert path == "user-1/1_scan.png"
    url = session.post.call_args.args[0]
    headers = session.post.call_args.kwargs["headers"]
    assert url == "https://proj.supabase.co/storage/v1/object/thermal-images/user-1/1_scan.png"
    assert headers["x-upsert"] == "false"
    assert headers["Content-Type"] == "image/png"


def test_upload_conflict_raises():
    session = MagicMock()
    session.post.return_value = fake_response(status=409, text="The resource already exists")
    with pytest.raises(ServiceError):
        supabase(session).upload("user-1/1_scan.png", b"png", "image/png")


def test_signed_url_is_absolute():
    session = MagicMock()
    session.post.return_value = fake_response(
        body={"signedURL": "/object/sign/thermal-images/user-1/1_scan.png?token=abc"}
    )
    url = supabase(session).create_signed_url("user-1/1_scan.png", 3600)

    assert url == "https://proj.supabase.co/storage/v1/object/sign/thermal-images/user-1/1_scan.png?token=abc"
    assert session.post.call_args.kwargs["json"] == {"expiresIn": 3600}


def test_insert_returns_representation():
    row = {"id": "rec-1", "created_at": "2025-11-12T20:31:13+00:00"}
    session = MagicMock()
    session.post.return_value = fake_response(status=201, body=row)
    result = supabase(session).insert_detection("user-1", "user-1/1_scan.png", [])

    assert result == row
    kwargs = session.post.call_args.kwargs
    assert kwargs["headers"]["Prefer"] == "return=representation"
    assert kwargs["json"] == {"user_id": "user-1", "image_path": "user-1/1_scan.png", "detections": []}


def test_insert_failure_raises():
    session = MagicMock()
    session.post.return_value = fake_response(status=403, text="row-level security")
    with pytest.raises(ServiceError):
        supabase(session).insert_detection("user-1", "user-1/1_scan.png", [])


def test_gateway_payload_and_status():
    session = MagicMock()
    session.post.return_value = fake_response(body={"choices": []})
    gateway = ChatCompletionGateway("ai-key", session=session)
    gateway.complete([{"role": "user", "content": "hi"}], model="m", temperature=0.3)

    kwargs = session.post.call_args.kwargs
    assert kwargs["json"] == {
        "model": "m",
        "messages": [{"role": "user", "content": "hi"}],
        "temperature": 0.3,
    }
    assert kwargs["headers"]["Authorization"] == "Bearer ai-key"
    assert "stream" not in kwargs["json"]

    session.post.return_value = fake_response(status=429, text="slow down")
    with pytest.raises(CompletionHTTPError) as exc:
        gateway.complete([], model="m", temperature=0.3)
    assert exc.value.status_code == 429


def test_memory_store_refuses_overwrite_and_bad_mime():
    store = InMemoryBlobStore()
    store.upload("user-1/1_a.png", b"x", "image/png")
    with pytest.raises(ServiceError):
        store.upload("user-1/1_a.png", b"y", "image/png")
    with pytest.raises(ServiceError):
        store.upload("user-1/2_a.gif", b"x", "image/gif")
    with pytest.raises(ServiceError):
        store.upload("user-1/3_a.png", b"x" * (5 * 1024 * 1024 + 1), "image/png")


def test_settings_require_credentials():
    with pytest.raises(ConfigError):
        Settings.from_env({"SUPABASE_URL": "https://proj.supabase.co"})


def test_settings_defaults_and_wiring():
    settings = Settings.from_env(
        {
            "SUPABASE_URL": "https://proj.supabase.co/",
            "SUPABASE_SERVICE_ROLE_KEY": "service-key",
            "LOVABLE_API_KEY": "ai-key",
        }
    )
    assert settings.supabase_url == "https://proj.supabase.co"
    assert settings.ai_model == "google/gemini-2.5-flash"
    assert settings.signed_url_ttl == 3600

    services = build_services(settings)
    assert isinstance(services.authenticator, SupabaseClient)
    assert services.blob_store is services.record_store
    assert isinstance(services.vision, ChatCompletionGateway)
    assert services.model == "google/gemini-2.5-flash"
