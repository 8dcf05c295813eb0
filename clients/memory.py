from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from clients.base import (
    Authenticator,
    BlobStore,
    CompletionHTTPError,
    RecordStore,
    ServiceError,
    User,
    VisionCompletionService,
)

MAX_FILE_SIZE = 5 * 1024 * 1024
ALLOWED_MIME_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")


class InMemoryAuthenticator(Authenticator):
    """Maps known tokens to users; anything else is rejected."""

    def __init__(self, tokens: Optional[Dict[str, str]] = None) -> None:
        self.tokens = dict(tokens or {})

    def get_user(self, token: str) -> Optional[User]:
        user_id = self.tokens.get(token)
        if user_id is None:
            raise ServiceError("invalid JWT")
        return User(id=user_id)


class InMemoryBlobStore(BlobStore):
    """
    Dict-backed bucket with the same limits as the provisioned
    `thermal-images` bucket: 5MB objects, image MIME types only, and no
    overwrite unless `upsert` is set.
    """

    def __init__(
        self,
        *,
        max_file_size: int = MAX_FILE_SIZE,
        allowed_mime_types=ALLOWED_MIME_TYPES,
        base_url: str = "memory://thermal-images",
    ) -> None:
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.max_file_size = max_file_size
        self.allowed_mime_types = tuple(allowed_mime_types)
        self.base_url = base_url
        self.fail_uploads = False
        self.fail_signing = False

    def upload(self, key: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        if self.fail_uploads:
            raise ServiceError("storage unavailable")
        if len(data) > self.max_file_size:
            raise ServiceError("Payload too large")
        if content_type not in self.allowed_mime_types:
            raise ServiceError(f"mime type {content_type} is not supported")
        if key in self.objects and not upsert:
            raise ServiceError("The resource already exists")
        self.objects[key] = {"data": data, "content_type": content_type}
        return key

    def create_signed_url(self, path: str, expires_in: int) -> str:
        if self.fail_signing or path not in self.objects:
            raise ServiceError("Object not found")
        token = uuid.uuid4().hex
        return f"{self.base_url}/{path}?token={token}&expires_in={expires_in}"


class InMemoryRecordStore(RecordStore):
    def __init__(self) -> None:
        self.rows: List[Dict[str, Any]] = []
        self.fail_inserts = False

    def insert_detection(
        self,
        user_id: str,
        image_path: str,
        detections: List[Any],
    ) -> Dict[str, Any]:
        if self.fail_inserts:
            raise ServiceError("database unavailable")
        row = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "image_path": image_path,
            "detections": json.loads(json.dumps(detections)),
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self.rows.append(row)
        return dict(row)


class ScriptedVisionService(VisionCompletionService):
    """Replies with fixed content, or a fixed HTTP error status."""

    def __init__(self, content: Any = "[]", status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code
        self.calls: List[Dict[str, Any]] = []

    def complete(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        temperature: float,
    ) -> Dict[str, Any]:
        self.calls.append({"messages": messages, "model": model, "temperature": temperature})
        if self.status_code >= 300:
            raise CompletionHTTPError(self.status_code, "scripted failure")
        message: Dict[str, Any] = {"role": "assistant"}
        if self.content is not None:
            message["content"] = self.content
        return {"choices": [{"index": 0, "message": message}]}
