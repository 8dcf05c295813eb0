from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class ServiceError(RuntimeError):
    """A collaborator call failed."""


class CompletionHTTPError(ServiceError):
    """The AI gateway answered with a non-success status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"AI gateway returned {status_code}")
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True)
class User:
    id: str
    email: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


class Authenticator(ABC):
    @abstractmethod
    def get_user(self, token: str) -> Optional[User]:
        """Resolve a bearer token to a user, or raise `ServiceError`."""


class BlobStore(ABC):
    @abstractmethod
    def upload(self, key: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        """Store `data` under `key` and return the stored path."""

    @abstractmethod
    def create_signed_url(self, path: str, expires_in: int) -> str:
        """Return a time-limited read URL for `path`."""


class RecordStore(ABC):
    @abstractmethod
    def insert_detection(
        self,
        user_id: str,
        image_path: str,
        detections: List[Any],
    ) -> Dict[str, Any]:
        """Insert a detection record and return the stored row."""


class VisionCompletionService(ABC):
    @abstractmethod
    def complete(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        temperature: float,
    ) -> Dict[str, Any]:
        """Run one chat completion and return the decoded response body."""


@dataclass
class Services:
    """Collaborators plus the settings the pipeline needs at runtime."""

    authenticator: Authenticator
    blob_store: BlobStore
    record_store: RecordStore
    vision: VisionCompletionService
    model: str = "google/gemini-2.5-flash"
    signed_url_ttl: int = 3600
