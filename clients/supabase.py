from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from clients.base import Authenticator, BlobStore, RecordStore, ServiceError, User

log = logging.getLogger(__name__)


class SupabaseClient(Authenticator, BlobStore, RecordStore):
    """
    Thin REST client for the three Supabase services the handler touches.

    - GoTrue     : `GET  /auth/v1/user`
    - Storage    : `POST /storage/v1/object/{bucket}/{key}`
                   `POST /storage/v1/object/sign/{bucket}/{key}`
    - PostgREST  : `POST /rest/v1/{table}`

    All calls authenticate with the service-role key.
    """

    def __init__(
        self,
        url: str,
        service_role_key: str,
        *,
        bucket: str = "thermal-images",
        table: str = "detections",
        timeout_s: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._key = service_role_key
        self._bucket = bucket
        self._table = table
        self._timeout_s = timeout_s
        self._session = session or requests.Session()

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = {
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
        }
        headers.update(extra)
        return headers

    def _object_path(self, key: str) -> str:
        return quote(f"{self._bucket}/{key}", safe="/")

    # Auth

    def get_user(self, token: str) -> Optional[User]:
        try:
            resp = self._session.get(
                f"{self._url}/auth/v1/user",
                headers=self._headers(Authorization=f"Bearer {token}"),
                timeout=self._timeout_s,
            )
        except requests.RequestException as e:
            raise ServiceError(f"auth request failed: {e}") from e

        if not resp.ok:
            raise ServiceError(f"auth rejected token ({resp.status_code})")

        body = resp.json() or {}
        user_id = body.get("id")
        if not user_id:
            return None
        return User(id=str(user_id), email=body.get("email"), raw=body)

    # Storage

    def upload(self, key: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        try:
            resp = self._session.post(
                f"{self._url}/storage/v1/object/{self._object_path(key)}",
                data=data,
                headers=self._headers(
                    **{
                        "Content-Type": content_type or "application/octet-stream",
                        "x-upsert": "true" if upsert else "false",
                    }
                ),
                timeout=self._timeout_s,
            )
        except requests.RequestException as e:
            raise ServiceError(f"upload failed: {e}") from e

        if not resp.ok:
            raise ServiceError(f"upload rejected ({resp.status_code}): {resp.text}")
        return key

    def create_signed_url(self, path: str, expires_in: int) -> str:
        try:
            resp = self._session.post(
                f"{self._url}/storage/v1/object/sign/{self._object_path(path)}",
                json={"expiresIn": expires_in},
                headers=self._headers(),
                timeout=self._timeout_s,
            )
        except requests.RequestException as e:
            raise ServiceError(f"signing failed: {e}") from e

        if not resp.ok:
            raise ServiceError(f"signing rejected ({resp.status_code})")

        signed = (resp.json() or {}).get("signedURL")
        if not signed:
            raise ServiceError("signing response carried no signedURL")
        return f"{self._url}/storage/v1{signed}"

    # PostgREST

    def insert_detection(
        self,
        user_id: str,
        image_path: str,
        detections: List[Any],
    ) -> Dict[str, Any]:
        row = {
            "user_id": user_id,
            "image_path": image_path,
            "detections": detections,
        }
        try:
            resp = self._session.post(
                f"{self._url}/rest/v1/{self._table}",
                json=row,
                headers=self._headers(
                    **{
                        "Prefer": "return=representation",
                        "Accept": "application/vnd.pgrst.object+json",
                    }
                ),
                timeout=self._timeout_s,
            )
        except requests.RequestException as e:
            raise ServiceError(f"insert failed: {e}") from e

        if not resp.ok:
            raise ServiceError(f"insert rejected ({resp.status_code}): {resp.text}")
        return resp.json()
