from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from clients.base import CompletionHTTPError, ServiceError, VisionCompletionService
from config import DEFAULT_GATEWAY_URL


class ChatCompletionGateway(VisionCompletionService):
    """HTTP client for an OpenAI-compatible `/chat/completions` endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        url: str = DEFAULT_GATEWAY_URL,
        timeout_s: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._api_key = api_key
        self._url = url
        self._timeout_s = timeout_s
        self._session = session or requests.Session()

    def complete(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        temperature: float,
    ) -> Dict[str, Any]:
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        try:
            resp = self._session.post(
                self._url,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout_s,
            )
        except requests.RequestException as e:
            raise ServiceError(f"AI gateway unreachable: {e}") from e

        if not resp.ok:
            raise CompletionHTTPError(resp.status_code, resp.text)
        return resp.json()
