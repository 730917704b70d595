# conversations/client.py
from __future__ import annotations

import logging
from typing import Dict, List, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class ChatApiError(RuntimeError):
    ...


class ChatApiClient:
    """HTTP client the chat page uses to reach POST /api/chat."""

    def __init__(self, url: Optional[str] = None, session: Optional[requests.Session] = None):
        self.url = url or getattr(settings, "CHAT_API_URL", "http://127.0.0.1:8000/api/chat")
        self.session = session or requests.Session()

    def send(self, message: str, history: Optional[List[Dict[str, str]]] = None) -> str:
        payload: Dict[str, object] = {"message": message}
        if history:
            payload["history"] = history

        try:
            r = self.session.post(self.url, json=payload)
        except requests.RequestException as e:
            logger.error("Error sending message to %s: %s", self.url, e)
            raise ChatApiError(str(e)) from e

        try:
            data = r.json()
        except ValueError as e:
            logger.error("Non-JSON reply from chat API (status %s)", r.status_code)
            raise ChatApiError(f"bad_json status={r.status_code}") from e

        if r.status_code != 200:
            err = data.get("error") if isinstance(data, dict) else None
            logger.error("Chat API returned %s: %s", r.status_code, err)
            raise ChatApiError(err or f"status={r.status_code}")

        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str) or not text:
            logger.error("Chat API reply missing 'response'")
            raise ChatApiError("missing_response")
        return text
