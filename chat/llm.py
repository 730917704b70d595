# chat/llm.py

import os
import logging
from typing import Iterable, Mapping, Optional

# Quiet down gRPC noise from the SDK
os.environ.setdefault("GRPC_VERBOSITY", "ERROR")
os.environ.setdefault("GRPC_TRACE", "")

from django.conf import settings
import google.generativeai as genai

from .monitoring import track_provider_call

logger = logging.getLogger(__name__)


# ===== Exceptions =====

class GeminiError(RuntimeError):
    ...


class GeminiConfigError(GeminiError):
    ...


class GeminiBlocked(GeminiError):
    ...


class GeminiEmptyResponse(GeminiError):
    ...


DEFAULT_MODEL_NAME = "gemini-1.5-flash"

# history roles accepted from callers -> Gemini chat roles
ROLE_MAP = {
    "user": "user",
    "bot": "model",
    "assistant": "model",
    "model": "model",
}


# ===== Lazy Gemini client =====

_model = None
_model_key = None


def _get_model():
    """Create and cache the Gemini model client for the configured key."""
    global _model, _model_key

    api_key = getattr(settings, "GEMINI_API_KEY", None)
    if not api_key:
        raise GeminiConfigError("GEMINI_API_KEY missing")

    if _model is not None and _model_key == api_key:
        return _model

    model_name = getattr(settings, "GEMINI_MODEL", None) or DEFAULT_MODEL_NAME
    try:
        genai.configure(api_key=api_key)
        m = genai.GenerativeModel(model_name)
    except Exception as e:
        raise GeminiConfigError(f"gemini_config_error: {e}") from e

    logger.info("Gemini model %s configured", model_name)
    _model, _model_key = m, api_key
    return _model


def is_configured() -> bool:
    return bool(getattr(settings, "GEMINI_API_KEY", None))


# ===== Response helpers =====

def _extract_text(resp) -> str:
    """
    Pull the reply text out of a Gemini response.

    Prefers resp.text; the SDK raises ValueError from that accessor when the
    candidate has no parts (e.g. safety stop), so fall back to walking
    candidates[..].content.parts[..].text.
    """
    if isinstance(resp, str):
        return resp.strip()

    try:
        t = getattr(resp, "text", "") or ""
        if isinstance(t, str) and t.strip():
            return t.strip()
    except ValueError:
        pass

    for c in getattr(resp, "candidates", None) or []:
        content = getattr(c, "content", None)
        for p in getattr(content, "parts", None) or []:
            txt = getattr(p, "text", "") or ""
            if isinstance(txt, str) and txt.strip():
                return txt.strip()
    return ""


def _check_block(resp) -> None:
    fb = getattr(resp, "prompt_feedback", None)
    if fb:
        br = getattr(fb, "block_reason", None)
        if br:
            raise GeminiBlocked(f"blocked: {getattr(br, 'name', br)}")


def to_gemini_history(history: Optional[Iterable[Mapping]]) -> list:
    """Map [{role, content}] turns to Gemini's [{role, parts}] chat history."""
    out = []
    for turn in history or []:
        role = ROLE_MAP.get(str(turn.get("role", "")).lower())
        content = str(turn.get("content") or "")
        if role is None or not content.strip():
            continue
        out.append({"role": role, "parts": [content]})
    return out


# ===== Public API =====

@track_provider_call("generate_reply")
def generate_reply(message: str, history: Optional[Iterable[Mapping]] = None) -> str:
    """
    Send one prompt to Gemini and return the reply text.

    Without history the prompt goes out verbatim via generate_content; with
    history a chat session is seeded with the prior turns first.
    Raises GeminiConfigError / GeminiBlocked / GeminiEmptyResponse.
    """
    model = _get_model()
    turns = to_gemini_history(history)

    logger.debug("Sending message to model (history=%d turns)", len(turns))
    if turns:
        chat = model.start_chat(history=turns)
        resp = chat.send_message(message)
    else:
        resp = model.generate_content(message)

    _check_block(resp)

    text = _extract_text(resp)
    if not text:
        raise GeminiEmptyResponse("empty_response")
    return text
