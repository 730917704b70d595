# chat/views.py
import logging

import sentry_sdk
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ParseError, UnsupportedMediaType
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from . import llm
from .serializers import ChatRequestSerializer, first_error

log = logging.getLogger(__name__)

ERR_NO_KEY = "API key not configured"
ERR_INVALID_RESPONSE = "Invalid response from AI model"
ERR_INTERNAL = "Internal server error"


def _error(message: str, status: int) -> Response:
    return Response({"error": message}, status=status)


@api_view(["POST"])
@permission_classes([AllowAny])
def chat(request):
    """
    Forward one user message (plus optional prior turns) to Gemini.

    Body:    {"message": str, "history"?: [{"role", "content"}]}
    Returns: 200 {"response": str}
             400 {"error": ...} on a malformed body
             500 {"error": ...} on missing key, empty/blocked reply or any failure
    """
    log.info("Chat request received")

    try:
        data = request.data
    except (ParseError, UnsupportedMediaType) as e:
        log.warning("Unreadable chat body: %s", e)
        return _error("Invalid JSON body", 400)

    ser = ChatRequestSerializer(data=data)
    if not ser.is_valid():
        return _error(first_error(ser.errors), 400)

    message = ser.validated_data["message"]
    history = ser.validated_data.get("history") or []

    if not llm.is_configured():
        log.error("GEMINI_API_KEY not found in settings/environment.")
        return _error(ERR_NO_KEY, 500)

    try:
        log.info("Sending message to model (%d chars)", len(message))
        reply = llm.generate_reply(message, history)
    except (llm.GeminiEmptyResponse, llm.GeminiBlocked) as e:
        log.error("No valid response received from the model: %s", e)
        return _error(ERR_INVALID_RESPONSE, 500)
    except Exception as e:
        log.exception("Chat API error")
        sentry_sdk.capture_exception(e)
        return _error(ERR_INTERNAL, 500)

    log.info("Response processed successfully (%d chars)", len(reply))
    return Response({"response": reply}, status=200)
