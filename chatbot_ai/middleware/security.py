"""
Request size limiting for the chat endpoints.
"""
import logging

from django.conf import settings
from django.http import JsonResponse

logger = logging.getLogger(__name__)


class RequestSizeLimitMiddleware:
    """
    Rejects write requests whose declared body is larger than
    settings.MAX_REQUEST_BYTES with a 413 JSON error.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    @property
    def max_size(self) -> int:
        return getattr(settings, "MAX_REQUEST_BYTES", 1024 * 1024)

    def __call__(self, request):
        if request.method in ["POST", "PUT", "PATCH"]:
            content_length = request.META.get("CONTENT_LENGTH")

            if content_length:
                try:
                    content_length = int(content_length)
                except (ValueError, TypeError):
                    # malformed header, let Django deal with the body
                    content_length = 0

                if content_length > self.max_size:
                    logger.warning(
                        "Request size limit exceeded: %s bytes on %s from IP %s",
                        content_length,
                        request.path,
                        request.META.get("REMOTE_ADDR"),
                    )
                    return JsonResponse({"error": "Request too large"}, status=413)

        return self.get_response(request)
