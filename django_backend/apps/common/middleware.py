import logging
import time

logger = logging.getLogger(__name__)


class RequestLogMiddleware:
    """Log every API call with the identification it carried."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - started) * 1000

        if request.path.startswith("/api/"):
            logger.info(
                f"{request.method} {request.path} -> {response.status_code} "
                f"({elapsed_ms:.1f} ms, bearer={'Authorization' in request.headers}, "
                f"x-user-id={request.headers.get('x-user-id', '-')})"
            )
        return response
