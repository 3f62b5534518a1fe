"""
Request tracing middleware.

Assigns a short trace id to every request, exposes it to the client
(X-Request-Id / X-Trace-Id) and to log records, and logs request entry,
exit status and duration.
"""

import contextvars
import logging
import secrets
import time

logger = logging.getLogger(__name__)

_trace_id = contextvars.ContextVar('trace_id', default='no-trace')


def get_trace_id():
    return _trace_id.get()


def _new_trace_id():
    return f"{int(time.time() * 1000):x}-{secrets.token_hex(3)}"


class TraceIdFilter(logging.Filter):
    """Attach the current request's trace id to every log record."""

    def filter(self, record):
        record.trace_id = _trace_id.get()
        return True


class RequestTraceMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        trace_id = request.headers.get('X-Request-Id') or _new_trace_id()
        token = _trace_id.set(trace_id)
        request.trace_id = trace_id
        start = time.monotonic()

        remote = request.META.get('REMOTE_ADDR', '-')
        origin = request.headers.get('Origin', '-')
        logger.info(f"Entering {request.method} {request.get_full_path()} from {remote} Origin:{origin}")

        try:
            response = self.get_response(request)
            duration = (time.monotonic() - start) * 1000
            logger.info(
                f"Exiting {request.method} {request.get_full_path()} - "
                f"status={response.status_code} duration={duration:.0f}ms"
            )
            response['X-Request-Id'] = trace_id
            response['X-Trace-Id'] = trace_id
            return response
        finally:
            _trace_id.reset(token)

    def process_exception(self, request, exception):
        logger.error(f"Error encountered: {exception}", exc_info=exception)
        return None
