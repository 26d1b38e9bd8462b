import logging
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from promofye.core.logging import latency_bucket_ms, request_id_ctx_var
from promofye.core.metrics import http_requests_total, normalize_path

REQUEST_ID_HEADER = "x-request-id"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Correlate each request: reuse the caller's x-request-id or mint one,
    echo it on the response, count the request and log one completion line
    (with the signed-in user when auth resolved one).
    """

    def __init__(self, app, header_name: str = REQUEST_ID_HEADER):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next):
        rid = request.headers.get(self.header_name) or str(uuid4())
        request.state.request_id = rid
        token = request_id_ctx_var.set(rid)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[self.header_name] = rid

            route = normalize_path(request.url.path)
            status = response.status_code
            http_requests_total.inc(labels={"method": request.method, "path": route, "status": str(status)})
            logging.getLogger("promofye").info(
                "request.complete",
                extra={
                    "request_id": rid,
                    "user_id": getattr(request.state, "user_id", None),
                    "path": route,
                    "status": status,
                    "method": request.method,
                    "latency_bucket": latency_bucket_ms((time.perf_counter() - started) * 1000),
                },
            )
            return response
        finally:
            request_id_ctx_var.reset(token)
