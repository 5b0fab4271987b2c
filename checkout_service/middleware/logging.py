import uuid
import time

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from checkout_service.core.metrics import HTTP_REQUESTS_TOTAL, HTTP_REQUEST_DURATION_SECONDS


class LoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, service_name: str = "checkout"):
        super().__init__(app)
        self.service_name = service_name

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        method = request.method

        with logger.contextualize(request_id=request_id):
            response = await call_next(request)

            path = request.url.path
            route = request.scope.get("route")
            if route and hasattr(route, "path"):
                path = route.path

            process_time_ms = (time.time() - start_time) * 1000

            logger.bind(
                request_path=request.url.path,
                method=method,
                status_code=response.status_code,
                process_time_ms=round(process_time_ms, 2),
            ).info("http_request_processed")

            try:
                HTTP_REQUESTS_TOTAL.labels(
                    service=self.service_name,
                    method=method,
                    path=path,
                    status_code=str(response.status_code),
                ).inc()

                HTTP_REQUEST_DURATION_SECONDS.labels(
                    service=self.service_name,
                    method=method,
                    path=path,
                ).observe(process_time_ms / 1000.0)
            except Exception:
                logger.exception("Error updating Prometheus HTTP metrics")

            response.headers["X-Request-ID"] = request_id
            return response
