"""
Custom Middleware for request processing.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from appsettings.core.config import get_config
from appsettings.services.share import loaded_settings

class PayloadSizeMiddleware(BaseHTTPMiddleware):
    """
    Middleware to validate request payload size.

    Checks content-length header before reading the body.
    This prevents memory exhaustion from oversized requests.
    """

    def __init__(self, app, limit: int = None):
        super().__init__(app)
        self.limit = limit if limit is not None else get_config().max_payload_bytes

    async def dispatch(self, request, call_next):
        """
        Check payload size before processing the request.
        """
        if request.method in ("POST", "PUT", "PATCH"):
            content_length = request.headers.get("content-length")

            if content_length and content_length.isdigit():
                size = int(content_length)

                if size > self.limit:
                    return JSONResponse(
                        status_code=413,
                        content={
                            "error": "Payload Too Large",
                            "detail": f"Request body ({size} bytes) exceeds limit ({self.limit} bytes)",
                            "limit_bytes": self.limit,
                        }
                    )
        # Continue to the route handler
        response = await call_next(request)
        return response

class LoadedSettingsMiddleware(BaseHTTPMiddleware):
    """
    Gives every request its own set of loaded setting keys, so the
    JavaScript share only sees settings read by that request.
    """

    async def dispatch(self, request, call_next):
        loaded_settings.start()
        return await call_next(request)
