"""
body_limit.py
- ASGI middleware capping the size of request bodies.
- A declared Content-Length over the limit is rejected before the app runs.
- Bodies without one (chunked uploads) are counted as they are received; the
  first chunk that crosses the limit aborts the read with a 413.
"""

from fastapi import HTTPException
from loguru import logger
from starlette.datastructures import Headers

from swarm_updater.lib.common.envelope import error_response


class BodyTooLarge(HTTPException):
    def __init__(self, limit):
        super().__init__(status_code=413, detail=f"Request body exceeds {limit} bytes")
        self.limit = limit


def body_too_large_response(exc):
    return error_response(exc.detail, status_code=413)


class BodyLimitMiddleware:
    def __init__(self, app, limit):
        self.app = app
        self.limit = limit

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        length = Headers(scope=scope).get("content-length")
        if length and length.isdigit() and int(length) > self.limit:
            logger.warning(f"[api] Rejected {path}: declared body of {length} bytes over limit")
            await body_too_large_response(BodyTooLarge(self.limit))(scope, receive, send)
            return

        received = 0
        response_started = False

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.limit:
                    logger.warning(f"[api] Rejected {path}: body over {self.limit} bytes after {received} received")
                    raise BodyTooLarge(self.limit)
            return message

        async def tracked_send(message):
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracked_send)
        except BodyTooLarge as exc:
            # Read outside a route (no handler in the way); answer here if still possible.
            if response_started:
                raise
            await body_too_large_response(exc)(scope, receive, send)
