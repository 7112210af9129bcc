from __future__ import annotations

from typing import Optional, Protocol

from starlette.types import ASGIApp, Message, Receive, Scope, Send


class PayloadTooLarge(Exception):
    def __init__(self, limit: int):
        super().__init__(f"Payload exceeds {limit} bytes")
        self.limit = limit


class ByteSource(Protocol):
    def read(self, size: int = -1, /) -> bytes: ...


class BoundedReader:
    """
    Read-only view over `source` that fails once more than `limit` bytes
    have been read in total. Reading exactly `limit` bytes is allowed.
    """

    def __init__(self, source: ByteSource, limit: int):
        if limit < 0:
            raise ValueError("limit must be non-negative")
        self._source = source
        self._limit = limit
        self._consumed = 0

    @property
    def consumed(self) -> int:
        return self._consumed

    def read(self, size: int = -1, /) -> bytes:
        remaining = self._limit - self._consumed
        # One byte past the limit is enough to tell "at limit" from "over".
        want = remaining + 1 if size < 0 else min(size, remaining + 1)
        chunk = self._source.read(want)
        self._consumed += len(chunk)
        if self._consumed > self._limit:
            raise PayloadTooLarge(self._limit)
        return chunk


class BoundedReceive:
    """
    ASGI receive channel that counts request body bytes against `limit`.

    A declared Content-Length above the limit fails on the first call,
    before any body byte is pulled from the server.
    """

    def __init__(self, receive: Receive, limit: int, declared_length: Optional[int] = None):
        self._receive = receive
        self._limit = limit
        self._declared_length = declared_length
        self._consumed = 0
        self._checked_declared = False

    async def __call__(self) -> Message:
        if not self._checked_declared:
            self._checked_declared = True
            if self._declared_length is not None and self._declared_length > self._limit:
                raise PayloadTooLarge(self._limit)

        message = await self._receive()
        if message["type"] == "http.request":
            self._consumed += len(message.get("body", b""))
            if self._consumed > self._limit:
                raise PayloadTooLarge(self._limit)
        return message


def _declared_content_length(scope: Scope) -> Optional[int]:
    for key, value in scope.get("headers", []):
        if key.lower() == b"content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None


class RequestSizeLimitMiddleware:
    """Bound every HTTP request body to `max_bytes`, multipart framing included."""

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        bounded = BoundedReceive(receive, self.max_bytes, _declared_content_length(scope))
        await self.app(scope, bounded, send)
