"""Minimal Connect protocol client (JSON codec) for unary and server-streaming RPCs."""

import json
import struct
from collections.abc import AsyncGenerator

import httpx
import structlog

from wiki_console.exceptions import RpcError

logger = structlog.get_logger()

CONNECT_PROTOCOL_VERSION = "1"
FLAG_COMPRESSED = 0x01
FLAG_END_STREAM = 0x02
_PREFIX = struct.Struct(">BI")

_HTTP_STATUS_CODES = {
    400: "invalid_argument",
    401: "unauthenticated",
    403: "permission_denied",
    404: "unimplemented",
    408: "deadline_exceeded",
    409: "aborted",
    429: "unavailable",
    502: "unavailable",
    503: "unavailable",
    504: "unavailable",
}


def encode_envelope(message: dict, flags: int = 0) -> bytes:
    data = json.dumps(message, separators=(",", ":")).encode()
    return _PREFIX.pack(flags, len(data)) + data


class EnvelopeDecoder:
    """Splits a byte stream into ``(flags, payload)`` envelopes across arbitrary chunking."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> bool:
        return len(self._buffer) > 0

    def feed(self, chunk: bytes) -> list[tuple[int, bytes]]:
        self._buffer.extend(chunk)
        envelopes: list[tuple[int, bytes]] = []
        while len(self._buffer) >= _PREFIX.size:
            flags, length = _PREFIX.unpack_from(self._buffer)
            end = _PREFIX.size + length
            if len(self._buffer) < end:
                break
            envelopes.append((flags, bytes(self._buffer[_PREFIX.size : end])))
            del self._buffer[:end]
        return envelopes


def _error_from_payload(payload: object, fallback_code: str, procedure: str) -> RpcError:
    if isinstance(payload, dict):
        code = payload.get("code") or fallback_code
        message = payload.get("message") or ""
        return RpcError(str(code), str(message), procedure)
    return RpcError(fallback_code, "", procedure)


def _error_from_response(response: httpx.Response, procedure: str) -> RpcError:
    fallback = _HTTP_STATUS_CODES.get(response.status_code, "unknown")
    try:
        payload = response.json()
    except ValueError:
        return RpcError(fallback, response.text or f"HTTP {response.status_code}", procedure)
    return _error_from_payload(payload, fallback, procedure)


class ConnectClient:
    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http

    async def unary(self, procedure: str, message: dict) -> dict:
        response = await self._http.post(
            f"/{procedure}",
            json=message,
            headers={"Connect-Protocol-Version": CONNECT_PROTOCOL_VERSION},
        )
        if response.status_code != 200:
            error = _error_from_response(response, procedure)
            logger.warning("rpc_failed", procedure=procedure, code=error.rpc_code, error=error.message)
            raise error
        return response.json()

    async def server_stream(self, procedure: str, message: dict) -> AsyncGenerator[dict, None]:
        headers = {
            "Content-Type": "application/connect+json",
            "Connect-Protocol-Version": CONNECT_PROTOCOL_VERSION,
        }
        async with self._http.stream(
            "POST", f"/{procedure}", content=encode_envelope(message), headers=headers
        ) as response:
            if response.status_code != 200:
                await response.aread()
                raise _error_from_response(response, procedure)

            decoder = EnvelopeDecoder()
            async for chunk in response.aiter_bytes():
                for flags, data in decoder.feed(chunk):
                    if flags & FLAG_COMPRESSED:
                        raise RpcError("internal", "compressed messages are not supported", procedure)
                    if flags & FLAG_END_STREAM:
                        trailer = json.loads(data) if data else {}
                        if trailer.get("error"):
                            raise _error_from_payload(trailer["error"], "unknown", procedure)
                        return
                    yield json.loads(data)

        raise RpcError("data_loss", "stream ended without an end-of-stream message", procedure)
