"""HTTP adapter for multipart file uploads."""
from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from ..models import RawFile, UploadConfig
from ..protocols import ProgressCallback

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def decode_body(response: httpx.Response) -> Any:
    """
    Decode a response body.

    JSON when the response declares a JSON content type (``application/json``
    or ``+json``) or declares none and the body parses; text otherwise.
    """
    content_type = response.headers.get("Content-Type", "").split(";")[0].strip().lower()
    if content_type and not (content_type == "application/json" or content_type.endswith("+json")):
        return response.text
    try:
        return response.json()
    except ValueError:
        return response.text


def merge_headers(extra: Optional[Dict[str, str]]) -> Dict[str, str]:
    """
    Caller headers minus Content-Type.

    The multipart encoder sets ``multipart/form-data; boundary=...`` and it
    must not be overridden.
    """
    return {k: v for k, v in (extra or {}).items() if k.lower() != "content-type"}


def with_progress(request: httpx.Request, progress_callback: ProgressCallback) -> httpx.Request:
    """
    Rebuild ``request`` so its body reports bytes sent.

    The callback runs after each chunk has been handed to the transport, with
    ``(bytes_loaded, bytes_total)``; total is None for chunked bodies.
    The new body is a one-shot generator: it cannot be replayed, so the
    request is sent without following redirects and auth flows that resend
    the body (digest auth) are not supported.
    """
    length = request.headers.get("Content-Length")
    total = int(length) if length else None
    stream = request.stream

    async def body() -> AsyncIterator[bytes]:
        loaded = 0
        async for chunk in stream:
            yield chunk
            loaded += len(chunk)
            await progress_callback(loaded, total)

    return httpx.Request(
        request.method,
        request.url,
        headers=request.headers,
        content=body(),
        extensions=request.extensions,
    )


class HTTPMultipartTransport:
    """
    HTTP client adapter for multipart uploads.

    Implements ITransport protocol. Auth and cookies are only attached to
    requests whose config sets ``with_credentials``.
    """

    def __init__(
        self,
        timeout: float = 60,
        auth: Optional[httpx.Auth] = None,
        cookies: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._timeout = timeout
        self._auth = auth
        self._cookies = cookies
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self

    async def __aexit__(self, *args):
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    def build_request(self, raw: RawFile, fileobj, config: UploadConfig) -> httpx.Request:
        content_type = raw.content_type or DEFAULT_CONTENT_TYPE
        return httpx.Request(
            "POST",
            config.action,
            headers=merge_headers(dict(config.headers)),
            data={k: str(v) for k, v in config.data.items()},
            files={config.field_name: (raw.name, fileobj, content_type)},
            cookies=self._cookies if config.with_credentials else None,
            extensions={"timeout": httpx.Timeout(config.timeout).as_dict()},
        )

    async def send(
        self,
        raw: RawFile,
        config: UploadConfig,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Any:
        if not self._client:
            raise RuntimeError("HTTPMultipartTransport not initialized. Use 'async with' context.")

        with raw.open() as fileobj:
            request = self.build_request(raw, fileobj, config)
            if progress_callback is not None:
                request = with_progress(request, progress_callback)

            logger.debug(f"POST {config.action} ({raw.name}, {raw.size} bytes)")
            response = await self._client.send(
                request,
                auth=self._auth if config.with_credentials else None,
                follow_redirects=False,
            )

        if not response.is_success:
            logger.debug(f"Upload of {raw.name} rejected: HTTP {response.status_code}")
        response.raise_for_status()
        return decode_body(response)
