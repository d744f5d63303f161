"""ConversionService bound to the conversion server's HTTP API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import httpx

from adocview.exceptions import ServiceFailure
from adocview.service.base import ConversionService, ValidationResult

if TYPE_CHECKING:
    from adocview.pipeline.models import OutputType

logger = logging.getLogger(__name__)


def _validate_base_url(url: str) -> str:
    """Reject non-http(s) URLs and CRLF injection in the configured base URL."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"Service base_url must be http(s), got {parsed.scheme!r}")
    if "\r" in url or "\n" in url:
        raise ValueError("CRLF injection detected in base_url")
    return url.rstrip("/")


class HttpConversionService(ConversionService):
    """Talks to ``/api/convert``, ``/api/validate`` and ``/api/xslt`` via httpx.

    A client may be injected (tests use ``httpx.MockTransport``); otherwise
    a short-lived AsyncClient is opened per call.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = _validate_base_url(base_url)
        self._timeout = timeout
        self._client = client

    async def _request(self, operation: str, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            if self._client is not None:
                resp = await self._client.request(method, url, timeout=self._timeout, **kwargs)
            else:
                async with httpx.AsyncClient() as client:
                    resp = await client.request(method, url, timeout=self._timeout, **kwargs)
        except httpx.TimeoutException as e:
            raise ServiceFailure(operation, f"timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise ServiceFailure(operation, str(e) or type(e).__name__) from e

        if resp.is_error:
            detail = resp.text.strip() or resp.reason_phrase
            logger.debug("%s %s -> %d: %s", method, url, resp.status_code, detail)
            raise ServiceFailure(operation, detail, status_code=resp.status_code)
        return resp

    async def convert(self, content: str, output_type: OutputType) -> str:
        resp = await self._request(
            "convert",
            "POST",
            "/api/convert",
            json={"asciidoc": content, "output": output_type.value},
        )
        try:
            data = resp.json()
        except ValueError as e:
            raise ServiceFailure("convert", "response is not JSON", resp.status_code) from e
        output = data.get("output") if isinstance(data, dict) else None
        if not isinstance(output, str):
            raise ServiceFailure("convert", "response has no output field", resp.status_code)
        return output

    async def validate(self, content: str) -> ValidationResult:
        resp = await self._request(
            "validate", "POST", "/api/validate", json={"asciidoc": content}
        )
        try:
            return ValidationResult.model_validate(resp.json())
        except ValueError as e:
            raise ServiceFailure("validate", f"unexpected response: {e}", resp.status_code) from e

    async def fetch_stylesheet(self) -> str:
        resp = await self._request("fetch_stylesheet", "GET", "/api/xslt")
        return resp.text
