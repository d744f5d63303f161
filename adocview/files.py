"""File store collaborators: read sources and stylesheets, write outputs."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from adocview.exceptions import DocumentNotFound

if TYPE_CHECKING:
    from adocview.pipeline.models import OutputType

logger = logging.getLogger(__name__)


def output_path_for(source_path: str | Path, output_type: OutputType) -> Path:
    """Where a converted file is written: the source path with the type's extension."""
    return Path(source_path).with_suffix(output_type.extension)


class FileStore(ABC):
    """Reads text documents by path."""

    @abstractmethod
    async def read(self, path: str) -> str:
        """Return the file's text. Raises DocumentNotFound."""
        ...


class LocalFileStore(FileStore):
    """UTF-8 files on the local filesystem, read off the event loop."""

    async def read(self, path: str) -> str:
        def _sync() -> str:
            try:
                return Path(path).read_text(encoding="utf-8")
            except FileNotFoundError as e:
                raise DocumentNotFound(path) from e
            except IsADirectoryError as e:
                raise DocumentNotFound(path, "is a directory") from e
            except UnicodeDecodeError as e:
                raise DocumentNotFound(path, "not valid UTF-8") from e

        return await asyncio.to_thread(_sync)

    async def write(self, path: str | Path, text: str) -> Path:
        dest = Path(path)

        def _sync() -> None:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(text, encoding="utf-8")

        await asyncio.to_thread(_sync)
        logger.debug("Wrote %s (%d chars)", dest, len(text))
        return dest


class HttpFileStore(FileStore):
    """Reads files through the conversion server's ``/api/load-file`` endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    async def read(self, path: str) -> str:
        if ".." in path:
            raise DocumentNotFound(path, "invalid path")
        url = f"{self._base_url}/api/load-file"
        params = {"path": path}
        try:
            if self._client is not None:
                resp = await self._client.get(url, params=params, timeout=self._timeout)
            else:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(url, params=params, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise DocumentNotFound(path, f"load failed: {e}") from e
        if resp.is_error:
            raise DocumentNotFound(path, resp.text.strip() or resp.reason_phrase)
        return resp.text
