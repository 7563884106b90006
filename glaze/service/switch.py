"""Request dispatch between the assets tree and the public tree."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple

from fastapi import Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, PlainTextResponse, Response

from ..builder import BuildResult
from ..logging import get_logger

IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"

logger = get_logger("service")


class Responder(Protocol):
    """Anything that can answer a request; used as the miss fallback."""

    async def respond(self, request: Request) -> Response:
        ...


class NotFoundResponder:
    """Default fallback: a plain 404."""

    async def respond(self, request: Request) -> Response:
        return PlainTextResponse("Not Found", status_code=404)


class DirectoryServer:
    """Serves regular files from a single directory, refusing traversal outside it."""

    def __init__(self, directory: Path, *, index: Optional[str] = "index.html") -> None:
        self.directory = directory.resolve()
        self.index = index

    @property
    def ready(self) -> bool:
        return self.directory.is_dir()

    def lookup(self, relative: str) -> Optional[Tuple[Path, os.stat_result]]:
        """Return the file for ``relative`` and its stat, or None on a miss.

        Missing files are a miss; any other OSError propagates.
        """
        parts = [part for part in relative.split("/") if part not in ("", ".")]
        if ".." in parts:
            return None
        try:
            candidate = self.directory.joinpath(*parts).resolve()
        except ValueError:
            # Embedded NUL bytes cannot name a file.
            return None
        if not candidate.is_relative_to(self.directory):
            return None

        found = _stat(candidate)
        if found is not None and stat.S_ISDIR(found.st_mode):
            if not self.index:
                return None
            candidate = candidate / self.index
            found = _stat(candidate)
        if found is None or not stat.S_ISREG(found.st_mode):
            return None
        return candidate, found

    async def serve(
        self, relative: str, *, headers: Optional[Dict[str, str]] = None
    ) -> Optional[Response]:
        found = await run_in_threadpool(self.lookup, relative)
        if found is None:
            return None
        path, stat_result = found
        return FileResponse(path, stat_result=stat_result, headers=headers)


def _stat(path: Path) -> Optional[os.stat_result]:
    try:
        return path.stat()
    except (FileNotFoundError, NotADirectoryError):
        return None
    except ValueError:
        # Embedded NUL bytes cannot name a file.
        return None


class ServingSwitch:
    """Routes ``<assets_prefix>/...`` to the assets tree and everything else to the public tree.

    The same class serves both layouts: source directories for development
    builds and the published output tree for release builds. Which pair of
    directories it gets is decided once, when the switch is created.
    """

    def __init__(
        self,
        assets_dir: Path,
        public_dir: Optional[Path],
        *,
        fallback: Optional[Responder] = None,
        assets_prefix: str = "/assets",
        asset_headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.assets = DirectoryServer(assets_dir)
        self.public = DirectoryServer(public_dir) if public_dir is not None else None
        self.fallback: Responder = fallback or NotFoundResponder()
        self.assets_prefix = "/" + assets_prefix.strip("/")
        self.asset_headers = dict(asset_headers or {})

    @property
    def ready(self) -> bool:
        public_ready = self.public is None or self.public.ready
        return self.assets.ready and public_ready

    def route(self, path: str) -> Tuple[Optional[DirectoryServer], str]:
        prefix = self.assets_prefix
        if path == prefix or path.startswith(prefix + "/"):
            return self.assets, path[len(prefix) :]
        return self.public, path

    async def respond(self, request: Request) -> Response:
        path = request.url.path
        server, relative = self.route(path)
        if server is None:
            return await self.fallback.respond(request)

        headers = self.asset_headers if server is self.assets else None
        try:
            response = await server.serve(relative, headers=headers)
        except OSError as exc:
            logger.warning("Failed to serve %s: %s", path, exc)
            return Response(status_code=500)
        if response is None:
            return await self.fallback.respond(request)
        return response


def serving_switch_for(
    result: BuildResult,
    *,
    fallback: Optional[Responder] = None,
    assets_prefix: str = "/assets",
) -> ServingSwitch:
    """Build the switch matching ``result``'s mode.

    Development results point at the source directories. Release results
    point at the output tree, where hashed asset names are safe to cache
    forever.
    """
    headers = None
    if result.mode.release and result.mode.hashed:
        headers = {"Cache-Control": IMMUTABLE_CACHE_CONTROL}
    return ServingSwitch(
        result.assets_dir,
        result.public_dir,
        fallback=fallback,
        assets_prefix=assets_prefix,
        asset_headers=headers,
    )


__all__ = [
    "DirectoryServer",
    "IMMUTABLE_CACHE_CONTROL",
    "NotFoundResponder",
    "Responder",
    "ServingSwitch",
    "serving_switch_for",
]
