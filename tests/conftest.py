"""Shared fixtures and fakes for bulk_uploader tests."""
import asyncio
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

import pytest

from bulk_uploader.errors import ServerResponseError
from bulk_uploader.models import PingResult

PNG_HEADER = bytes.fromhex("89504e470d0a1a0a")


@dataclass
class ChunkRequest:
    pathname: str
    chunk: bytes
    fields: Dict[str, Any]
    content_range: str
    session_id: str
    resource_type: str


class FakeUploadAPI:
    """In-memory stand-in for CloudinaryAPIClient."""

    api_key = "test-key"
    api_secret = "test-secret"

    def __init__(
        self,
        existing: Iterable[str] = (),
        failures: Optional[Dict[str, Callable[[str], Exception]]] = None,
        delay: float = 0.0,
    ):
        self.existing = set(existing)
        self.failures = failures or {}
        self.delay = delay
        self.requests: List[ChunkRequest] = []
        self.exists_checks: List[Dict[str, Any]] = []
        self.active = 0
        self.max_active = 0

    def uploaded_paths(self) -> List[str]:
        return [r.pathname for r in self.requests]

    async def post_chunk(
        self,
        pathname,
        chunk,
        *,
        fields,
        content_range,
        session_id,
        resource_type="auto",
        timeout=None,
    ):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            self.requests.append(
                ChunkRequest(pathname, chunk, dict(fields), content_range, session_id, resource_type)
            )
            await asyncio.sleep(0)
            failure = self.failures.get(os.path.basename(pathname))
            if failure is not None:
                raise failure(pathname)
            await asyncio.sleep(self.delay)
            return {"public_id": fields.get("public_id"), "secure_url": f"https://cdn/{fields.get('public_id')}"}
        finally:
            self.active -= 1

    async def check_exists(self, filename, folder=None, format=None, timeout=None):
        self.exists_checks.append({"filename": filename, "folder": folder, "format": format})
        await asyncio.sleep(0)
        return filename in self.existing

    async def ping(self, timeout=None):
        return PingResult(success=True, info="remain: 499 limit: 500 reset: soon")


def server_error(status_code: int) -> Callable[[str], Exception]:
    return lambda pathname: ServerResponseError(f"API error {status_code}", pathname, status_code)


def write_png(path, size: int = 64) -> None:
    path.write_bytes(PNG_HEADER + b"\0" * max(size - len(PNG_HEADER), 0))


@pytest.fixture
def image_dir(tmp_path):
    """Directory factory: image_dir(n) creates n valid PNG files."""
    folder = tmp_path / "images"
    folder.mkdir()

    def make(count: int, size: int = 64) -> List[str]:
        names = [f"img{i:02d}.png" for i in range(count)]
        for name in names:
            write_png(folder / name, size)
        return names

    make.path = folder
    return make
