"""Orchestrator data models."""
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class UploadTask:
    """A file queued for upload."""
    filename: str
    source_path: Path

    @property
    def public_id(self) -> str:
        """Storage key: the filename without its extension."""
        return os.path.splitext(self.filename)[0]

    @property
    def pathname(self) -> str:
        return str(self.source_path)


@dataclass
class UploadSession:
    """Transfer state of one file, shared by all of its chunks."""
    total_size: int
    bytes_sent: int = 0
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def complete(self) -> bool:
        return self.bytes_sent >= self.total_size

    def content_range(self, chunk_len: int) -> str:
        """Content-Range header for the next chunk of ``chunk_len`` bytes."""
        start = self.bytes_sent
        end = start + chunk_len
        return f"bytes {start}-{end - 1}/{self.total_size}"

    def advance(self, chunk_len: int) -> None:
        if chunk_len <= 0:
            raise ValueError("chunk length must be positive")
        self.bytes_sent += chunk_len
