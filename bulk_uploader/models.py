"""
Models for bulk_uploader module.

Configuration is immutable; BatchResult is filled in while a batch runs.
"""
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# Maximum number of concurrent upload requests allowed by Cloudinary
MAX_CONCURRENT_UPLOADS = 10

# File chunk upload size in bytes
CHUNK_UPLOAD_SIZE = 5_000_000

DEFAULT_TIMEOUT = 120.0

DEFAULT_API_BASE_URL = "https://api.cloudinary.com/v1_1"
DEFAULT_DELIVERY_BASE_URL = "https://res.cloudinary.com"


class ValidationResult(Enum):
    """Client-side validation verdict for a candidate file."""
    VALID = "valid"
    INVALID = "invalid"
    NOT_ALLOWED = "not allowed"


@dataclass(frozen=True)
class UploadConfig:
    """Immutable configuration for upload operations."""
    chunk_size: int = CHUNK_UPLOAD_SIZE
    max_concurrency: int = MAX_CONCURRENT_UPLOADS
    timeout: float = DEFAULT_TIMEOUT  # seconds, per request
    api_base_url: str = DEFAULT_API_BASE_URL
    delivery_base_url: str = DEFAULT_DELIVERY_BASE_URL

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.max_concurrency <= 0:
            raise ValueError(f"max_concurrency must be positive, got {self.max_concurrency}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

    @property
    def concurrency_cap(self) -> int:
        """Configured concurrency, never above the remote API's own limit."""
        return min(self.max_concurrency, MAX_CONCURRENT_UPLOADS)

    @classmethod
    def from_env(cls, **overrides) -> "UploadConfig":
        """
        Build a config from UPLOADER_* environment variables.

        Keyword overrides win over the environment; None values are ignored.
        """
        values: Dict[str, Any] = {}
        chunk_size = os.getenv("UPLOADER_CHUNK_SIZE")
        if chunk_size:
            values["chunk_size"] = int(chunk_size)
        max_parallel = os.getenv("UPLOADER_MAX_PARALLEL")
        if max_parallel:
            values["max_concurrency"] = int(max_parallel)
        timeout = os.getenv("UPLOADER_TIMEOUT")
        if timeout:
            values["timeout"] = float(timeout)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass(frozen=True)
class ErrorLogOptions:
    """Where and how failed uploads are recorded."""
    filename: Optional[str] = None
    line_sep: str = os.linesep
    overwrite: bool = False  # False: fail if the file already exists


@dataclass(frozen=True)
class PingResult:
    """Result of a ping to the remote API."""
    success: bool
    info: str


@dataclass
class BatchResult:
    """Result of a bulk upload."""
    total_candidates: int = 0
    uploaded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)  # already on the server
    invalid: List[str] = field(default_factory=list)
    cancelled: bool = False
    log_writes_enqueued: int = 0
    log_writes_completed: int = 0

    @property
    def success(self) -> bool:
        return not self.cancelled and not self.failed and not self.invalid

    @property
    def uploaded_count(self) -> int:
        return len(self.uploaded)

    @property
    def failed_count(self) -> int:
        return len(self.failed)
