"""
Protocols (Interfaces) for Dependency Inversion.

Following Interface Segregation Principle - small, focused interfaces.
"""
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol, Union, runtime_checkable

from .models import PingResult, ValidationResult


@runtime_checkable
class IValidator(Protocol):
    """Interface for client-side file validation."""

    async def classify(self, path: Union[str, Path]) -> ValidationResult:
        """Classify a file; may raise FileOpenError."""
        ...


@runtime_checkable
class IUploadAPI(Protocol):
    """Interface for the remote upload API."""

    api_key: str
    api_secret: str

    async def post_chunk(
        self,
        pathname: str,
        chunk: bytes,
        *,
        fields: Mapping[str, Any],
        content_range: str,
        session_id: str,
        resource_type: str = "auto",
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """POST one chunk of an upload session."""
        ...

    async def check_exists(
        self,
        filename: str,
        folder: Optional[str] = None,
        format: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """Check whether a file is already stored remotely."""
        ...

    async def ping(self, timeout: Optional[float] = None) -> PingResult:
        """Test the connection to the API."""
        ...
