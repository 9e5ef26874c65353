"""
Error taxonomy for uploads.

FileOpenError       - local file could not be opened or read
FileTransferError   - request failed without a server answer (network, timeout)
ServerResponseError - the remote API answered with an error status
"""
from typing import Optional


class FileError(Exception):
    """Base error for a single file."""

    def __init__(self, message: str, pathname: str):
        super().__init__(message)
        self.message = message
        self.pathname = str(pathname)


class FileOpenError(FileError):
    """Raised when a local file can't be opened."""

    def __str__(self) -> str:
        return f'Failed to open "{self.pathname}": {self.message}'


class FileTransferError(FileError):
    """Raised when an upload request fails."""

    def __str__(self) -> str:
        return f'Failed to upload "{self.pathname}": {self.message}'


class ServerResponseError(FileTransferError):
    """Raised when the server rejects an upload request."""

    def __init__(self, message: str, pathname: str, status_code: int):
        super().__init__(message, pathname)
        self.status_code = status_code


class UploadCancelledError(FileTransferError):
    """Raised when a transfer stops at a chunk boundary because the batch was cancelled."""

    def __init__(self, pathname: str, message: Optional[str] = None):
        super().__init__(message or "upload cancelled", pathname)


class ErrorLogError(RuntimeError):
    """Raised when the error log file can't be opened."""
