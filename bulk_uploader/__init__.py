"""
Bulk Uploader - concurrent, chunked uploads of image batches to Cloudinary.

Follows SOLID principles:
- Single Responsibility: Each service handles one concern
- Open/Closed: Extend via new services
- Liskov Substitution: Services implement protocols
- Interface Segregation: Small focused interfaces
- Dependency Injection: Services injected into the uploader

Usage:
    from bulk_uploader import BulkUploader, ErrorLogOptions

    async with BulkUploader(api_key, api_secret, cloud_name) as uploader:
        uploader.on_upload_success(lambda path, response: print(path))
        uploader.on_critical_error(lambda path, message: print(message))

        # Upload every image in a directory
        result = await uploader.upload(img_dir="images")

        # Upload specific files, recording failures
        result = await uploader.upload(
            img_dir="images",
            specific_files=["a.png", "b.jpg"],
            error_options=ErrorLogOptions(filename="errors.txt", overwrite=True),
            optional_params={"folder": "products"},
        )

        # Test connectivity (rate-limited)
        ping = await uploader.ping()
"""
from .orchestrator import BulkUploader, BatchCoordinator, UploadTask
from .models import (
    BatchResult,
    ErrorLogOptions,
    PingResult,
    UploadConfig,
    ValidationResult,
)
from .errors import (
    ErrorLogError,
    FileError,
    FileOpenError,
    FileTransferError,
    ServerResponseError,
    UploadCancelledError,
)
from .services import CloudinaryAPIClient, ErrorLog, ImageValidator, generate_signature

__version__ = "0.1.0"
__all__ = [
    # Main
    "BulkUploader",
    "BatchCoordinator",
    "UploadTask",
    # Models
    "BatchResult",
    "ErrorLogOptions",
    "PingResult",
    "UploadConfig",
    "ValidationResult",
    # Errors
    "ErrorLogError",
    "FileError",
    "FileOpenError",
    "FileTransferError",
    "ServerResponseError",
    "UploadCancelledError",
    # Services
    "CloudinaryAPIClient",
    "ErrorLog",
    "ImageValidator",
    "generate_signature",
]
