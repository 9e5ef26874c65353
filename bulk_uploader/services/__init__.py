"""Services for bulk_uploader module."""
from .api_client import CloudinaryAPIClient
from .error_log import ErrorLog
from .signer import generate_signature
from .validation import ImageValidator

__all__ = [
    "CloudinaryAPIClient",
    "ErrorLog",
    "ImageValidator",
    "generate_signature",
]
