"""Core orchestrator - entry point for bulk uploads."""
import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional

from ..models import BatchResult, ErrorLogOptions, PingResult, UploadConfig
from ..protocols import IUploadAPI, IValidator
from ..services.api_client import CloudinaryAPIClient
from ..services.error_log import ErrorLog
from ..services.validation import ImageValidator
from ..utils.events import EventEmitter, UploadEvent
from .batch import BatchCoordinator
from .file_collector import FileCollector

logger = logging.getLogger(__name__)


class BulkUploader:
    """
    Uploads batches of files to Cloudinary using injected services.

    Usage:
        async with BulkUploader(api_key, api_secret, cloud_name) as uploader:
            uploader.on_upload_success(lambda path, response: print(f"Done: {path}"))
            uploader.on_upload_error(lambda path, message: print(f"Failed: {message}"))
            uploader.on_critical_error(lambda path, message: print(f"Aborted: {message}"))

            result = await uploader.upload(
                img_dir="images",
                error_options=ErrorLogOptions(filename="errors.txt", overwrite=True),
                optional_params={"folder": "products"},
                allowed_file_types=["png", "jpg"],
            )
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        cloud_name: str,
        config: Optional[UploadConfig] = None,
        api_client: Optional[IUploadAPI] = None,
        validator: Optional[IValidator] = None,
    ):
        """
        Initialize uploader with dependencies.

        Args:
            api_key: Cloudinary API key
            api_secret: Cloudinary API secret
            cloud_name: Cloudinary cloud name
            config: Upload configuration
            api_client: Pre-built API client (its lifecycle stays with the caller)
            validator: Validator used instead of an ImageValidator built per batch
        """
        self._api_key = api_key
        self._api_secret = api_secret
        self._cloud_name = cloud_name
        self._config = config or UploadConfig()
        self._external_api = api_client
        self._validator = validator
        self._events = EventEmitter()

        # Initialized in __aenter__
        self._api: Optional[IUploadAPI] = None
        self._owned_client: Optional[CloudinaryAPIClient] = None

    async def __aenter__(self):
        """Initialize the API client."""
        if self._external_api is not None:
            self._api = self._external_api
        else:
            self._owned_client = CloudinaryAPIClient(
                self._api_key,
                self._api_secret,
                self._cloud_name,
                timeout=self._config.timeout,
                api_base_url=self._config.api_base_url,
                delivery_base_url=self._config.delivery_base_url,
            )
            await self._owned_client.__aenter__()
            self._api = self._owned_client
        return self

    async def __aexit__(self, *args):
        """Cleanup resources."""
        if self._owned_client:
            await self._owned_client.__aexit__(*args)
            self._owned_client = None
        self._api = None

    def _require_api(self) -> IUploadAPI:
        if self._api is None:
            raise RuntimeError("BulkUploader not initialized. Use 'async with' context.")
        return self._api

    # Event subscription methods
    def on_upload_success(self, callback: Callable[[str, Any], None]) -> "BulkUploader":
        """Called when a file is uploaded. Receives (pathname, response)."""
        self._events.on(UploadEvent.SUCCESS, callback)
        return self

    def on_upload_error(self, callback: Callable[[str, str], None]) -> "BulkUploader":
        """Called when a single file fails. Receives (pathname, message)."""
        self._events.on(UploadEvent.ERROR, callback)
        return self

    def on_critical_error(self, callback: Callable[[str, str], None]) -> "BulkUploader":
        """Called when an error aborts the batch. Receives (pathname, message)."""
        self._events.on(UploadEvent.CRITICAL, callback)
        return self

    async def ping(self) -> PingResult:
        """Test the connection to the API. Note that this request is rate-limited."""
        return await self._require_api().ping(timeout=self._config.timeout)

    async def upload(
        self,
        img_dir: str = "",
        specific_files: Optional[Iterable[str]] = None,
        error_options: Optional[ErrorLogOptions] = None,
        optional_params: Optional[Mapping[str, Any]] = None,
        allowed_file_types: Optional[Iterable[str]] = None,
    ) -> BatchResult:
        """
        Upload a batch of files.

        Args:
            img_dir: Directory holding the files
            specific_files: Filenames inside ``img_dir`` to upload; all files in
                ``img_dir`` when None. Pass full paths with an empty ``img_dir``
                for files from several directories.
            error_options: Error log file settings
            optional_params: Upload API parameters sent with every file;
                a truthy ``overwrite`` also skips the existence check
            allowed_file_types: Extensions to upload, e.g. ["png", "jpg"]

        Returns:
            BatchResult

        Raises:
            ErrorLogError: the error log can't be opened
        """
        api = self._require_api()
        allowed = list(allowed_file_types or [])

        if specific_files is not None:
            filenames = list(specific_files)
        else:
            filenames = await asyncio.to_thread(
                FileCollector.collect_files, Path(img_dir or "."), allowed
            )

        error_log = ErrorLog(error_options)
        await error_log.open()

        coordinator = BatchCoordinator(
            api,
            self._validator or ImageValidator(allowed),
            self._events,
            error_log,
            config=self._config,
        )
        return await coordinator.run(filenames, img_dir, optional_params)
