"""Batch coordination: candidate selection, error escalation and error logging."""
import logging
from http import HTTPStatus
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..errors import FileError, FileOpenError, ServerResponseError, UploadCancelledError
from ..models import BatchResult, UploadConfig, ValidationResult
from ..protocols import IUploadAPI, IValidator
from ..services.error_log import ErrorLog
from ..utils.events import EventEmitter, UploadEvent
from ..utils.sync import CancellationSignal
from .chunk_transfer import ChunkTransfer
from .filtering import async_filter
from .models import UploadTask
from .worker_pool import WorkerPool

logger = logging.getLogger(__name__)


# Server rejections that only concern the file being uploaded
FILE_SCOPED_STATUS_CODES = frozenset({
    HTTPStatus.BAD_REQUEST,
    HTTPStatus.NOT_FOUND,
    HTTPStatus.CONFLICT,
})


def is_critical_error(error: BaseException) -> bool:
    """
    Whether an upload error should stop the whole batch.

    Unreadable files, cancelled transfers and file-scoped server rejections
    are not critical. Anything else is: bad credentials, other server
    errors, timeouts, disconnections and unrecognized errors.
    """
    if isinstance(error, (FileOpenError, UploadCancelledError)):
        return False
    if isinstance(error, ServerResponseError):
        return error.status_code not in FILE_SCOPED_STATUS_CODES
    return True


def describe_error(error: BaseException) -> str:
    if isinstance(error, FileError):
        return str(error)
    return f"{type(error).__name__}: {error}" if str(error) else type(error).__name__


class BatchCoordinator:
    """
    Runs one bulk upload.

    Flow:
    1. Validate candidates and skip those already on the server
    2. Upload survivors through the worker pool
    3. Report each outcome; a critical error cancels the rest of the batch
    4. Wait for pending error log writes, then close the log
    """

    def __init__(
        self,
        api: IUploadAPI,
        validator: IValidator,
        events: EventEmitter,
        error_log: ErrorLog,
        config: Optional[UploadConfig] = None,
        signal: Optional[CancellationSignal] = None,
    ):
        self._api = api
        self._validator = validator
        self._events = events
        self._error_log = error_log
        self._config = config or UploadConfig()
        self.signal = signal or CancellationSignal()
        self.result = BatchResult()

    async def run(
        self,
        filenames: Sequence[str],
        img_dir: str = "",
        params: Optional[Mapping[str, Any]] = None,
    ) -> BatchResult:
        """Upload a batch; the error log is closed before returning."""
        params = dict(params or {})
        try:
            tasks = await self.select_candidates(filenames, img_dir, params)
            logger.info(
                f"{len(tasks)} of {len(filenames)} file(s) to upload "
                f"({len(self.result.skipped)} already uploaded, {len(self.result.invalid)} invalid)"
            )
            pool = WorkerPool(
                ChunkTransfer(self._api, chunk_size=self._config.chunk_size),
                max_concurrency=self._config.concurrency_cap,
            )
            await pool.run(
                tasks,
                self.handle_outcome,
                params=params,
                timeout=self._config.timeout,
                signal=self.signal,
            )
        finally:
            await self._error_log.close()
            self.result.cancelled = self.signal.is_cancelled
            self.result.log_writes_enqueued = self._error_log.counter.enqueued
            self.result.log_writes_completed = self._error_log.counter.completed

        logger.info(
            f"Upload complete: {self.result.uploaded_count} uploaded, "
            f"{self.result.failed_count} failed, {len(self.result.skipped)} skipped"
            + (" (cancelled)" if self.result.cancelled else "")
        )
        return self.result

    async def select_candidates(
        self,
        filenames: Sequence[str],
        img_dir: str,
        params: Dict[str, Any],
    ) -> List[UploadTask]:
        """
        Drop invalid files and files already on the server.

        Checks run concurrently; survivors keep the order of ``filenames``.
        """
        self.result.total_candidates = len(filenames)
        skip_exists_check = bool(params.get("overwrite"))

        async def keep(filename: str) -> bool:
            pathname = str(Path(img_dir) / filename)

            try:
                verdict = await self._validator.classify(pathname)
            except FileOpenError as e:
                self.result.failed[pathname] = str(e)
                await self._report_error(pathname, str(e))
                return False

            if verdict is ValidationResult.INVALID:
                self.result.invalid.append(pathname)
                await self._report_error(pathname, f'Failed to upload "{pathname}": file is invalid.')
                return False

            if verdict is ValidationResult.NOT_ALLOWED:
                logger.debug(f"Skipping {pathname}: file type not allowed")
                return False

            if not skip_exists_check and await self._api.check_exists(
                filename,
                folder=params.get("folder"),
                format=params.get("format"),
                timeout=self._config.timeout,
            ):
                self.result.skipped.append(pathname)
                logger.info(f"Skipping {pathname}: already uploaded")
                return False

            return True

        survivors = await async_filter(list(filenames), keep)
        return [UploadTask(filename=f, source_path=Path(img_dir) / f) for f in survivors]

    async def handle_outcome(
        self,
        task: UploadTask,
        response: Optional[Dict[str, Any]],
        error: Optional[BaseException],
    ) -> None:
        """Record one finished upload and notify listeners."""
        pathname = task.pathname

        if error is None:
            self.result.uploaded.append(pathname)
            logger.info(f"✓ Uploaded: {pathname}")
            await self._events.emit(UploadEvent.SUCCESS, pathname, response)
            return

        message = describe_error(error)
        self.result.failed[pathname] = message

        if is_critical_error(error):
            if self.signal.cancel():
                logger.error(f"Critical error, cancelling remaining uploads: {message}")
            else:
                logger.error(f"Critical error after cancellation: {message}")
            await self._events.emit(UploadEvent.CRITICAL, pathname, message)
            self._error_log.submit(f"Aborting upload process due to critical error: {message}")
            return

        await self._report_error(pathname, message)

    async def _report_error(self, pathname: str, message: str) -> None:
        logger.warning(f"✗ {message}")
        await self._events.emit(UploadEvent.ERROR, pathname, message)
        self._error_log.submit(message)
