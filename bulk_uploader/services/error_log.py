"""Append-only error log for failed uploads."""
import asyncio
import logging
import threading
from typing import Optional, Set, TextIO

from ..errors import ErrorLogError
from ..models import ErrorLogOptions
from ..utils.sync import PendingWriteCounter

logger = logging.getLogger(__name__)


class ErrorLog:
    """
    Error file written from background tasks.

    Each entry is appended by its own task, so entries may land out of order.
    A PendingWriteCounter tracks the writes still running and ``close`` waits
    for it to drain before releasing the file.

    Without a filename the log is disabled and ``submit`` does nothing.

    Usage:
        log = ErrorLog(ErrorLogOptions(filename="errors.txt", overwrite=True))
        await log.open()
        log.submit("something failed")
        await log.close()
    """

    def __init__(self, options: Optional[ErrorLogOptions] = None, counter: Optional[PendingWriteCounter] = None):
        self._options = options or ErrorLogOptions()
        self._counter = counter or PendingWriteCounter()
        self._file: Optional[TextIO] = None
        self._write_lock = threading.Lock()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self._options.filename is not None

    @property
    def is_open(self) -> bool:
        return self._file is not None

    @property
    def counter(self) -> PendingWriteCounter:
        return self._counter

    async def open(self) -> None:
        """
        Open the error file.

        Raises:
            ErrorLogError: the file exists and overwrite is off, or it can't be created
        """
        if not self.enabled or self._file is not None:
            return
        filename = self._options.filename
        mode = "w" if self._options.overwrite else "x"
        try:
            self._file = await asyncio.to_thread(open, filename, mode, encoding="utf-8")
        except OSError as e:
            raise ErrorLogError(f"could not open error log {filename}: {e}") from e
        logger.debug(f"Error log opened: {filename} (mode={mode})")

    def submit(self, message: str) -> None:
        """Queue one entry; the write runs in the background."""
        if self._file is None:
            return
        # counted before the task exists so close() can never miss it
        self._counter.increment()
        task = asyncio.create_task(self._append(message + self._options.line_sep))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _append(self, entry: str) -> None:
        try:
            await asyncio.to_thread(self._write_entry, entry)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to write error log entry: {e}")
        finally:
            self._counter.decrement()

    def _write_entry(self, entry: str) -> None:
        with self._write_lock:
            self._file.write(entry)
            self._file.flush()

    async def close(self) -> None:
        """Wait for pending writes, then close the file."""
        await self._counter.wait_drained()
        if self._file is not None:
            file, self._file = self._file, None
            await asyncio.to_thread(file.close)
            logger.debug(
                f"Error log closed after {self._counter.completed}/{self._counter.enqueued} write(s)"
            )

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, *args):
        await self.close()
