import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Sequence

from ..models import MAX_CONCURRENT_UPLOADS
from ..utils.sync import CancellationSignal
from .chunk_transfer import ChunkTransfer
from .models import UploadTask

logger = logging.getLogger(__name__)

# (task, response, error) -> awaitable; exactly one of response/error is set
TaskCallback = Callable[[UploadTask, Optional[Dict[str, Any]], Optional[BaseException]], Awaitable[None]]


class WorkerPool:
    """
    Drains a FIFO queue of upload tasks with a bounded number of workers.

    - Each worker claims the next task, uploads it, awaits the callback, repeats
    - Workers stop when the queue is empty or the batch is cancelled
    - A transfer already running inside a worker is never interrupted
    """

    def __init__(self, transfer: ChunkTransfer, max_concurrency: int = MAX_CONCURRENT_UPLOADS):
        if max_concurrency <= 0:
            raise ValueError(f"max_concurrency must be positive, got {max_concurrency}")
        self._transfer = transfer
        self._max_concurrency = max_concurrency

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    async def run(
        self,
        tasks: Sequence[UploadTask],
        callback: TaskCallback,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
        signal: Optional[CancellationSignal] = None,
    ) -> None:
        """
        Upload all tasks; returns once every worker has exited.

        Failures never propagate out of here: transfer errors go to the
        callback, and a worker that dies is logged.
        """
        if not tasks:
            return

        signal = signal or CancellationSignal()
        queue: "asyncio.Queue[UploadTask]" = asyncio.Queue()
        for task in tasks:
            queue.put_nowait(task)

        num_workers = min(self._max_concurrency, len(tasks))
        logger.info(f"Starting upload: {len(tasks)} files, {num_workers} workers")

        workers = [
            asyncio.create_task(
                self._worker(worker_id, queue, callback, dict(params or {}), timeout, signal)
            )
            for worker_id in range(1, num_workers + 1)
        ]
        results = await asyncio.gather(*workers, return_exceptions=True)

        for worker_id, result in enumerate(results, 1):
            if isinstance(result, BaseException):
                logger.error(f"Upload worker {worker_id} stopped: {type(result).__name__}: {result}")

        if signal.is_cancelled and not queue.empty():
            logger.warning(f"Upload cancelled: {queue.qsize()} file(s) never started")

    async def _worker(
        self,
        worker_id: int,
        queue: "asyncio.Queue[UploadTask]",
        callback: TaskCallback,
        params: Dict[str, Any],
        timeout: Optional[float],
        signal: CancellationSignal,
    ) -> None:
        while not signal.is_cancelled:
            try:
                task = queue.get_nowait()
            except asyncio.QueueEmpty:
                break

            logger.debug(f"[worker {worker_id}] Uploading {task.pathname}")
            task_params = {**params, "public_id": task.public_id}

            response: Optional[Dict[str, Any]] = None
            error: Optional[BaseException] = None
            try:
                response = await self._transfer.transfer(
                    task.source_path,
                    params=task_params,
                    timeout=timeout,
                    signal=signal,
                )
            except Exception as e:
                error = e

            await callback(task, response, error)
