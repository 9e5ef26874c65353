"""Chunked upload of a single file."""
import asyncio
import logging
import os
import time
from typing import Any, BinaryIO, Callable, Dict, Mapping, Optional, Tuple, Union

from ..errors import FileOpenError, FileTransferError, UploadCancelledError
from ..models import CHUNK_UPLOAD_SIZE
from ..protocols import IUploadAPI
from ..services.signer import generate_signature, serialize_param
from ..utils.sync import CancellationSignal
from .models import UploadSession

logger = logging.getLogger(__name__)


class ChunkTransfer:
    """
    Uploads one file as a sequence of Content-Range chunks.

    All chunks of a file share one upload session id. Each chunk is signed
    with a fresh timestamp. The response to the last chunk is the result.

    Flow per chunk:
    1. Read the next byte range
    2. Sign the parameters (resource_type goes in the URL, never in the signature)
    3. Check the cancellation signal
    4. POST the chunk; stop after the one that reaches the file size
    """

    def __init__(
        self,
        api: IUploadAPI,
        chunk_size: int = CHUNK_UPLOAD_SIZE,
        signer: Callable[[Mapping[str, Any], str], str] = generate_signature,
        clock: Callable[[], float] = time.time,
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._api = api
        self._chunk_size = chunk_size
        self._signer = signer
        self._clock = clock

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    async def transfer(
        self,
        path: Union[str, os.PathLike],
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
        signal: Optional[CancellationSignal] = None,
    ) -> Dict[str, Any]:
        """
        Upload a file in chunks.

        Args:
            path: Local file
            params: Upload API parameters (public_id, folder, resource_type...)
            timeout: Seconds allowed per chunk request
            signal: Shared batch cancellation signal

        Returns:
            Parsed server response to the final chunk

        Raises:
            FileOpenError: the file can't be opened or read, or is empty
            ServerResponseError: the server rejected a chunk
            FileTransferError: a chunk request failed
            UploadCancelledError: the batch was cancelled between chunks
        """
        pathname = str(path)
        params = dict(params or {})

        if signal is not None and signal.is_cancelled:
            raise UploadCancelledError(pathname)

        fh, total_size = await self._open(pathname)
        try:
            if total_size == 0:
                raise FileOpenError("file is empty", pathname)

            session = UploadSession(total_size=total_size)
            logger.debug(
                f"Starting upload session {session.session_id} for {pathname} "
                f"({total_size} bytes, chunk size {self._chunk_size})"
            )

            while True:
                self._check_cancelled(signal, pathname, session)

                size = min(self._chunk_size, total_size - session.bytes_sent)
                chunk = await self._read(fh, size, pathname)
                if not chunk:
                    raise FileTransferError(
                        f"file truncated at {session.bytes_sent} of {total_size} bytes",
                        pathname,
                    )

                resource_type, fields = self._signed_fields(params)
                content_range = session.content_range(len(chunk))

                # the read may have suspended; no await between this check and the POST
                self._check_cancelled(signal, pathname, session)
                logger.debug(f"{pathname}: sending {content_range}")

                response = await self._api.post_chunk(
                    pathname,
                    chunk,
                    fields=fields,
                    content_range=content_range,
                    session_id=session.session_id,
                    resource_type=resource_type,
                    timeout=timeout,
                )
                session.advance(len(chunk))

                if session.complete:
                    logger.debug(f"Upload session {session.session_id} complete: {pathname}")
                    return response
        finally:
            await asyncio.to_thread(fh.close)

    @staticmethod
    def _check_cancelled(
        signal: Optional[CancellationSignal],
        pathname: str,
        session: UploadSession,
    ) -> None:
        if signal is not None and signal.is_cancelled:
            raise UploadCancelledError(
                pathname,
                f"upload cancelled after {session.bytes_sent} of {session.total_size} bytes",
            )

    def _signed_fields(self, params: Mapping[str, Any]) -> Tuple[str, Dict[str, Any]]:
        """
        Form fields for one chunk plus the resource type for the URL.

        Unset parameters (None or empty) are left out, so the fields sent are
        exactly the fields signed.
        """
        fields = {
            key: value
            for key, value in params.items()
            if value is not None and serialize_param(value) != ""
        }
        resource_type = fields.pop("resource_type", None) or "auto"
        fields["timestamp"] = int(self._clock())
        fields["signature"] = self._signer(fields, self._api.api_secret)
        fields["api_key"] = self._api.api_key
        return resource_type, fields

    @staticmethod
    async def _open(pathname: str) -> Tuple[BinaryIO, int]:
        def _open_file():
            fh = open(pathname, "rb")
            try:
                return fh, os.fstat(fh.fileno()).st_size
            except OSError:
                fh.close()
                raise

        try:
            return await asyncio.to_thread(_open_file)
        except OSError as e:
            raise FileOpenError(e.strerror or str(e), pathname) from e

    @staticmethod
    async def _read(fh: BinaryIO, size: int, pathname: str) -> bytes:
        try:
            return await asyncio.to_thread(fh.read, size)
        except OSError as e:
            raise FileOpenError(e.strerror or str(e), pathname) from e
