"""HTTP adapter for the Cloudinary upload API."""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Mapping, Optional

import httpx

from ..errors import FileTransferError, ServerResponseError
from ..models import (
    DEFAULT_API_BASE_URL,
    DEFAULT_DELIVERY_BASE_URL,
    DEFAULT_TIMEOUT,
    PingResult,
)
from .signer import serialize_param

logger = logging.getLogger(__name__)


class CloudinaryAPIClient:
    """
    HTTP client adapter for upload API calls.

    Implements IUploadAPI protocol.

    Usage:
        async with CloudinaryAPIClient(api_key, api_secret, cloud_name) as api:
            result = await api.ping()
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        cloud_name: str,
        timeout: float = DEFAULT_TIMEOUT,
        api_base_url: str = DEFAULT_API_BASE_URL,
        delivery_base_url: str = DEFAULT_DELIVERY_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_secret = api_secret
        self.cloud_name = cloud_name
        self._timeout = timeout
        self._api_base_url = api_base_url.rstrip("/")
        self._delivery_base_url = delivery_base_url.rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("CloudinaryAPIClient not initialized. Use 'async with' context.")
        return self._client

    def upload_url(self, resource_type: str = "auto") -> str:
        return f"{self._api_base_url}/{self.cloud_name}/{resource_type}/upload"

    def delivery_url(
        self,
        filename: str,
        folder: Optional[str] = None,
        format: Optional[str] = None,
    ) -> str:
        """URL a stored image would be served from."""
        name = filename
        if format:
            name = f"{os.path.splitext(filename)[0]}.{format}"
        parts = [
            self._delivery_base_url,
            self.cloud_name,
            "image/upload",
            (folder or "").strip("/"),
            name,
        ]
        return "/".join(p for p in parts if p)

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
        """
        POST one chunk of an upload session.

        Raises:
            ServerResponseError: the server answered with an error status
            FileTransferError: the request failed (network, timeout)
        """
        client = self._require_client()
        data = {key: serialize_param(value) for key, value in fields.items()}
        files = {"file": (os.path.basename(pathname), chunk, "application/octet-stream")}
        headers = {
            "X-Unique-Upload-Id": session_id,
            "Content-Range": content_range,
        }

        try:
            response = await client.post(
                self.upload_url(resource_type),
                data=data,
                files=files,
                headers=headers,
                timeout=timeout or self._timeout,
            )
        except httpx.HTTPError as e:
            raise FileTransferError(str(e) or type(e).__name__, pathname) from e

        if response.status_code >= 400:
            raise ServerResponseError(
                f"API error {response.status_code}: {self._error_detail(response)}",
                pathname,
                response.status_code,
            )

        try:
            return response.json()
        except ValueError:
            return {"body": response.text}

    async def check_exists(
        self,
        filename: str,
        folder: Optional[str] = None,
        format: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Check whether a file is already stored on the server.

        Any failure counts as "does not exist".
        """
        client = self._require_client()
        url = self.delivery_url(filename, folder, format)
        try:
            response = await client.head(url, timeout=timeout or self._timeout, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.debug(f"Existence check failed for {url}: {e}")
            return False
        return response.is_success

    async def ping(self, timeout: Optional[float] = None) -> PingResult:
        """
        Test the connection to the API.

        Pinging counts towards the rate limit, so the remaining quota is
        reported back.
        """
        client = self._require_client()
        url = f"{self._api_base_url}/{self.cloud_name}/ping"
        try:
            response = await client.head(
                url,
                auth=(self.api_key, self.api_secret),
                timeout=timeout or self._timeout,
            )
        except httpx.HTTPError as e:
            return PingResult(success=False, info=str(e) or type(e).__name__)

        if not response.is_success:
            return PingResult(success=False, info=f"API error {response.status_code}")

        headers = response.headers
        return PingResult(
            success=True,
            info=(
                f"remain: {headers.get('x-featureratelimit-remaining')} "
                f"limit: {headers.get('x-featureratelimit-limit')} "
                f"reset: {headers.get('x-featureratelimit-reset')}"
            ),
        )

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
        return str(body)
