"""Supabase Storage client for generated media and reference images."""

from typing import Optional
from urllib.parse import quote

import httpx

from mediagen.services.exceptions import StorageError, StorageNetworkError


class SupabaseStorageClient:
    """ObjectStore implementation over the Supabase Storage REST API."""

    def __init__(
        self,
        supabase_url: str,
        service_role_key: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize storage client.

        Args:
            supabase_url: Project URL (from SUPABASE_URL env var)
            service_role_key: Service role key (from SUPABASE_SERVICE_ROLE_KEY env var)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests inject httpx.MockTransport)
        """
        self.base_url = f"{supabase_url.rstrip('/')}/storage/v1"
        self.timeout = timeout
        self.transport = transport
        self.headers = {
            "Authorization": f"Bearer {service_role_key}",
            "apikey": service_role_key,
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def _object_url(self, kind: str, bucket: str, path: str) -> str:
        return f"{self.base_url}/{kind}/{bucket}/{quote(path)}"

    async def upload(self, bucket: str, path: str, data: bytes, mime_type: str) -> None:
        """Upload an object. Existing objects at the same path are not overwritten.

        Raises:
            StorageNetworkError: Timeout, network failure, 429 or 5xx
            StorageError: Any other rejection (auth, duplicate, bad request)
        """
        headers = {**self.headers, "Content-Type": mime_type, "x-upsert": "false"}
        try:
            async with self._client() as client:
                response = await client.post(
                    self._object_url("object", bucket, path), headers=headers, content=data
                )
        except httpx.TimeoutException as e:
            raise StorageNetworkError(f"Upload timeout for {bucket}/{path}: {e}") from e
        except httpx.HTTPError as e:
            raise StorageNetworkError(f"Upload network error for {bucket}/{path}: {e}") from e

        self._raise_for_status(response, f"Upload failed for {bucket}/{path}")

    async def download(self, bucket: str, path: str) -> bytes:
        """Download an object's bytes.

        Raises:
            StorageNetworkError: Timeout, network failure, 429 or 5xx
            StorageError: Object missing or access denied
        """
        try:
            async with self._client() as client:
                response = await client.get(
                    self._object_url("object/authenticated", bucket, path), headers=self.headers
                )
        except httpx.TimeoutException as e:
            raise StorageNetworkError(f"Download timeout for {bucket}/{path}: {e}") from e
        except httpx.HTTPError as e:
            raise StorageNetworkError(f"Download network error for {bucket}/{path}: {e}") from e

        self._raise_for_status(response, f"Download failed for {bucket}/{path}")
        return response.content

    async def signed_read(self, bucket: str, path: str, expires_in: int) -> str:
        """Create a time-limited read URL for an object.

        Args:
            bucket: Storage bucket
            path: Object path within the bucket
            expires_in: URL lifetime in seconds

        Returns:
            Absolute signed URL
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    self._object_url("object/sign", bucket, path),
                    headers=self.headers,
                    json={"expiresIn": expires_in},
                )
        except httpx.TimeoutException as e:
            raise StorageNetworkError(f"Signing timeout for {bucket}/{path}: {e}") from e
        except httpx.HTTPError as e:
            raise StorageNetworkError(f"Signing network error for {bucket}/{path}: {e}") from e

        self._raise_for_status(response, f"Signing failed for {bucket}/{path}")
        body = response.json()
        signed = body.get("signedURL") or body.get("signedUrl")
        if not signed:
            raise StorageError(f"No signed URL returned for {bucket}/{path}")
        if signed.startswith("http"):
            return signed
        return f"{self.base_url}{signed}"

    @staticmethod
    def _raise_for_status(response: httpx.Response, context: str) -> None:
        if response.status_code == 429:
            raise StorageNetworkError(f"{context}: rate limit exceeded (429)")
        if response.status_code >= 500:
            raise StorageNetworkError(
                f"{context}: service unavailable ({response.status_code}): {response.text}"
            )
        if response.status_code in (401, 403):
            raise StorageError(
                f"{context}: access denied ({response.status_code}). "
                "Check SUPABASE_SERVICE_ROLE_KEY configuration."
            )
        if response.status_code >= 400:
            raise StorageError(f"{context} ({response.status_code}): {response.text}")
