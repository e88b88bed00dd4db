"""
Remote Image Store Client

HTTP client for the Cloudinary upload API. Uploads product and category
images and deletes them again given only the public URL that an earlier
upload returned.
"""

from __future__ import annotations

import hashlib
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Tuple, Union
from urllib.parse import urlparse

import httpx
import structlog

from pcstore.services.errors import AssetDeletionFailed, UploadFailed

logger = structlog.get_logger(__name__)

_VERSION_PREFIX = re.compile(r"^v\d+/")
_EXTENSION = re.compile(r"\.[^/.]+$")

# Destroy results that leave the asset absent
DELETED_RESULTS = ("ok", "not found")

UploadFile = Union[bytes, Tuple[str, bytes], Tuple[str, bytes, str]]


@dataclass
class UploadResult:
    """What the image host returns for a stored upload"""
    secure_url: str
    asset_id: str
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None


class ImageStore(Protocol):
    """Operations the catalog services need from an image host"""

    async def delete_asset(self, asset_id: str) -> str: ...

    async def delete_asset_by_url(self, url: str) -> Optional[str]: ...

    async def upload_asset(
        self, file: UploadFile, folder: Optional[str] = None, preset_name: Optional[str] = None
    ) -> UploadResult: ...


def extract_asset_id(url: str) -> Optional[str]:
    """
    Recover the asset id (Cloudinary public_id) from a delivery URL.

    Everything after the `upload` path segment, minus an optional `v<digits>/`
    version prefix and the file extension.

    Example:
        https://res.cloudinary.com/demo/image/upload/v1700000000/folder/pic.jpg
        -> "folder/pic"
    """
    segments = urlparse(url).path.split("/")
    try:
        upload_index = segments.index("upload")
    except ValueError:
        logger.warning("malformed_asset_url", url=url)
        return None

    path = "/".join(segments[upload_index + 1:])
    path = _VERSION_PREFIX.sub("", path)
    return _EXTENSION.sub("", path)


class CloudinaryClient:
    """HTTP client wrapper for the Cloudinary upload API."""

    extract_asset_id = staticmethod(extract_asset_id)

    def __init__(
        self,
        cloud_name: str,
        api_key: str = "",
        api_secret: str = "",
        upload_preset: Optional[str] = None,
        default_folder: Optional[str] = None,
        api_base_url: str = "https://api.cloudinary.com/v1_1",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._cloud_name = cloud_name
        self._api_key = api_key
        self._api_secret = api_secret
        self._upload_preset = upload_preset
        self._default_folder = default_folder
        self._base_url = f"{api_base_url.rstrip('/')}/{cloud_name}"
        self._timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> "CloudinaryClient":
        cfg = settings.cloudinary
        return cls(
            cloud_name=cfg.cloud_name,
            api_key=cfg.api_key,
            api_secret=cfg.api_secret.get_secret_value(),
            upload_preset=cfg.upload_preset,
            default_folder=cfg.default_folder,
            api_base_url=cfg.api_base_url,
            timeout=cfg.timeout_seconds,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _sign(self, params: Dict[str, Any]) -> str:
        """SHA-1 signature over the sorted request params and the API secret."""
        payload = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha1(f"{payload}{self._api_secret}".encode("utf-8")).hexdigest()

    # -------------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------------

    async def delete_asset(self, asset_id: str) -> str:
        """
        Destroy an asset by id.

        Returns the host's result string. `ok` and `not found` both count as
        deleted, so repeating a delete is harmless.

        Raises:
            AssetDeletionFailed: any other result, HTTP error, or timeout
        """
        params = {"public_id": asset_id, "timestamp": int(time.time())}
        data = {**params, "api_key": self._api_key, "signature": self._sign(params)}

        try:
            client = await self._get_client()
            response = await client.post("/image/destroy", data=data)
            response.raise_for_status()
            result = response.json().get("result")
        except httpx.TimeoutException as e:
            raise AssetDeletionFailed(detail=f"timeout deleting {asset_id}: {e}") from e
        except httpx.HTTPStatusError as e:
            raise AssetDeletionFailed(
                detail=f"image host returned {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise AssetDeletionFailed(detail=f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise AssetDeletionFailed(detail=f"unreadable destroy response: {e}") from e

        if result not in DELETED_RESULTS:
            raise AssetDeletionFailed(result=result, detail=f"unexpected destroy result {result!r}")

        logger.info("asset_deleted", asset_id=asset_id, result=result)
        return result

    async def delete_asset_by_url(self, url: str) -> Optional[str]:
        """Delete the asset behind a delivery URL; a URL with no asset id is a no-op."""
        asset_id = extract_asset_id(url)
        if asset_id is None:
            return None
        return await self.delete_asset(asset_id)

    # -------------------------------------------------------------------------
    # Upload
    # -------------------------------------------------------------------------

    async def _post_upload(self, file: UploadFile, form: Dict[str, str]) -> UploadResult:
        client = await self._get_client()
        response = await client.post("/image/upload", data=form, files={"file": file})
        if response.is_error:
            raise UploadFailed(detail=f"{response.status_code} {response.reason_phrase} - {_error_text(response)}")

        try:
            body = response.json()
            return UploadResult(
                secure_url=body["secure_url"],
                asset_id=body["public_id"],
                width=body.get("width"),
                height=body.get("height"),
                format=body.get("format"),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise UploadFailed(
                detail=f"unreadable upload response ({type(e).__name__}: {e}): {response.text[:200]}"
            ) from e

    async def upload_asset(
        self,
        file: UploadFile,
        folder: Optional[str] = None,
        preset_name: Optional[str] = None,
    ) -> UploadResult:
        """
        Upload an image.

        Tries an unsigned upload first and falls back to the named upload
        preset.

        Raises:
            UploadFailed: both attempts failed; the message carries both
                diagnostics
        """
        folder = folder or self._default_folder
        preset_name = preset_name or self._upload_preset
        form = {"folder": folder} if folder else {}

        try:
            return await self._post_upload(file, form)
        except (UploadFailed, httpx.HTTPError) as e:
            unsigned_error = _describe(e)
            logger.warning("unsigned_upload_failed", folder=folder, error=unsigned_error)

        if not preset_name:
            raise UploadFailed(f"Image upload failed: unsigned: {unsigned_error}")

        try:
            result = await self._post_upload(file, {**form, "upload_preset": preset_name})
        except (UploadFailed, httpx.HTTPError) as e:
            preset_error = _describe(e)
            logger.error("preset_upload_failed", folder=folder, preset=preset_name, error=preset_error)
            raise UploadFailed(
                f"Image upload failed: unsigned: {unsigned_error}; preset {preset_name}: {preset_error}"
            ) from e

        logger.info("asset_uploaded", asset_id=result.asset_id, preset=preset_name)
        return result


def _error_text(response: httpx.Response) -> str:
    try:
        error = response.json().get("error")
    except ValueError:
        return response.text[:200]
    if isinstance(error, dict):
        return str(error.get("message", error))
    return str(error or response.text[:200])


def _describe(error: Exception) -> str:
    if isinstance(error, UploadFailed):
        return error.detail or error.message
    if isinstance(error, httpx.TimeoutException):
        return f"timeout: {error}"
    return f"{type(error).__name__}: {error}"
