"""Upload local media files to Cloudinary."""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path

import httpx

from vidtube.core.errors import UpstreamError

logger = logging.getLogger(__name__)

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"


@dataclass(slots=True)
class UploadResult:
    url: str
    public_id: str | None = None
    resource_type: str | None = None


def sign_params(params: dict[str, str], api_secret: str) -> str:
    """Cloudinary request signature: SHA-1 of the sorted params followed by the secret."""

    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class MediaUploader:
    """Signed uploads with `resource_type=auto`.

    The local file is removed after every attempt, successful or not.
    """

    def __init__(
        self,
        *,
        cloud_name: str | None,
        api_key: str | None,
        api_secret: str | None,
        base_url: str = CLOUDINARY_API_BASE,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def upload_url(self) -> str:
        return f"{self.base_url}/{self.cloud_name}/auto/upload"

    async def upload(self, local_path: str | Path | None) -> UploadResult | None:
        if not local_path:
            return None

        path = Path(local_path)
        try:
            return await self._post(path)
        finally:
            path.unlink(missing_ok=True)

    async def _post(self, path: Path) -> UploadResult:
        if not (self.cloud_name and self.api_key and self.api_secret):
            raise UpstreamError("File upload failed: media storage is not configured")

        params = {"timestamp": str(int(time.time()))}
        form = {**params, "api_key": self.api_key, "signature": sign_params(params, self.api_secret)}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                with path.open("rb") as handle:
                    response = await client.post(self.upload_url, data=form, files={"file": (path.name, handle)})
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, OSError, ValueError) as exc:
            logger.error("Media upload of %s failed: %s", path.name, exc)
            raise UpstreamError(f"File upload failed: {exc}") from exc

        url = payload.get("url") or payload.get("secure_url")
        if not url:
            raise UpstreamError("File upload failed: response did not include a URL")
        return UploadResult(url=url, public_id=payload.get("public_id"), resource_type=payload.get("resource_type"))
