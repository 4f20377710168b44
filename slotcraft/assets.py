"""Media asset store client for uploading end-user images."""

import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import requests

from .constants import APP_NAME, HTTP_TIMEOUT, VERSION
from .layout.errors import PersistenceError

logger = logging.getLogger(__name__)


@dataclass
class UploadTarget:
    """Where to PUT the bytes, and where they can be read afterwards."""
    upload_url: str
    file_url: str
    headers: Dict[str, str] = field(default_factory=dict)


class AssetStore:
    """
    Client for the media asset store.

    Uploads are two-step: ask the store for an upload target, then PUT the
    bytes to it. The returned file URL is stable and safe to persist in a
    page.
    """

    USER_AGENT = f"{APP_NAME}/{VERSION}"

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': self.USER_AGENT})
        if api_token:
            self.session.headers.update({'Authorization': f"Bearer {api_token}"})
        self.timeout = timeout

    def generate_upload_target(self, mime_type: str, file_name: str) -> UploadTarget:
        """
        Request an upload URL for one file.

        Args:
            mime_type: MIME type of the upload (e.g. ``image/png``)
            file_name: Original file name

        Returns:
            UploadTarget with the PUT URL and the final file URL

        Raises:
            PersistenceError: if the store is unreachable or refuses
        """
        url = f"{self.base_url}/uploads"
        try:
            response = self.session.post(
                url,
                json={'mimeType': mime_type, 'fileName': file_name},
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            status = getattr(getattr(e, "response", None), "status_code", None)
            raise PersistenceError(f"Upload target request failed: {e}", status_code=status) from e
        except ValueError as e:
            raise PersistenceError(f"Asset store returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceError(f"Asset store returned unexpected {type(data).__name__} for upload target")

        upload_url = data.get('uploadUrl')
        file_url = data.get('fileUrl')
        if not upload_url or not file_url:
            raise PersistenceError("Asset store response missing uploadUrl or fileUrl")

        logger.debug(f"Upload target for {file_name}: {upload_url}")
        return UploadTarget(upload_url=upload_url, file_url=file_url, headers=data.get('headers') or {})

    def upload(self, data: bytes, file_name: str, mime_type: Optional[str] = None) -> str:
        """
        Upload bytes and return the stable file URL.

        Raises:
            PersistenceError: if either step fails
        """
        mime_type = mime_type or mimetypes.guess_type(file_name)[0] or "application/octet-stream"
        target = self.generate_upload_target(mime_type, file_name)

        headers = {'Content-Type': mime_type}
        headers.update(target.headers)
        try:
            response = self.session.put(target.upload_url, data=data, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            status = getattr(getattr(e, "response", None), "status_code", None)
            raise PersistenceError(f"Upload of {file_name} failed: {e}", status_code=status) from e

        logger.info(f"Uploaded {file_name} ({len(data)} bytes) to {target.file_url}")
        return target.file_url

    def upload_file(self, path: Path) -> str:
        """Upload a local file."""
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise PersistenceError(f"Cannot read {path}: {e}") from e
        return self.upload(data, path.name)
