"""HTTP client for the Bugly upload endpoints (mapping files and symbol archives)."""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote_plus

import httpx

from symtabuploader.config import MAPPING_UPLOAD_URL, SYMBOL_UPLOAD_URL
from symtabuploader.models import UploadCandidate, UploadTarget

log = logging.getLogger(__name__)

# Product id sent with every upload (1 = Android)
PRODUCT_ID = "1"


def _encode(value: Optional[str]) -> str:
    """Form-encode like java.net.URLEncoder (space -> '+')."""
    return quote_plus(value or "", safe="*").replace("~", "%7E")


def build_upload_url(endpoint: str, target: UploadTarget, file_name: str) -> str:
    """Endpoint plus query string in the order the server expects: app, pid, ver, n, key, bid."""
    query = (
        f"app={target.app_id or ''}"
        f"&pid={PRODUCT_ID}"
        f"&ver={_encode(target.version_name)}"
        f"&n={_encode(file_name)}"
        f"&key={target.app_key or ''}"
        f"&bid={target.package_name or ''}"
    )
    return f"{endpoint}?{query}"


class SymtabUploadAPI:
    """
    Client for the Bugly symtab upload endpoints. One synchronous POST per file,
    success only on HTTP 200. No retries: callers decide what a failure means.
    """

    def __init__(
        self,
        mapping_url: str = MAPPING_UPLOAD_URL,
        symbol_url: str = SYMBOL_UPLOAD_URL,
        timeout: float = 30.0,
    ) -> None:
        self._mapping_url = mapping_url.rstrip("/")
        self._symbol_url = symbol_url.rstrip("/")
        self._timeout = timeout
        log.debug("Upload API mapping_url=%s symbol_url=%s", self._mapping_url, self._symbol_url)

    def endpoint_for(self, is_mapping_file: bool) -> str:
        return self._mapping_url if is_mapping_file else self._symbol_url

    def upload(
        self,
        endpoint: str,
        target: UploadTarget,
        file_name: str,
        body: bytes,
        content_type: str,
    ) -> bool:
        """POST body to endpoint. Returns True on HTTP 200; logs a warning and returns False otherwise."""
        url = build_upload_url(endpoint, target, file_name)
        log.debug("upload %s size=%d content_type=%s", file_name, len(body), content_type)
        try:
            with httpx.Client(timeout=self._timeout) as client:
                r = client.post(
                    url,
                    content=body,
                    headers={"Content-Type": f"{content_type}; charset=UTF-8"},
                )
        except httpx.TimeoutException as e:
            log.warning("Upload %s: timeout (%s). Please check your network.", file_name, e)
            return False
        except httpx.HTTPError as e:
            log.warning("Upload %s: %s", file_name, e)
            return False
        if r.status_code != httpx.codes.OK:
            log.warning("Upload %s: failed to execute POST (%s %s)", file_name, r.status_code, r.reason_phrase)
            return False
        log.info("Upload %s: server replied %s", file_name, r.text)
        return True

    def upload_symtab_file(self, target: UploadTarget, candidate: UploadCandidate) -> bool:
        """Upload a mapping file (text/plain) or symbol archive (application/zip)."""
        path = Path(candidate.path)
        try:
            body = path.read_bytes()
        except OSError as e:
            log.warning("Could not read %s for upload: %s", path, e)
            return False
        log.info("Uploading %s", path.absolute())
        ok = self.upload(
            self.endpoint_for(candidate.is_mapping_file),
            target,
            path.name,
            body,
            candidate.content_type,
        )
        if ok:
            log.info("Successfully uploaded %s", path.name)
        else:
            log.error("Failed to upload %s", path.name)
        return ok
