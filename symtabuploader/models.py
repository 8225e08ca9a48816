"""Upload target and candidate types shared by the planner and the API client."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

MAPPING_CONTENT_TYPE = "text/plain"
SYMBOL_CONTENT_TYPE = "application/zip"


@dataclass
class UploadTarget:
    """Per-variant upload metadata. All fields must be set before anything is uploaded."""

    app_id: Optional[str]
    app_key: Optional[str]
    package_name: Optional[str]
    version_name: Optional[str]


@dataclass(frozen=True)
class UploadCandidate:
    """A file queued for upload: a Proguard mapping file or a generated symbol archive."""

    path: Path
    is_mapping_file: bool

    @property
    def content_type(self) -> str:
        return MAPPING_CONTENT_TYPE if self.is_mapping_file else SYMBOL_CONTENT_TYPE
