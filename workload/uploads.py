"""
Profile picture uploads.

An upload is checked (image media type, size limit) and then converted
into a base64 ``data:`` URL that is stored inside the staff record. The
conversion is the one asynchronous step of the application: it returns a
``concurrent.futures.Future`` so a caller can run it on an executor and
merge the result later. Without an executor it completes immediately.
"""

from __future__ import annotations

import base64
import mimetypes
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from workload.errors import UploadError

MAX_UPLOAD_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: str | Path) -> "UploadedFile":
        """Read a file from disk; the media type is guessed from its extension."""
        p = Path(path)
        content_type, _ = mimetypes.guess_type(p.name)
        return cls(filename=p.name, content_type=content_type or "application/octet-stream", data=p.read_bytes())


def validate_image(upload: UploadedFile, max_bytes: int = MAX_UPLOAD_BYTES) -> None:
    """Raise UploadError unless ``upload`` is an image of at most ``max_bytes``."""
    if not (upload.content_type or "").lower().startswith("image/"):
        raise UploadError("Please select a valid image file.")
    if upload.size > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise UploadError(f"Image size should be less than {limit_mb:g}MB.")


def to_data_url(upload: UploadedFile) -> str:
    encoded = base64.b64encode(upload.data).decode("ascii")
    return f"data:{upload.content_type};base64,{encoded}"


def read_as_data_url(upload: UploadedFile, executor: Optional[Executor] = None) -> "Future[str]":
    if executor is not None:
        return executor.submit(to_data_url, upload)

    fut: Future[str] = Future()
    fut.set_result(to_data_url(upload))
    return fut


@dataclass
class PendingUpload:
    """
    First half of an upload: the target record and the running conversion.
    Hand it to ``EntityModule.complete_upload`` once ``future`` is done.
    """

    record_id: int
    upload: UploadedFile
    future: "Future[str]"

    def done(self) -> bool:
        return self.future.done()
