"""
Models for fileupload module.

Immutable dataclasses: every state change produces a new value.
"""
import mimetypes
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Any, BinaryIO, Mapping, Optional


class UploadStatus(Enum):
    """Upload task status."""
    READY = "ready"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadStatus.SUCCESS, UploadStatus.ERROR)

    @property
    def rank(self) -> int:
        """Position in ready -> uploading -> success|error; never decreases."""
        if self.is_terminal:
            return 2
        return 1 if self == UploadStatus.UPLOADING else 0


@dataclass(frozen=True)
class RawFile:
    """Handle to a local file (or in-memory content) picked for upload."""
    name: str
    size: int
    path: Optional[Path] = None
    content: Optional[bytes] = field(default=None, repr=False)
    content_type: Optional[str] = None

    @classmethod
    def from_path(cls, path, content_type: Optional[str] = None) -> "RawFile":
        path = Path(path)
        return cls(
            name=path.name,
            size=path.stat().st_size,
            path=path,
            content_type=content_type or mimetypes.guess_type(path.name)[0],
        )

    @classmethod
    def from_bytes(cls, name: str, content: bytes, content_type: Optional[str] = None) -> "RawFile":
        return cls(
            name=name,
            size=len(content),
            content=content,
            content_type=content_type or mimetypes.guess_type(name)[0],
        )

    def open(self) -> BinaryIO:
        """Open the file content for reading. Caller closes it."""
        if self.content is not None:
            return BytesIO(self.content)
        if self.path is None:
            raise ValueError(f"RawFile {self.name!r} has neither path nor content")
        return open(self.path, "rb")


MUTABLE_FIELDS = ("status", "percent", "response", "error")

@dataclass(frozen=True)
class UploadFile:
    """Immutable snapshot of one upload task."""
    uid: str
    name: str
    size: int
    status: UploadStatus = UploadStatus.READY
    percent: int = 0
    raw: Optional[RawFile] = field(default=None, repr=False, compare=False)
    response: Any = None
    error: Optional[BaseException] = None

    @classmethod
    def admit(cls, uid: str, raw: RawFile) -> "UploadFile":
        """Create the ``ready`` entry for an admitted file."""
        return cls(uid=uid, name=raw.name, size=raw.size, raw=raw)

    @property
    def done(self) -> bool:
        return self.status.is_terminal

    @property
    def success(self) -> bool:
        return self.status == UploadStatus.SUCCESS

    def advance(self, **fields) -> "UploadFile":
        """
        Return a copy with the mutable ``fields`` applied.

        Only status, percent, response and error may change; ``name`` and
        ``size`` are fixed at admission. Raises ValueError for any other key,
        a percent outside 0-100, a status that moves backwards, or a terminal
        status without its payload (``response`` for success, ``error`` for
        error).
        """
        unknown = set(fields) - set(MUTABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update {', '.join(sorted(unknown))} of {self.name!r}")

        if "percent" in fields:
            percent = fields["percent"]
            if isinstance(percent, bool) or not isinstance(percent, int) or not 0 <= percent <= 100:
                raise ValueError(f"percent must be an integer in [0, 100], got {percent!r}")

        status = UploadStatus(fields.get("status", self.status))
        if status.rank < self.status.rank:
            raise ValueError(f"{self.name!r} cannot go from {self.status.value} back to {status.value}")
        if status == UploadStatus.SUCCESS and "response" not in fields:
            raise ValueError("success requires a response")
        if status == UploadStatus.ERROR and fields.get("error") is None:
            raise ValueError("error requires an error")
        if "response" in fields and status != UploadStatus.SUCCESS:
            raise ValueError("response is only set together with status=success")
        if "error" in fields and status != UploadStatus.ERROR:
            raise ValueError("error is only set together with status=error")

        if "status" in fields:
            fields["status"] = status
        return self.merge(**fields)

    def merge(self, **fields) -> "UploadFile":
        """Return a copy with ``fields`` applied."""
        return replace(self, **fields)


def _env_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class UploadConfig:
    """Immutable configuration for upload operations."""
    action: str
    name: str = "file"
    data: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    with_credentials: bool = False
    accept: Optional[str] = None
    multiple: bool = True
    timeout: float = 60.0
    abort_on_remove: bool = False

    @property
    def field_name(self) -> str:
        """Multipart field name, falling back to ``file`` when blank."""
        return self.name or "file"

    @classmethod
    def from_env(cls, prefix: str = "FILEUPLOAD_", **overrides) -> "UploadConfig":
        """
        Build config from environment variables.

        Reads ``<prefix>ACTION``, ``FIELD_NAME``, ``TIMEOUT``,
        ``WITH_CREDENTIALS`` and ``ACCEPT``. Keyword overrides win.
        """
        values = {}
        action = os.getenv(f"{prefix}ACTION")
        if action:
            values["action"] = action
        field_name = os.getenv(f"{prefix}FIELD_NAME")
        if field_name:
            values["name"] = field_name
        timeout = os.getenv(f"{prefix}TIMEOUT")
        if timeout:
            values["timeout"] = float(timeout)
        if os.getenv(f"{prefix}WITH_CREDENTIALS") is not None:
            values["with_credentials"] = _env_flag(os.getenv(f"{prefix}WITH_CREDENTIALS"))
        accept = os.getenv(f"{prefix}ACCEPT")
        if accept:
            values["accept"] = accept

        values.update({k: v for k, v in overrides.items() if v is not None})
        if not values.get("action"):
            raise ValueError(f"{prefix}ACTION environment variable is not set")
        return cls(**values)
