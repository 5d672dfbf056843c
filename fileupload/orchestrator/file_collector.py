"""File selection utilities: explicit picks and folder scans."""
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..models import RawFile

logger = logging.getLogger(__name__)

FileLike = Union[str, Path, RawFile]


def parse_accept(accept: Optional[str]) -> List[str]:
    """Split an accept string (``.png, image/*``) into lowercase tokens."""
    if not accept:
        return []
    return [token.strip().lower() for token in accept.split(",") if token.strip()]


def matches_accept(raw: RawFile, accept: Optional[str]) -> bool:
    """
    Check a file against an accept list.

    Tokens are extensions (``.png``), wildcard types (``image/*``) or exact
    MIME types. An empty list accepts everything.
    """
    tokens = parse_accept(accept)
    if not tokens:
        return True

    name = raw.name.lower()
    mime = (raw.content_type or "").lower()
    for token in tokens:
        if token.startswith("."):
            if name.endswith(token):
                return True
        elif token.endswith("/*"):
            if mime.startswith(token[:-1]):
                return True
        elif mime == token:
            return True
    return False


class FileCollector:
    """Collects regular files from folders."""

    @staticmethod
    def collect_files(folder: Path) -> List[Path]:
        """
        Collect all regular files recursively.

        Args:
            folder: Root folder to scan

        Returns:
            Sorted list of file paths
        """
        files = []
        for item in Path(folder).rglob("*"):
            if item.is_file():
                files.append(item)
        return sorted(files)


def to_raw_files(items: Iterable[FileLike], expand_dirs: bool = False) -> List[RawFile]:
    """Turn paths and RawFiles into RawFiles, preserving order."""
    files = []
    for item in items:
        if isinstance(item, RawFile):
            files.append(item)
            continue

        path = Path(item).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"file not found: {path}")
        if path.is_dir():
            if not expand_dirs:
                raise IsADirectoryError(f"cannot select a directory: {path}")
            files.extend(RawFile.from_path(p) for p in FileCollector.collect_files(path))
            continue
        files.append(RawFile.from_path(path))
    return files


class FilePicker:
    """
    Explicit file selection.

    Mirrors a file input: ``accept`` filters by name/type and ``multiple``
    set to False keeps only the first file of a selection.
    """

    def __init__(self, accept: Optional[str] = None, multiple: bool = True):
        self.accept = accept
        self.multiple = multiple

    def select(self, items: Iterable[FileLike], expand_dirs: bool = False) -> List[RawFile]:
        files = []
        for raw in to_raw_files(items, expand_dirs=expand_dirs):
            if matches_accept(raw, self.accept):
                files.append(raw)
            else:
                logger.debug(f"Skipping {raw.name}: not in accept list {self.accept!r}")

        if not self.multiple and len(files) > 1:
            logger.debug(f"Single selection: keeping {files[0].name}, dropping {len(files) - 1} file(s)")
            files = files[:1]
        return files
