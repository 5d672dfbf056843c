"""Drag-and-drop ingestion."""
import inspect
import logging
from typing import Any, Callable, List, Optional, Union
from urllib.parse import urlparse
from urllib.request import url2pathname

from ..models import RawFile
from .file_collector import FilePicker, FileLike

logger = logging.getLogger(__name__)


def parse_uri_list(text: str) -> List[str]:
    """
    Parse a ``text/uri-list`` drop payload into local paths.

    Comment lines start with ``#``. Only ``file`` URIs and bare paths are
    kept; other schemes are skipped.
    """
    paths = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        parsed = urlparse(line)
        if parsed.scheme == "file":
            paths.append(url2pathname(parsed.path))
        elif parsed.scheme and len(parsed.scheme) > 1:
            logger.debug(f"Ignoring non-file URI in drop: {line}")
        else:
            paths.append(line)
    return paths


def normalize_drop(payload: Union[str, bytes, List[FileLike]]) -> List[FileLike]:
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8")
    if isinstance(payload, str):
        return parse_uri_list(payload)
    return list(payload)


class DropZone:
    """
    Drop target that forwards dropped files to ``on_file``.

    ``is_dragover`` is true while something is hovering over the zone; it
    is feedback only and has no effect on uploads. Dropped folders are
    expanded into their files.
    """

    def __init__(
        self,
        on_file: Callable[[List[RawFile]], Any],
        accept: Optional[str] = None,
        multiple: bool = True,
    ):
        self._on_file = on_file
        self._picker = FilePicker(accept=accept, multiple=multiple)
        self.is_dragover = False

    def drag_over(self) -> None:
        self.is_dragover = True

    def drag_leave(self) -> None:
        self.is_dragover = False

    async def drop(self, payload: Union[str, bytes, List[FileLike]]) -> List[RawFile]:
        """Handle a drop: reset hover state and forward the files."""
        self.is_dragover = False
        files = self._picker.select(normalize_drop(payload), expand_dirs=True)
        if not files:
            logger.debug("Drop contained no acceptable files")
            return files

        result = self._on_file(files)
        if inspect.isawaitable(result):
            await result
        return files
