"""Editor buffer collaborators.

The core only ever reads and writes literal buffer text. Hosts provide an
object with ``read_current_text`` and ``write_text``; two simple ones are
included for the CLI and tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class EditorBuffer(Protocol):
    def read_current_text(self) -> str: ...

    def write_text(self, text: str) -> None: ...


class TextBuffer:
    """In-memory buffer."""

    def __init__(self, text: str = "") -> None:
        self._text = text

    def read_current_text(self) -> str:
        return self._text

    def write_text(self, text: str) -> None:
        self._text = text


class FileBuffer:
    """Buffer backed by a UTF-8 file. A missing file reads as empty."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def read_current_text(self) -> str:
        if not self.path.exists():
            return ""
        return self.path.read_text(encoding="utf-8")

    def write_text(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(text, encoding="utf-8")
