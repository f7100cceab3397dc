"""DocumentStore protocol, DirectoryStore, and MemoryStore.

Stores hand out write-once sinks for session documents and read finished
documents back as raw bytes. The DirectoryStore keeps one file per
document; the MemoryStore is a simple in-memory implementation for
development and testing.
"""

from __future__ import annotations

import io
import os
from pathlib import Path
from typing import Protocol

DOCUMENT_SUFFIX = ".analytics"


class DocumentSink(Protocol):
    """Append-only text sink for one document."""

    def write(self, text: str) -> int: ...

    def flush(self) -> None: ...

    def close(self) -> None: ...


class DocumentStore(Protocol):
    """Protocol for persistent storage of session documents."""

    def create(self, name: str) -> DocumentSink:
        """Create a new, empty document. Raises OSError if it cannot."""
        ...

    def read_bytes(self, name: str) -> bytes:
        """Read a finished document back. Raises OSError if it cannot."""
        ...

    def exists(self, name: str) -> bool:
        """Return True if a document with this name was created."""
        ...


def document_name(session_id: str) -> str:
    """Deterministic document name for a session."""
    return f"{session_id}{DOCUMENT_SUFFIX}"


def _check_name(name: str) -> None:
    if not name or name in (".", "..") or "/" in name or os.sep in name or "\x00" in name:
        raise OSError(f"Invalid document name: {name!r}")


class _FileSink:
    """File-backed sink whose flush reaches the disk."""

    def __init__(self, handle: io.TextIOWrapper) -> None:
        self._handle = handle

    def write(self, text: str) -> int:
        return self._handle.write(text)

    def flush(self) -> None:
        self._handle.flush()
        os.fsync(self._handle.fileno())

    def close(self) -> None:
        self._handle.close()


class DirectoryStore:
    """Stores documents as UTF-8 files under a single directory.

    Documents are created exclusively: an existing file is never truncated,
    so a finished document cannot be overwritten by a later session that
    happens to reuse its name.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, name: str) -> Path:
        _check_name(name)
        return self._root / name

    def create(self, name: str) -> DocumentSink:
        path = self.path_for(name)
        self._root.mkdir(parents=True, exist_ok=True)
        return _FileSink(path.open("x", encoding="utf-8", newline="\n"))

    def read_bytes(self, name: str) -> bytes:
        return self.path_for(name).read_bytes()

    def exists(self, name: str) -> bool:
        return self.path_for(name).exists()

    def list_documents(self) -> list[str]:
        if not self._root.is_dir():
            return []
        return sorted(p.name for p in self._root.iterdir() if p.name.endswith(DOCUMENT_SUFFIX))


class _MemorySink(io.StringIO):
    def __init__(self, store: MemoryStore, name: str) -> None:
        super().__init__()
        self._store = store
        self._name = name

    def flush(self) -> None:
        super().flush()
        self._store._documents[self._name] = self.getvalue()  # noqa: SLF001

    def close(self) -> None:
        if not self.closed:
            self.flush()
        super().close()


class MemoryStore:
    """In-memory document store for development and testing."""

    def __init__(self) -> None:
        self._documents: dict[str, str] = {}

    def create(self, name: str) -> DocumentSink:
        _check_name(name)
        if name in self._documents:
            raise FileExistsError(f"Document already exists: {name}")
        self._documents[name] = ""
        return _MemorySink(self, name)

    def read_bytes(self, name: str) -> bytes:
        try:
            return self._documents[name].encode("utf-8")
        except KeyError:
            raise FileNotFoundError(f"No such document: {name}") from None

    def exists(self, name: str) -> bool:
        return name in self._documents

    def read_text(self, name: str) -> str:
        return self.read_bytes(name).decode("utf-8")

    def delete(self, name: str) -> None:
        self._documents.pop(name, None)

    def list_documents(self) -> list[str]:
        return sorted(self._documents)
