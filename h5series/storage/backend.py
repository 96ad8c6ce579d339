"""Abstract binary container backend.

The writer only talks to storage through this interface. Handles are opaque
to the writer; each backend decides what a file, group or dataset handle is.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import numpy as np


class ContainerBackend(ABC):
    @abstractmethod
    def create_file(self, path: Path) -> Any:
        """Create a new file, failing if it exists. Returns the root node."""

    @abstractmethod
    def require_group(self, parent: Any, name: str) -> Any:
        """Open the child group `name` of `parent`, creating it if missing."""

    @abstractmethod
    def set_string_attribute(self, node: Any, name: str, value: str) -> None:
        """Attach a scalar string attribute to a file or group."""

    @abstractmethod
    def create_dataset(self, parent: Any, name: str, length: int, chunk_length: int) -> Any:
        """Declare a chunked, compressed float64 dataset of `length` elements."""

    @abstractmethod
    def write(self, dataset: Any, offset: int, data: np.ndarray) -> None:
        """Write `data` into elements [offset, offset + len(data)) of `dataset`."""

    @abstractmethod
    def flush(self, file: Any) -> None:
        """Push buffered writes to disk."""

    @abstractmethod
    def close(self, file: Any) -> None:
        """Release the file and every handle opened below it. Safe on closed handles."""

    def remove(self, path: Path) -> None:
        """Delete a file left behind by a failed open."""
        path.unlink(missing_ok=True)
