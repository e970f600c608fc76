"""Storage backends for project state.

A backend moves one project's plain-data representation in and out of
storage. It knows nothing about project types or machines.
"""

from __future__ import annotations

import copy
import logging
import tempfile
from pathlib import Path
from typing import Any, Optional, Protocol

import yaml

from sow.sdk.errors import ProjectNotFoundError, StateError

logger = logging.getLogger(__name__)


class Backend(Protocol):
    """Protocol for project state storage."""

    def load(self) -> dict[str, Any]:
        """Return the stored project data.

        Raises:
            ProjectNotFoundError: If nothing is stored
        """
        ...

    def save(self, data: dict[str, Any]) -> None:
        """Replace the stored project data."""
        ...

    def exists(self) -> bool:
        ...


class MemoryBackend:
    """Keeps project data in memory. Used by tests and dry runs."""

    def __init__(self, data: Optional[dict[str, Any]] = None):
        self._data = copy.deepcopy(data) if data is not None else None

    def load(self) -> dict[str, Any]:
        if self._data is None:
            raise ProjectNotFoundError("no project state in memory")
        return copy.deepcopy(self._data)

    def save(self, data: dict[str, Any]) -> None:
        self._data = copy.deepcopy(data)

    def exists(self) -> bool:
        return self._data is not None


class YAMLBackend:
    """Stores project data as a YAML file.

    Writes go to a temporary file in the same directory which is then renamed
    over the target, so readers never see a half-written file.

    Attributes:
        path: Location of the state file
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> dict[str, Any]:
        """Read and parse the state file.

        Raises:
            ProjectNotFoundError: If the file does not exist
            StateError: If the file is not valid YAML or not a mapping
        """
        if not self.path.exists():
            raise ProjectNotFoundError(f"no project state found at {self.path}")

        try:
            with open(self.path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise StateError(f"failed to parse project state {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StateError(f"project state {self.path} is not a mapping")

        logger.debug(f"State loaded from {self.path}")
        return data

    def save(self, data: dict[str, Any]) -> None:
        """Write the state file atomically.

        Raises:
            StateError: If the data cannot be represented as YAML
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=self.path.parent,
            delete=False,
            suffix=".yaml.tmp",
        ) as f:
            temp_path = Path(f.name)
            try:
                yaml.safe_dump(data, f, sort_keys=False, default_flow_style=False)
            except yaml.YAMLError as e:
                f.close()
                temp_path.unlink(missing_ok=True)
                raise StateError(
                    f"failed to write project state {self.path}: {e}"
                ) from e

        try:
            # Rename to final location (atomic on POSIX)
            temp_path.rename(self.path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise

        logger.debug(f"State saved to {self.path}")
