"""Registry of project type configurations, keyed by type name."""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from sow.sdk.config import ProjectTypeConfig
from sow.sdk.errors import DuplicateProjectTypeError, UnknownProjectTypeError

logger = logging.getLogger(__name__)


class Registry:
    """Maps project type names to their configurations.

    Create one per process (see ``sow.projects.build_registry``) and pass it
    to the loader; there is no global instance.
    """

    def __init__(self) -> None:
        self._configs: dict[str, ProjectTypeConfig] = {}

    def register(self, name: str, config: ProjectTypeConfig) -> None:
        """Register ``config`` under ``name``.

        Raises:
            DuplicateProjectTypeError: If ``name`` is already registered
        """
        if name in self._configs:
            raise DuplicateProjectTypeError(name)
        self._configs[name] = config
        logger.debug(f"Registered project type {name}")

    def get(self, name: str) -> Optional[ProjectTypeConfig]:
        return self._configs.get(name)

    def require(self, name: str) -> ProjectTypeConfig:
        """Look up ``name``, raising ``UnknownProjectTypeError`` if absent."""
        config = self._configs.get(name)
        if config is None:
            raise UnknownProjectTypeError(name, self.registered_types())
        return config

    def registered_types(self) -> list[str]:
        """Registered names, sorted."""
        return sorted(self._configs)

    def clear(self) -> None:
        self._configs.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._configs

    def __len__(self) -> int:
        return len(self._configs)

    def __iter__(self) -> Iterator[str]:
        return iter(self.registered_types())
