"""Configuration and repository context."""

from sow.core.config import Config
from sow.core.context import ProjectContext

__all__ = ["Config", "ProjectContext"]
