"""Repository context detection and path resolution."""

from pathlib import Path
from typing import Optional

from sow.core.config import Config
from sow.sdk.project import Project
from sow.sdk.registry import Registry
from sow.state import loader
from sow.state.backend import YAMLBackend


class ProjectContext:
    """Detects the repository and locates the project state file.

    Attributes:
        cwd: Current working directory (invocation location)
        repo_root: Repository root directory containing .git or .sow/
        sow_dir: Project directory under the repository root
        state_file: Project state file
    """

    def __init__(self, cwd: Optional[Path] = None, config: Optional[Config] = None):
        """Initialize context by detecting the repository root from cwd.

        Args:
            cwd: Working directory to start detection from (default: Path.cwd())
            config: Configuration supplying path settings (default: Config())
        """
        self.cwd = cwd or Path.cwd()
        self.config = config or Config()
        sow_dir_name = self.config.get("paths.sow_dir")
        self.repo_root = self._find_repo_root(sow_dir_name)
        self.sow_dir = self.repo_root / sow_dir_name
        self.state_file = self.config.state_path(self.repo_root)

    def _find_repo_root(self, sow_dir_name: str) -> Path:
        """Walk up directory tree to find the root containing .git or the sow dir.

        Returns:
            Path to repository root, or self.cwd if no markers found
        """
        current = self.cwd
        while current != current.parent:
            if (current / ".git").exists() or (current / sow_dir_name).is_dir():
                return current
            current = current.parent
        return self.cwd

    def has_project(self) -> bool:
        """Check if a project state file exists."""
        return self.state_file.exists()

    def backend(self) -> YAMLBackend:
        """YAML backend for the project state file."""
        return YAMLBackend(self.state_file)

    def load_project(self, registry: Registry) -> Project:
        """Load and bind the project of this repository.

        Raises:
            ProjectNotFoundError: If no project state file exists
        """
        return loader.load(self.backend(), registry)

    def save_project(self, project: Project) -> None:
        """Write project state back to the state file."""
        loader.save(project, self.backend())
