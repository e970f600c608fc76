"""Project state persistence."""

from sow.state.backend import Backend, MemoryBackend, YAMLBackend
from sow.state.loader import (
    create,
    detect_project_type,
    generate_project_name,
    load,
    save,
)

__all__ = [
    "Backend",
    "MemoryBackend",
    "YAMLBackend",
    "create",
    "detect_project_type",
    "generate_project_name",
    "load",
    "save",
]
