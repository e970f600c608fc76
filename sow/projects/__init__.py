"""Built-in project types."""

from sow.projects import standard
from sow.sdk.registry import Registry


def build_registry() -> Registry:
    """Create a registry holding every built-in project type."""
    registry = Registry()
    registry.register(standard.NAME, standard.new_config())
    return registry


__all__ = ["build_registry", "standard"]
