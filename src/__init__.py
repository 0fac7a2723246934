"""toolchain-upgrader: upgrade a project's build tool with backup and rollback."""

from toolchain_upgrader.version import __version__

__all__ = ["__version__"]
