"""Top-level package for snapsync.

Snapshot retrieval and integrity engine for multi-part archives.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("snapsync")
except PackageNotFoundError:
    # Fallback for development environments where package isn't installed
    __version__ = "dev"
