"""idxguard: catch foreign-key columns that ship without an index."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("idxguard")
except PackageNotFoundError:
    __version__ = "dev"
