"""Repository access."""

from gitforensics.extraction.git_accessor import BINARY_MARKER, RepositoryAccessor

__all__ = ["RepositoryAccessor", "BINARY_MARKER"]
