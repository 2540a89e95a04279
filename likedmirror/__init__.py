"""Local mirror of a user's liked tracks with background synchronization."""

__version__ = "0.1.0"
