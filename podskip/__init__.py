"""PodSkip - detect and skip non-content segments in podcast audio."""

__version__ = "0.1.0"
