"""Time-bounded posts with likes, dislikes, comments and an interaction audit log."""

__version__ = "0.1.0"
