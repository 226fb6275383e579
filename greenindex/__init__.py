"""green-index: sustainability index scoring, clustering and recommendations."""

__version__ = "1.0.0"
