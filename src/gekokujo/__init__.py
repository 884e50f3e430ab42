"""Back-office simulation core for a forum-run Sengoku strategy game."""

__version__ = "0.1.0"
