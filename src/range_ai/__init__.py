"""Range AI: separated per-role agents trained in parallel training ranges."""

__version__ = "0.1.0"
