"""extracker: rest-interval countdown with alarm and notification fallback."""

__version__ = "0.1.0"
