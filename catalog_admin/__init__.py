"""Terminal admin panel for a product catalog REST API."""

__version__ = "0.1.0"
