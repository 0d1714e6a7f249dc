"""TV Wall: asset store server, management console sync and kiosk player."""

__version__ = "1.0.0"
