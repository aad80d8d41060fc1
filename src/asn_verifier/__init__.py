"""Verify App Store server notifications against trusted root CAs."""

__version__ = "0.1.0"
