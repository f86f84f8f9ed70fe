"""Notification dispatch core for the home-care recorder platform."""

__version__ = "1.0.0"
