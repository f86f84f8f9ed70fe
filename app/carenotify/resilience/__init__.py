"""Resilience patterns for notification delivery."""
