"""Integration settings __init__ - exports all provider settings."""

from carenotify.configuration.integrations.gateway import GatewaySettings

__all__ = ["GatewaySettings"]
