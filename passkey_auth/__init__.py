# (c) Copyright Datacraft, 2026
"""FIDO2/WebAuthn passkey ceremony and credential lifecycle service."""
from .app import create_app
from .config import Settings, get_settings

__all__ = ["create_app", "Settings", "get_settings"]
