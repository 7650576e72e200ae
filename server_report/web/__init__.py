"""Website API: FastAPI application factory and authenticators."""

from __future__ import annotations

from .app import create_app, main
from .auth import Authenticator, header_authenticator

__all__ = ["Authenticator", "create_app", "header_authenticator", "main"]
