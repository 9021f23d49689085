"""Authentication modules: the contract the engine drives and the RDP implementation."""

from .base import Authenticator, Session

__all__ = ["Authenticator", "Session"]
