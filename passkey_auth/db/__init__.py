# (c) Copyright Datacraft, 2026
"""Database module for the passkey service."""
from .orm import PasskeyCredential, PasskeyAuditEvent, PasskeyOwnerLock
from .base import Base
from .engine import make_engine, make_session_factory

__all__ = [
	'Base',
	'PasskeyCredential',
	'PasskeyAuditEvent',
	'PasskeyOwnerLock',
	'make_engine',
	'make_session_factory',
]
