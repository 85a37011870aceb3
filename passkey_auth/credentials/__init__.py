# (c) Copyright Datacraft, 2026
"""Credential storage and lifecycle."""

from .models import Credential
from .repository import CredentialRepository, InMemoryCredentialRepository
from .sql import SqlCredentialRepository
from .manager import CredentialLifecycleManager

__all__ = [
	"Credential",
	"CredentialRepository",
	"InMemoryCredentialRepository",
	"SqlCredentialRepository",
	"CredentialLifecycleManager",
]
