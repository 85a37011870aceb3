# (c) Copyright Datacraft, 2026
"""Ceremony session storage."""

from .store import CeremonyKind, CeremonySession, CeremonySessionStore

__all__ = ["CeremonyKind", "CeremonySession", "CeremonySessionStore"]
