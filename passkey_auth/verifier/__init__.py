# (c) Copyright Datacraft, 2026
"""Relying-party verifiers."""

from .base import (
	AuthenticationChallenge,
	AuthenticationVerification,
	RegistrationChallenge,
	RegistrationVerification,
	RelyingPartyVerifier,
)
from .http import HttpRelyingPartyVerifier
from .local import LocalRelyingPartyVerifier

__all__ = [
	"AuthenticationChallenge",
	"AuthenticationVerification",
	"RegistrationChallenge",
	"RegistrationVerification",
	"RelyingPartyVerifier",
	"HttpRelyingPartyVerifier",
	"LocalRelyingPartyVerifier",
]
