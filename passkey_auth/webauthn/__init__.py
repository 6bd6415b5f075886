# (c) Copyright Datacraft, 2026
"""WebAuthn/FIDO2 verification capability."""

from .verifier import (
	ClientData,
	VerifiedAssertion,
	VerifiedAttestation,
	WebAuthnVerifier,
	read_client_data,
)

__all__ = [
	"ClientData",
	"VerifiedAssertion",
	"VerifiedAttestation",
	"WebAuthnVerifier",
	"read_client_data",
]
