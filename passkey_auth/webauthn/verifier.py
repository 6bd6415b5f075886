# (c) Copyright Datacraft, 2026
"""WebAuthn verification capability backed by py_webauthn."""

import logging
from dataclasses import dataclass
from typing import Any

from webauthn import (
	verify_authentication_response,
	verify_registration_response,
)
from webauthn.helpers import (
	base64url_to_bytes,
	bytes_to_base64url,
	parse_client_data_json,
)
from webauthn.helpers.exceptions import WebAuthnException
from webauthn.helpers.structs import ClientDataType

from passkey_auth.errors import AssertionInvalid, AttestationInvalid, PasskeyError

logger = logging.getLogger(__name__)


@dataclass
class ClientData:
	"""Fields of clientDataJSON needed before verification."""
	challenge: str  # Base64URL encoded
	origin: str
	type: str  # webauthn.create or webauthn.get


@dataclass
class VerifiedAttestation:
	credential_id: str  # Base64URL encoded
	public_key: str  # Base64URL encoded
	sign_count: int
	aaguid: str | None = None
	device_type: str | None = None
	backed_up: bool = False


@dataclass
class VerifiedAssertion:
	credential_id: str  # Base64URL encoded
	new_sign_count: int
	device_type: str | None = None
	backed_up: bool = False
	user_verified: bool = False


def read_client_data(
	credential: dict[str, Any],
	error: type[PasskeyError] = AttestationInvalid,
	expected_type: ClientDataType | None = None,
) -> ClientData:
	"""Decode clientDataJSON from a credential response.

	Args:
		credential: Response from navigator.credentials.create()/get()
		error: Error raised when the client data cannot be decoded or is
			of the wrong ceremony type
		expected_type: Ceremony type the client data must declare

	Returns:
		ClientData with the challenge re-encoded as Base64URL
	"""
	try:
		raw = base64url_to_bytes(credential["response"]["clientDataJSON"])
		client_data = parse_client_data_json(raw)
	except (KeyError, TypeError, ValueError, WebAuthnException) as e:
		logger.warning(f"Unreadable clientDataJSON: {e}")
		raise error("Malformed client data")

	if expected_type is not None and client_data.type != expected_type:
		logger.warning(f"Unexpected clientDataJSON type {client_data.type}, expected {expected_type.value}")
		raise error(f"Client data type must be {expected_type.value}")

	return ClientData(
		challenge=bytes_to_base64url(client_data.challenge),
		origin=client_data.origin,
		type=client_data.type,
	)


class WebAuthnVerifier:
	"""Verifies attestation and assertion responses for one relying party."""

	def __init__(self, rp_id: str, origins: list[str]):
		self.rp_id = rp_id
		self.origins = list(origins)

	def verify_attestation(
		self,
		credential: dict[str, Any],
		expected_challenge: str,
		require_user_verification: bool = False,
	) -> VerifiedAttestation:
		"""Verify registration response from authenticator.

		Raises:
			AttestationInvalid: if any WebAuthn check fails
		"""
		try:
			verification = verify_registration_response(
				credential=credential,
				expected_challenge=base64url_to_bytes(expected_challenge),
				expected_rp_id=self.rp_id,
				expected_origin=self.origins,
				require_user_verification=require_user_verification,
			)
		except (WebAuthnException, ValueError, KeyError, TypeError) as e:
			logger.warning(f"Registration verification failed: {e}")
			raise AttestationInvalid(f"WebAuthn verification failed: {e}")

		return VerifiedAttestation(
			credential_id=bytes_to_base64url(verification.credential_id),
			public_key=bytes_to_base64url(verification.credential_public_key),
			sign_count=verification.sign_count,
			aaguid=verification.aaguid or None,
			device_type=str(verification.credential_device_type.value)
			if verification.credential_device_type else None,
			backed_up=bool(verification.credential_backed_up),
		)

	def verify_assertion(
		self,
		credential: dict[str, Any],
		expected_challenge: str,
		public_key: str,
		require_user_verification: bool = False,
	) -> VerifiedAssertion:
		"""Verify authentication response signature against a stored key.

		The signature counter is reported, not judged: clone detection
		belongs to the authentication handler.

		Raises:
			AssertionInvalid: if any WebAuthn check fails
		"""
		try:
			verification = verify_authentication_response(
				credential=credential,
				expected_challenge=base64url_to_bytes(expected_challenge),
				expected_rp_id=self.rp_id,
				expected_origin=self.origins,
				credential_public_key=base64url_to_bytes(public_key),
				# Zero disables the library's own counter comparison
				credential_current_sign_count=0,
				require_user_verification=require_user_verification,
			)
		except (WebAuthnException, ValueError, KeyError, TypeError) as e:
			logger.warning(f"Authentication verification failed: {e}")
			raise AssertionInvalid(f"WebAuthn verification failed: {e}")

		return VerifiedAssertion(
			credential_id=bytes_to_base64url(verification.credential_id),
			new_sign_count=verification.new_sign_count,
			device_type=str(verification.credential_device_type.value)
			if verification.credential_device_type else None,
			backed_up=bool(verification.credential_backed_up),
			user_verified=bool(verification.user_verified),
		)
