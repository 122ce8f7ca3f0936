"""RS256 signing and verification backed by ``cryptography``."""

from __future__ import annotations

import logging

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from app.adapters.auth.base import MessageSigner, SignatureVerifier, SigningKeyError
from app.core.config import Settings

logger = logging.getLogger(__name__)

RS256 = "RS256"
_MIN_KEY_SIZE = 2048


class RsaSignatureVerifier(SignatureVerifier):
    algorithm = RS256

    def __init__(self, public_key: rsa.RSAPublicKey) -> None:
        self._public_key = public_key

    @classmethod
    def from_pem(cls, pem: str | bytes) -> RsaSignatureVerifier:
        data = pem.encode("utf-8") if isinstance(pem, str) else pem
        try:
            key = serialization.load_pem_public_key(data)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise SigningKeyError("JWT public key could not be parsed") from exc
        if not isinstance(key, rsa.RSAPublicKey):
            raise SigningKeyError("JWT public key must be an RSA key")
        return cls(key)

    def verify(self, message: bytes, signature: bytes) -> bool:
        try:
            self._public_key.verify(signature, message, padding.PKCS1v15(), hashes.SHA256())
        except InvalidSignature:
            return False
        return True


class RsaSigner(MessageSigner):
    """Holds the private key loaded at startup; shared read-only afterwards."""

    algorithm = RS256

    def __init__(self, private_key: rsa.RSAPrivateKey) -> None:
        if private_key.key_size < _MIN_KEY_SIZE:
            raise SigningKeyError(f"JWT signing key must be at least {_MIN_KEY_SIZE} bits")
        self._private_key = private_key

    @classmethod
    def from_pem(cls, pem: str | bytes) -> RsaSigner:
        data = pem.encode("utf-8") if isinstance(pem, str) else pem
        try:
            key = serialization.load_pem_private_key(data, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise SigningKeyError("JWT private key could not be parsed as PKCS#8 PEM") from exc
        if not isinstance(key, rsa.RSAPrivateKey):
            raise SigningKeyError("JWT private key must be an RSA key")
        return cls(key)

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign(message, padding.PKCS1v15(), hashes.SHA256())

    def verifier(self) -> RsaSignatureVerifier:
        return RsaSignatureVerifier(self._private_key.public_key())


def load_signer(settings: Settings) -> RsaSigner:
    """Load the signing key named by configuration. Any failure is fatal to startup."""
    if settings.jwt_private_key_pem is not None:
        pem = settings.jwt_private_key_pem.get_secret_value()
        source = "inline"
    elif settings.jwt_private_key_path is not None:
        try:
            pem = settings.jwt_private_key_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SigningKeyError(f"JWT private key file is unreadable: {settings.jwt_private_key_path}") from exc
        source = str(settings.jwt_private_key_path)
    else:
        raise SigningKeyError("No JWT private key configured (AGUIDE_JWT_PRIVATE_KEY_PEM or AGUIDE_JWT_PRIVATE_KEY_PATH)")

    signer = RsaSigner.from_pem(pem)
    logger.info("auth.signing_key_loaded source=%s algorithm=%s", source, signer.algorithm)
    return signer


def load_verifier(settings: Settings, signer: RsaSigner) -> RsaSignatureVerifier:
    if settings.jwt_public_key_pem:
        return RsaSignatureVerifier.from_pem(settings.jwt_public_key_pem)
    return signer.verifier()


__all__ = ["RS256", "RsaSignatureVerifier", "RsaSigner", "load_signer", "load_verifier"]
