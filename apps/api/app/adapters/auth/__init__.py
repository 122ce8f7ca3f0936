"""Auth adapters: token encoding, signing keys, password hashing."""

from .base import (
    AuthVerificationError,
    MessageSigner,
    RejectionCode,
    SignatureVerifier,
    SigningKeyError,
    TokenDecision,
    TokenIssuanceFailed,
)
from .codec import MalformedEncoding, MalformedToken, decode_segment, encode_segment, split_token
from .passwords import BcryptPasswordHasher, PasswordHasher
from .rsa_keys import RS256, RsaSignatureVerifier, RsaSigner, load_signer, load_verifier

__all__ = [
    "AuthVerificationError",
    "BcryptPasswordHasher",
    "MalformedEncoding",
    "MalformedToken",
    "MessageSigner",
    "PasswordHasher",
    "RS256",
    "RejectionCode",
    "RsaSignatureVerifier",
    "RsaSigner",
    "SignatureVerifier",
    "SigningKeyError",
    "TokenDecision",
    "TokenIssuanceFailed",
    "decode_segment",
    "encode_segment",
    "load_signer",
    "load_verifier",
    "split_token",
]
