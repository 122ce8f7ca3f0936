"""Compact token segment encoding (base64url without padding)."""

from __future__ import annotations

import base64
import binascii
import re

_SEGMENT_ALPHABET = re.compile(r"[A-Za-z0-9_-]*")


class MalformedToken(ValueError):
    """Token does not have the ``header.payload.signature`` shape."""


class MalformedEncoding(MalformedToken):
    """Segment is not valid unpadded base64url."""


def encode_segment(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def decode_segment(segment: str) -> bytes:
    if not _SEGMENT_ALPHABET.fullmatch(segment):
        raise MalformedEncoding("segment contains characters outside the base64url alphabet")
    if len(segment) % 4 == 1:
        raise MalformedEncoding("segment length does not match any base64url padding")

    padded = segment + "=" * (-len(segment) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as exc:
        raise MalformedEncoding("segment is not valid base64url") from exc


def split_token(token: str) -> tuple[str, str, str]:
    parts = token.split(".")
    if len(parts) != 3:
        raise MalformedToken(f"expected 3 dot-separated segments, got {len(parts)}")
    header, payload, signature = parts
    return header, payload, signature


__all__ = ["MalformedEncoding", "MalformedToken", "decode_segment", "encode_segment", "split_token"]
