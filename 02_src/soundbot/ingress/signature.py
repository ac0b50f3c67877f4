"""Webhook request signature verification."""

import hashlib
import hmac
from typing import Mapping

SIGNATURE_HEADERS = (
    ("x-hub-signature-256", "sha256", hashlib.sha256),
    ("x-hub-signature", "sha1", hashlib.sha1),
)


class SignatureError(ValueError):
    """The request body does not match its signature header."""


def verify_signature(app_secret: str, body: bytes, headers: Mapping[str, str]) -> None:
    """Check the platform HMAC signature of a raw request body.

    Accepts `X-Hub-Signature-256: sha256=<hex>` or `X-Hub-Signature: sha1=<hex>`.
    Raises SignatureError when no header is present or the digest differs.
    """
    lowered = {key.lower(): value for key, value in headers.items()}

    for header, method, digest in SIGNATURE_HEADERS:
        value = lowered.get(header)
        if not value:
            continue

        prefix, _, received = value.strip().partition("=")
        if prefix.lower() != method or not received:
            raise SignatureError(f"Malformed {header} header")

        expected = hmac.new(app_secret.encode("utf-8"), body, digest).digest()
        # Headers may carry non-ASCII text; compare as bytes.
        received_hex = received.strip().lower().encode("utf-8")
        if not hmac.compare_digest(expected.hex().encode("ascii"), received_hex):
            raise SignatureError("Couldn't validate the request signature.")
        return

    raise SignatureError("Couldn't validate the signature.")
