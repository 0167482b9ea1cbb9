"""Signed QR payloads.

A QR code carries an HS256 token naming the QR record, its order and its
type. The token proves the code was issued here; everything else (expiry,
binding, prior use) is judged against the stored QRCode record.
"""

import jwt
from protean.exceptions import ValidationError

from logistics.shared.settings import qr_signing_key

ALGORITHM = "HS256"

_REQUIRED_CLAIMS = ("qr_id", "order_id", "type")


def encode_payload(qr_id: str, order_id: str, qr_type: str, issued_at) -> str:
    claims = {
        "qr_id": str(qr_id),
        "order_id": str(order_id),
        "type": qr_type,
        "iat": int(issued_at.timestamp()),
    }
    return jwt.encode(claims, qr_signing_key(), algorithm=ALGORITHM)


def decode_payload(token: str) -> dict:
    """Verify and decode a scanned payload.

    Raises:
        ValidationError: when the payload is unsigned, tampered with, or incomplete.
    """
    if not token or not isinstance(token, str):
        raise ValidationError({"qr_data": ["QR payload is required"]})
    try:
        claims = jwt.decode(
            token,
            qr_signing_key(),
            algorithms=[ALGORITHM],
            options={"require": list(_REQUIRED_CLAIMS), "verify_iat": False},
        )
    except jwt.InvalidTokenError as exc:
        raise ValidationError({"qr_data": [f"QR payload is not valid: {exc}"]}) from exc
    return claims
