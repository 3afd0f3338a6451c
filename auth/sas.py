"""
auth/sas.py -- Azure IoT Hub shared access signature (SAS) tokens.

Collars and ear tags publish telemetry to IoT Hub, which authenticates each
device with a SAS token derived from the device's primary key. The backend
mints these short-lived tokens so devices never need to hold the signing
logic themselves.

Token format (Azure IoT Hub):
  SharedAccessSignature sr=<url-encoded resource uri>&sig=<url-encoded b64 sig>&se=<expiry epoch>

The string to sign is "<url-encoded lowercase uri>\\n<expiry epoch>", signed
with HMAC-SHA256 using the base64-decoded device key.

Layer rule: stdlib only.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import time
from urllib.parse import quote


def _encode(value: str) -> str:
    # Matches JavaScript encodeURIComponent, which IoT Hub expects.
    return quote(value, safe="-_.!~*'()")


def generate_sas_token(uri: str, key: str, expiry: int = 3600, now: float | None = None) -> str:
    """Return a SAS token for resource uri, valid for expiry seconds.

    Args:
        uri:    Resource URI, e.g. "myhub.azure-devices.net/devices/collar-7".
        key:    Base64-encoded device primary key.
        expiry: Lifetime in seconds from now.
        now:    Override for the current epoch time (tests).

    Raises ValueError if key is not valid base64.
    """
    try:
        decoded_key = base64.b64decode(key, validate=True)
    except binascii.Error as exc:
        raise ValueError("Device key must be base64-encoded.") from exc

    ttl = int(now if now is not None else time.time()) + expiry
    encoded_uri = _encode(uri.lower())
    string_to_sign = f"{encoded_uri}\n{ttl}"
    signature = hmac.new(decoded_key, string_to_sign.encode("utf-8"), hashlib.sha256).digest()
    encoded_signature = _encode(base64.b64encode(signature).decode("ascii"))
    return f"SharedAccessSignature sr={encoded_uri}&sig={encoded_signature}&se={ttl}"
