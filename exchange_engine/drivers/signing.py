"""
Exchange Engine - Request Signing.

Signature schemes for the bundled venues. Pure functions so they
can be checked against known vectors without a network.
"""

import base64
import hashlib
import hmac
from typing import Any, Dict, Mapping
from urllib.parse import quote


def format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def params_to_string(params: Mapping[str, Any], encode: bool = False) -> str:
    """
    Key-sorted `k=v&k=v` rendering of a parameter map.

    Lists are joined without separator when not encoding; with
    `encode` both keys and values are percent-encoded.
    """
    parts = []
    for key in sorted(params):
        value = params[key]
        if isinstance(value, (list, tuple)) and not encode:
            value = "".join(format_value(v) for v in value)
        else:
            value = format_value(value)

        if encode:
            key = quote(str(key), safe="")
            value = quote(value, safe="")
        parts.append(f"{key}={value}")
    return "&".join(parts)


# ============================================================
# DERIBIT
# ============================================================

def deribit_signature(
    key: str,
    secret: str,
    action: str,
    params: Mapping[str, Any],
    tstamp: int,
) -> str:
    """
    Build the x-deribit-sig header value.

    The key-sorted string of {_: tstamp, _ackey, _acsec, _action,
    **params} is SHA-256 hashed and base64 encoded; the header is
    `key.tstamp.hash`.

    Args:
        key: API key
        secret: API secret
        action: Request path, e.g. /api/v1/private/buy
        params: Request parameters
        tstamp: Milliseconds since the epoch

    Returns:
        Signature header value
    """
    data: Dict[str, Any] = {
        "_": tstamp,
        "_ackey": key,
        "_acsec": secret,
        "_action": action,
    }
    data.update(params)
    digest = hashlib.sha256(params_to_string(data).encode()).digest()
    encoded = base64.b64encode(digest).decode()
    return f"{key}.{tstamp}.{encoded}"


# ============================================================
# COINBASE
# ============================================================

def coinbase_signature(secret: str, timestamp: str, method: str, path: str, body: str = "") -> str:
    """
    Build the CB-ACCESS-SIGN header value.

    HMAC-SHA256 of timestamp + METHOD + path + body, keyed with the
    base64-decoded secret, base64 encoded.
    """
    message = f"{timestamp}{method.upper()}{path}{body}"
    signature = hmac.new(
        base64.b64decode(secret),
        message.encode(),
        hashlib.sha256,
    ).digest()
    return base64.b64encode(signature).decode()
