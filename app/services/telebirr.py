"""Request signing for the Telebirr H5 payment gateway.

The gateway verifies ``sign`` against its own canonical form of the request:
every top-level field and every ``biz_content`` field except the excluded
names, sorted by key and joined as ``key=value`` pairs with ``&``. The string
is signed with RSA-PSS over SHA-256 (salt length 32) and base64 encoded.
"""

import base64
import logging
import secrets
import time
from collections.abc import Mapping
from typing import Any

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

logger = logging.getLogger(__name__)

EXCLUDE_FIELDS = frozenset(
    {
        "sign",
        "sign_type",
        "header",
        "refund_info",
        "openType",
        "raw_request",
        "biz_content",
        "wallet_reference_data",
    }
)

PSS_SALT_LENGTH = 32


def create_timestamp() -> str:
    return str(int(time.time()))


def create_nonce_str() -> str:
    return secrets.token_hex(16)


def format_value(value: Any) -> str:
    """Render a field the way the gateway's reference signer interpolates it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join("" if item is None else format_value(item) for item in value)
    if isinstance(value, Mapping):
        return "[object Object]"
    return str(value)


def build_sign_string(request: Mapping[str, Any]) -> str:
    """Canonical ``k=v&...`` string.

    A key present both at top level and in ``biz_content`` is emitted twice,
    each time with the ``biz_content`` value.
    """
    keys: list[str] = []
    values: dict[str, Any] = {}
    for key, value in request.items():
        if key not in EXCLUDE_FIELDS:
            keys.append(key)
            values[key] = value

    biz_content = request.get("biz_content")
    if isinstance(biz_content, Mapping):
        for key, value in biz_content.items():
            if key not in EXCLUDE_FIELDS:
                keys.append(key)
                values[key] = value

    return "&".join(f"{key}={format_value(values[key])}" for key in sorted(keys))


def load_private_key(private_key_pem: str | bytes) -> rsa.RSAPrivateKey:
    data = private_key_pem.encode("utf-8") if isinstance(private_key_pem, str) else private_key_pem
    key = serialization.load_pem_private_key(data, password=None)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise ValueError("Telebirr signing requires an RSA private key")
    return key


def sign_string(text: str, private_key_pem: str | bytes) -> str:
    key = load_private_key(private_key_pem)
    signature = key.sign(
        text.encode("utf-8"),
        padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=PSS_SALT_LENGTH),
        hashes.SHA256(),
    )
    return base64.b64encode(signature).decode("ascii")


def sign_request(request: Mapping[str, Any], private_key_pem: str | bytes) -> str:
    text = build_sign_string(request)
    logger.debug("[Telebirr] Sign String: %s", text)
    return sign_string(text, private_key_pem)
