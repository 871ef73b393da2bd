from __future__ import annotations

import hashlib
import re
from typing import Any, Optional

import rfc8785

_URI_RE = re.compile(r"^([a-z][a-z0-9+.-]*)://(.*)$", re.IGNORECASE)
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

ZERO_ADDRESS = "0x" + "0" * 40


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def canonical_json(document: Any) -> bytes:
    """Serialize a document with RFC 8785 JCS for content addressing."""
    return rfc8785.dumps(document)


def content_hash(document: Any) -> str:
    return sha256_hex(canonical_json(document))


def is_uri(value: Any) -> bool:
    return isinstance(value, str) and _URI_RE.match(value) is not None


def uri_scheme(uri: str) -> Optional[str]:
    """Return the lower-cased scheme of ``scheme://locator``, or None."""
    if not isinstance(uri, str):
        return None
    match = _URI_RE.match(uri)
    if match is None:
        return None
    return match.group(1).lower()


def uri_locator(uri: str) -> str:
    match = _URI_RE.match(uri)
    if match is None:
        raise ValueError(f"Not a URI: {uri!r}")
    return match.group(2)


def is_address(value: Any) -> bool:
    return isinstance(value, str) and _ADDRESS_RE.match(value) is not None


def is_zero_address(address: str) -> bool:
    return not address or int(address, 16) == 0
