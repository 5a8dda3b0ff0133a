"""
Reversible transforms applied to secrets before they are written to disk.
"""

import base64
import binascii
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class SecretCoder(Protocol):
    """
    A reversible secret transform.

    Implementations must satisfy ``decode(encode(x)) == x`` and must return
    ``None`` from ``decode`` on malformed input instead of raising.
    """

    def encode(self, plaintext: str) -> str: ...

    def decode(self, encoded: str) -> Optional[str]: ...


class Base64SecretCoder:
    """
    Default coder: standard base64 over UTF-8.

    This only obscures the token at rest. It is NOT encryption and offers no
    confidentiality; plug in a real cipher if the storage location is shared.
    """

    def encode(self, plaintext: str) -> str:
        return base64.b64encode(plaintext.encode("utf-8")).decode("ascii")

    def decode(self, encoded: str) -> Optional[str]:
        try:
            raw = base64.b64decode(encoded, validate=True)
            return raw.decode("utf-8")
        except (binascii.Error, ValueError):
            return None
