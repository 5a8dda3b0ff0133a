"""
Persists a single bearer token with an absolute expiry instant.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Optional, Union

from .preferences import PreferencesFile
from .secret_coder import Base64SecretCoder, SecretCoder

log = logging.getLogger(__name__)

Clock = Callable[[], float]


class CredentialStore:
    """
    Stores one named credential as two keys in a preferences file:
    ``<namespace>`` holds the encoded token and ``<namespace>-expiration-time``
    holds the expiry as epoch seconds.
    """

    def __init__(
        self,
        preferences: Union[PreferencesFile, Path],
        namespace: str,
        secret_coder: Optional[SecretCoder] = None,
        clock: Clock = time.time,
    ):
        """
        Initializes the credential store.

        Args:
            preferences: The backing preferences file (or a path to one).
            namespace: Key under which the credential is stored. Stores with
                different namespaces can share one file.
            secret_coder: Reversible transform applied to the token at rest.
            clock: Returns the current time in epoch seconds.
        """
        if not isinstance(preferences, PreferencesFile):
            preferences = PreferencesFile(preferences)
        self._preferences = preferences
        self.namespace = namespace
        self.value_key = namespace
        self.expiry_key = f"{namespace}-expiration-time"
        self._coder = secret_coder or Base64SecretCoder()
        self._clock = clock

    @property
    def expires_at(self) -> Optional[float]:
        """The stored expiry instant, or None when missing or garbled."""
        raw = self._preferences.get(self.expiry_key)
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            return None
        return float(raw)

    def get(self) -> Optional[str]:
        """
        Returns the decoded token if one is stored and still current.

        The expiry is checked before the value is read, so an expired or
        externally cleared entry never reaches the decoder.
        """
        expires_at = self.expires_at
        if expires_at is None or self._clock() >= expires_at:
            return None

        encoded = self._preferences.get(self.value_key)
        if not isinstance(encoded, str):
            return None
        return self._coder.decode(encoded)

    def persist(self, value: str, ttl_seconds: float) -> None:
        """
        Stores ``value`` until ``now + ttl_seconds``.

        A non-positive TTL is ignored and leaves any previous credential as is.
        """
        if ttl_seconds <= 0:
            log.debug(
                f"Ignoring credential with non-positive TTL ({ttl_seconds}) "
                f"for '{self.namespace}'."
            )
            return

        expires_at = self._clock() + ttl_seconds
        self._preferences.update(
            {
                self.expiry_key: expires_at,
                self.value_key: self._coder.encode(value),
            }
        )
        log.debug(f"Stored credential for '{self.namespace}' ({ttl_seconds}s TTL).")

    def clear(self) -> None:
        """Removes both slots of this credential."""
        self._preferences.remove([self.value_key, self.expiry_key])
        log.debug(f"Cleared credential for '{self.namespace}'.")
