"""
Storage Layer.

This package handles all data persistence: the configuration file and the
TTL-bounded credential store with its pluggable secret transform.
"""

from .config_manager import ConfigManager
from .credential_store import CredentialStore
from .preferences import PreferencesFile
from .secret_coder import Base64SecretCoder, SecretCoder

__all__ = [
    "Base64SecretCoder",
    "ConfigManager",
    "CredentialStore",
    "PreferencesFile",
    "SecretCoder",
]
