"""
Security utilities for the MySQL provider.

Keeps passwords and tokens out of log lines and error messages.
"""

import re
import threading
from collections import Counter
from typing import Iterable, List

_MASK = "****"

# Registered values are replaced wherever they appear in rendered text.
# Counts let several owners register the same value independently.
_registered_secrets: Counter = Counter()
_lock = threading.Lock()

_PATTERNS = [
    # user:password@host in DSNs and proxy URLs
    re.compile(r"(?P<prefix>://[^:/@\s]+:)(?P<secret>[^@\s]+)(?P<suffix>@)"),
    # presigned RDS IAM tokens carry the signature in the query string
    re.compile(r"(?P<prefix>X-Amz-Signature=)(?P<secret>[0-9a-fA-F]+)(?P<suffix>)"),
    re.compile(r"(?P<prefix>X-Amz-Security-Token=)(?P<secret>[^&\s]+)(?P<suffix>)"),
    # JWT bearer tokens (Azure AD, OAuth2)
    re.compile(r"(?P<prefix>)(?P<secret>eyJ[\w-]+\.[\w-]+\.[\w-]+)(?P<suffix>)"),
    re.compile(r"(?P<prefix>)(?P<secret>ya29\.[\w.-]+)(?P<suffix>)"),
    re.compile(r"(?P<prefix>(?:password|passwd|secret|token)\s*[=:]\s*)(?P<secret>\S+)(?P<suffix>)", re.IGNORECASE),
]


def register_secret(value: str) -> bool:
    """
    Register a secret so it is masked in every later message.

    Args:
        value: Secret text. Short values are ignored to avoid masking noise.

    Returns:
        True if the value was registered
    """
    if not value or len(value) < 4:
        return False
    with _lock:
        _registered_secrets[value] += 1
    return True


def forget_secrets(values: Iterable[str]) -> None:
    """Release one registration of each value; a value stays masked while others hold it."""
    with _lock:
        for value in values:
            if _registered_secrets[value] <= 1:
                del _registered_secrets[value]
            else:
                _registered_secrets[value] -= 1


class SecretScope:
    """
    Secrets registered on behalf of one owner and released together.

    Example:
        scope = SecretScope()
        scope.register(password)
        ...
        scope.release()
    """

    def __init__(self):
        self._values: List[str] = []
        self._lock = threading.Lock()

    def register(self, value: str) -> None:
        if register_secret(value):
            with self._lock:
                self._values.append(value)

    def release(self) -> None:
        with self._lock:
            values, self._values = self._values, []
        forget_secrets(values)


def mask_secrets(text: str) -> str:
    """
    Mask passwords, tokens and registered secrets in a message.

    Args:
        text: Text to sanitize

    Returns:
        The text with secret material replaced by a fixed mask
    """
    if not text:
        return text

    with _lock:
        secrets = sorted(_registered_secrets, key=len, reverse=True)
    for secret in secrets:
        text = text.replace(secret, _MASK)

    for pattern in _PATTERNS:
        text = pattern.sub(lambda m: f"{m.group('prefix')}{_MASK}{m.group('suffix')}", text)
    return text
