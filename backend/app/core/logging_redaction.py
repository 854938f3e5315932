"""Redact sensitive data from structured logs. Never log the storage secret or URL signatures."""
import re
from typing import Any

# Keys (case-insensitive) that must be redacted in dicts
REDACT_KEYS = frozenset({
    "password", "token", "secret", "authorization", "cookie",
    "md5", "signature", "api_key",
})

_SIGNED_QUERY_RE = re.compile(r"([?&]md5=)[^&]*")


def _redact_key(key: str) -> bool:
    k = key.lower()
    return any(r in k for r in REDACT_KEYS)


def redact_for_log(obj: Any) -> Any:
    """Return a copy of obj safe for logging: sensitive keys replaced with '[REDACTED]'."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return {
            k: "[REDACTED]" if _redact_key(k) else redact_for_log(v)
            for k, v in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return type(obj)(redact_for_log(x) for x in obj)
    if isinstance(obj, str):
        return redact_signed_url(obj)
    return obj


def redact_signed_url(url: str) -> str:
    """Mask the md5 query value of a signed URL; other strings pass through."""
    return _SIGNED_QUERY_RE.sub(r"\1[REDACTED]", url)
