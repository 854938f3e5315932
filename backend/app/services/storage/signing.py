"""Signed download URLs for filesystem storage.

A signed URL looks like

    {base}/{bucket}/{folder}/{key}/{filename}?md5={sig}&expires={ts}[&shardkey={shard}]&filename={filename}

where ``sig`` is the URL-safe base64 MD5 of ``expires + unquoted URI path + secret``.
The serving proxy (e.g. nginx secure_link) recomputes the same digest; the format
must stay bit-exact.

``expires`` is quantized to windows anchored at the object's creation time: every
call whose "now" falls in the same window returns the same URL.
"""
import base64
import hashlib
import hmac
import logging
import math
import posixpath
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import quote, unquote

from app.core.config import Settings
from app.core.constants import DEFAULT_URL_EXPIRES_SECONDS, SHARD_KEY_NAME, UrlType
from app.core.context import RequestContext
from app.services.storage.paths import normalize_key

logger = logging.getLogger("app.storage.signing")

# encodeURIComponent leaves these unescaped in addition to alphanumerics and "_.-~"
_URI_COMPONENT_SAFE = "!'()*"


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def _window_or_default(name: str, seconds: int) -> int:
    if seconds < 0:
        raise ValueError(f"{name} must not be negative")
    if seconds == 0:
        logger.warning("%s is 0; signed URLs fall back to %ss validity", name, DEFAULT_URL_EXPIRES_SECONDS)
        return DEFAULT_URL_EXPIRES_SECONDS
    return seconds


@dataclass(frozen=True)
class SignedUrlConfig:
    """Immutable signing configuration; validated once at construction."""

    bucket_name: str
    storage_folder_name: str
    secret: str
    url_expires_seconds: int
    session_expires_seconds: int
    external_host: str = ""

    def __post_init__(self) -> None:
        if not self.secret:
            raise ValueError("Signed URLs require storage_secret_string to be set")
        if not self.bucket_name or not self.storage_folder_name:
            raise ValueError("Signed URLs require bucket_name and storage_folder_name to be set")
        if self.url_expires_seconds <= 0 or self.session_expires_seconds <= 0:
            raise ValueError("Signed URL validity windows must be positive")

    @classmethod
    def from_settings(cls, settings: Settings) -> "SignedUrlConfig":
        return cls(
            bucket_name=settings.bucket_name,
            storage_folder_name=settings.storage_folder_name,
            secret=settings.storage_secret_string,
            url_expires_seconds=_window_or_default("storage_url_expires", settings.storage_url_expires),
            session_expires_seconds=_window_or_default(
                "session_absolute_expire_ms",
                math.ceil(settings.session_absolute_expire_ms / 1000),
            ),
            external_host=settings.storage_external_host,
        )


def to_millis(value: datetime | int) -> int:
    """Epoch milliseconds; naive datetimes are taken as UTC, ints as epoch ms already."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    return int(value)


def compute_expires(creation_ms: int, now_ms: int, window_seconds: int) -> int:
    """Expiry in epoch seconds: next window boundary from creation at or after now, plus one window."""
    window_ms = window_seconds * 1000
    elapsed_windows = -(-abs(now_ms - creation_ms) // window_ms)
    boundary_ms = creation_ms + elapsed_windows * window_ms
    return -(-boundary_ms // 1000) + window_seconds


def compute_signature(expires: int, uri: str, secret: str) -> str:
    digest = hashlib.md5(f"{expires}{unquote(uri)}{secret}".encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def display_filename(storage_key: str, filename: str | None = None) -> str:
    if filename:
        # Pre-escape "/" so a proxy that decodes %2F cannot split the name into path segments
        return encode_uri_component(filename.replace("/", "%2f"))
    return posixpath.basename(storage_key)


def verify_signed_url(uri: str, expires: str | int, md5: str, secret: str, now: float | None = None) -> bool:
    """Verifier side: True if md5 matches uri/expires/secret and expires is not in the past."""
    try:
        expires_ts = int(expires)
    except (TypeError, ValueError):
        return False
    expected = compute_signature(expires_ts, uri, secret)
    if not hmac.compare_digest(expected, md5 or ""):
        return False
    return (time.time() if now is None else now) <= expires_ts


class SignedUrlIssuer:
    """Builds signed URLs from a SignedUrlConfig. Pure: no I/O, no randomness."""

    def __init__(self, config: SignedUrlConfig) -> None:
        self._config = config

    @property
    def config(self) -> SignedUrlConfig:
        return self._config

    def window_seconds(self, url_type: UrlType) -> int:
        if url_type == UrlType.SESSION:
            return self._config.session_expires_seconds
        return self._config.url_expires_seconds

    def canonical_uri(self, storage_key: str, filename: str | None = None) -> str:
        key = normalize_key(storage_key)
        name = display_filename(key, filename)
        return f"/{self._config.bucket_name}/{self._config.storage_folder_name}/{key}/{name}"

    def sign(
        self,
        ctx: RequestContext,
        base_url: str,
        storage_key: str,
        url_type: UrlType,
        filename: str | None = None,
        creation_date: datetime | int | None = None,
        now: datetime | int | None = None,
    ) -> str:
        url_type = UrlType(url_type)
        uri = self.canonical_uri(storage_key, filename)
        name = uri.rsplit("/", 1)[1]

        now_ms = to_millis(now) if now is not None else int(time.time() * 1000)
        creation_ms = to_millis(creation_date) if creation_date is not None else now_ms
        window = self.window_seconds(url_type)
        expires = compute_expires(creation_ms, now_ms, window)
        md5 = compute_signature(expires, uri, self._config.secret)

        # RFC 1123 hostnames disallow "_"
        base = (self._config.external_host or base_url).rstrip("/").replace("_", "%5f")
        url = f"{base}{uri}?md5={encode_uri_component(md5)}&expires={expires}"
        if ctx.shard_key:
            url += f"&{SHARD_KEY_NAME}={encode_uri_component(ctx.shard_key)}"
        url += f"&filename={name}"
        return url
