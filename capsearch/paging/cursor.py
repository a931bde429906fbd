"""
Cursor state and the continuation token codec.

A continuation token carries, for one (keyword, filters) query, the
exact fetch offset at which each visited page ended. Sequential
navigation reads the entry of the previous page and continues from
there without gaps or duplicates; pages with no entry fall back to a
calculated offset.

Token layout, outermost first:

    urlsafe-base64 (no padding)
      zlib
        16-byte HMAC-SHA256 tag || msgpack([version, fingerprint, [[page, offset], ...]])

Decoding never raises. Anything that does not verify comes back as an
empty CursorState.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import zlib
from dataclasses import dataclass, field
from typing import Mapping, Optional

import msgpack

from capsearch.search.candidate_source import SearchFilters

logger = logging.getLogger(__name__)

_TAG_SIZE = 16

# Upper bound on inflated token payloads
_MAX_PAYLOAD_BYTES = 64 * 1024


def query_fingerprint(keyword: str, filters: SearchFilters) -> str:
    """Hash of the normalized keyword and set filters."""
    blob = json.dumps(
        {"keyword": keyword.strip().lower(), "filters": filters.as_dict()},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()[:16]


@dataclass(frozen=True)
class CursorState:
    """Offsets reached per page for a single query fingerprint."""

    fingerprint: str = ""
    offsets: Mapping[int, int] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.offsets

    def offset_after(self, page: int) -> Optional[int]:
        """Fetch offset at which *page* ended, if it was assembled in this session."""
        return self.offsets.get(page)

    def with_offset(self, page: int, offset: int) -> "CursorState":
        offsets = dict(self.offsets)
        offsets[page] = offset
        return CursorState(fingerprint=self.fingerprint, offsets=offsets)

    def for_query(self, fingerprint: str) -> "CursorState":
        """This state if it was built for *fingerprint*, otherwise a fresh one."""
        if self.fingerprint == fingerprint:
            return self
        if not self.is_empty:
            logger.debug("Cursor fingerprint %s does not match %s; discarding", self.fingerprint, fingerprint)
        return CursorState(fingerprint=fingerprint)


class TokenCodec:
    """Signs, compresses and encodes CursorState, and reverses it."""

    def __init__(self, secret_key: str | bytes, version: int = 1, max_page: int = 1000) -> None:
        if not secret_key:
            raise ValueError("Token secret key must not be empty")
        self._key = secret_key.encode("utf-8") if isinstance(secret_key, str) else secret_key
        self._version = version
        self._max_page = max_page

    def _tag(self, payload: bytes) -> bytes:
        return hmac.new(self._key, payload, hashlib.sha256).digest()[:_TAG_SIZE]

    def encode(self, state: CursorState) -> str:
        entries = [[page, offset] for page, offset in sorted(state.offsets.items())]
        payload = msgpack.packb([self._version, state.fingerprint, entries], use_bin_type=True)
        blob = zlib.compress(self._tag(payload) + payload, 9)
        return base64.urlsafe_b64encode(blob).rstrip(b"=").decode("ascii")

    def decode(self, token: str | None) -> CursorState:
        if not token:
            return CursorState()
        try:
            return self._decode(token)
        except Exception as exc:
            logger.debug("Rejected continuation token: %s", exc)
            return CursorState()

    def _decode(self, token: str) -> CursorState:
        raw = base64.urlsafe_b64decode(token.encode("ascii") + b"=" * (-len(token) % 4))

        inflater = zlib.decompressobj()
        blob = inflater.decompress(raw, _MAX_PAYLOAD_BYTES)
        if inflater.unconsumed_tail or not inflater.eof:
            raise ValueError("truncated or oversized token")

        tag, payload = blob[:_TAG_SIZE], blob[_TAG_SIZE:]
        if not hmac.compare_digest(tag, self._tag(payload)):
            raise ValueError("signature mismatch")

        version, fingerprint, entries = msgpack.unpackb(payload, raw=False)
        if version != self._version:
            raise ValueError(f"unsupported token version {version!r}")
        if not isinstance(fingerprint, str) or len(entries) > self._max_page:
            raise ValueError("malformed token body")

        offsets: dict[int, int] = {}
        for page, offset in entries:
            if type(page) is not int or type(offset) is not int:
                raise ValueError("non-integer cursor entry")
            if not 1 <= page <= self._max_page or offset < 0:
                raise ValueError(f"cursor entry out of range: {page}={offset}")
            offsets[page] = offset
        return CursorState(fingerprint=fingerprint, offsets=offsets)
