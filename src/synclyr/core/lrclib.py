"""
LRCLIB API client.

Builds `/get` query URLs, performs them through an `HttpTransport` and decodes
the JSON answer into a `LyricsCandidate`. A 404 means "no match" and is not an
error; every other failure is logged and raised as `LookupFailed`.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional
from urllib.parse import quote

from .errors import LookupFailed, TransportError
from .models import LyricsCandidate
from .transport import HttpTransport

logger = logging.getLogger(__name__)

LRCLIB_BASE_URL = "https://lrclib.net/api"


def _enc(value: str) -> str:
    return quote(value, safe="")


def _str_field(obj: dict, key: str) -> Optional[str]:
    v = obj.get(key)
    return v if isinstance(v, str) else None


def _num_field(obj: dict, key: str, default: float = 0.0) -> float:
    v = obj.get(key)
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return default
    return float(v)


def build_get_url(
    artist: str,
    title: str,
    album: Optional[str] = None,
    duration: float = 0,
    *,
    base_url: str = LRCLIB_BASE_URL,
) -> str:
    url = f"{base_url.rstrip('/')}/get?artist_name={_enc(artist)}&track_name={_enc(title)}"
    if album:
        url += f"&album_name={_enc(album)}"
    if duration and duration > 0:
        url += f"&duration={int(round(duration))}"
    return url


def parse_candidate(data: Any) -> LyricsCandidate:
    """Decode an LRCLIB track object; unexpected field types fall back to defaults."""
    if not isinstance(data, dict):
        raise LookupFailed("LRCLIB response is not a JSON object")
    track_id = data.get("id")
    return LyricsCandidate(
        synced=_str_field(data, "syncedLyrics"),
        plain=_str_field(data, "plainLyrics"),
        instrumental=data.get("instrumental") is True,
        id=track_id if isinstance(track_id, int) and not isinstance(track_id, bool) else None,
        track_name=_str_field(data, "trackName"),
        artist_name=_str_field(data, "artistName"),
        album_name=_str_field(data, "albumName"),
        duration=_num_field(data, "duration"),
    )


class LrclibClient:
    """One client per worker; owns its transport."""

    def __init__(self, transport: Optional[HttpTransport] = None, base_url: str = LRCLIB_BASE_URL):
        self.transport = transport if transport is not None else HttpTransport()
        self.base_url = base_url.rstrip("/")

    def get(
        self,
        artist: str,
        title: str,
        album: Optional[str] = None,
        duration: float = 0,
    ) -> Optional[LyricsCandidate]:
        """Look up a track by its metadata.

        Returns None when LRCLIB has no match (HTTP 404).

        Raises:
            LookupFailed: transport failure, unexpected status, or malformed body.
        """
        if not artist or not title:
            raise LookupFailed("artist and track are required")

        url = build_get_url(artist, title, album, duration, base_url=self.base_url)
        try:
            resp = self.transport.get(url)
        except TransportError as e:
            raise LookupFailed(f"request failed: {e}") from e

        if resp.status_code == 404:
            logger.debug("No LRCLIB match", extra={"url": url})
            return None
        if resp.status_code != 200:
            logger.error("LRCLIB API returned HTTP %d", resp.status_code, extra={"url": url})
            raise LookupFailed(f"LRCLIB API returned HTTP {resp.status_code}")

        try:
            data = json.loads(resp.body)
        except ValueError as e:
            logger.error("failed to parse API response as JSON", extra={"url": url})
            raise LookupFailed("failed to parse API response as JSON") from e

        try:
            return parse_candidate(data)
        except LookupFailed:
            logger.error("unexpected LRCLIB response structure", extra={"url": url})
            raise

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "LrclibClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
