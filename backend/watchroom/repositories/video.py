"""Repository for the videos table.

Also contains YouTube helpers shared by the catalog and the HTTP layer:
  - canonical_url(): reduce a YouTube link to its 11-char id, the catalog key
  - fetch_yt_info(): YouTube Data API v3 lookup for missing titles
"""

from __future__ import annotations

import logging
import re

import aiohttp
import asyncpg

from watchroom.database import acquire
from watchroom.models.video import Video, VideoMetadata

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# YouTube utilities
# ---------------------------------------------------------------------------

_YT_RE = re.compile(
    r"^(?:https?://)?(?:www\.|m\.)?(?:"
    r"youtube\.com/watch\?(?:[^#]*&)?v=|"
    r"youtu\.be/|"
    r"youtube\.com/shorts/|"
    r"youtube\.com/embed/"
    r")([A-Za-z0-9_-]{11})"
    # the id must end there, not run into a longer path segment
    r"(?=$|[?&#/])"
)


def extract_youtube_id(text: str) -> str | None:
    """Extract the 11-char YouTube video id from a URL string, or None."""
    m = _YT_RE.match(text.strip())
    return m.group(1) if m else None


def canonical_url(url: str) -> str:
    """Catalog key for a url: the YouTube id when there is one, else the stripped url."""
    url = url.strip()
    if not url:
        raise ValueError("Video url must not be empty")
    return extract_youtube_id(url) or url


async def fetch_yt_info(
    video_id: str,
    api_key: str,
    session: aiohttp.ClientSession | None = None,
) -> tuple[str | None, str | None, str | None]:
    """Fetch (title, channel title, description) via YouTube Data API v3.

    If `session` is None a one-shot session is created and closed.
    All three are None on any failure or when no key is configured.
    """
    if not api_key:
        return None, None, None

    url = "https://www.googleapis.com/youtube/v3/videos"
    params = {"part": "snippet", "id": video_id, "key": api_key}
    _own_session = session is None
    _session: aiohttp.ClientSession = session or aiohttp.ClientSession()
    try:
        async with _session.get(
            url, params=params, timeout=aiohttp.ClientTimeout(total=5)
        ) as resp:
            if resp.status != 200:
                logger.warning(f"[YouTube API] Unexpected status {resp.status} for {video_id}")
                return None, None, None
            data = await resp.json()
            items = data.get("items", [])
            if not items:
                return None, None, None  # not found / private
            snippet = items[0].get("snippet", {})
            return snippet.get("title"), snippet.get("channelTitle"), snippet.get("description")
    except (aiohttp.ClientError, TimeoutError) as exc:
        logger.warning(f"[YouTube API] fetch_yt_info failed for {video_id}: {exc}")
        return None, None, None
    finally:
        if _own_session:
            await _session.close()


# ---------------------------------------------------------------------------
# VideoRepository
# ---------------------------------------------------------------------------

_VIDEO_COLUMNS = "id, video_name, creator, url, description, created_at"


class VideoRepository:
    """Pure SQL operations for the videos table."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def find_or_create(self, metadata: VideoMetadata, *, overwrite: bool = False) -> Video:
        """Insert the video unless its url exists; return the single canonical row.

        One statement, so concurrent registrations of the same url converge.
        With ``overwrite`` the stored metadata is replaced by ``metadata``.
        """
        if overwrite:
            conflict = (
                "DO UPDATE SET video_name = EXCLUDED.video_name, "
                "creator = EXCLUDED.creator, description = EXCLUDED.description"
            )
        else:
            conflict = "DO UPDATE SET url = EXCLUDED.url"
        async with acquire(self.pool) as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO videos (video_name, creator, url, description)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (url) {conflict}
                RETURNING {_VIDEO_COLUMNS}
                """,
                metadata.title,
                metadata.creator,
                canonical_url(metadata.url),
                metadata.description,
            )
            return Video(**dict(row))

    async def get(self, video_id: int) -> Video | None:
        async with acquire(self.pool) as conn:
            row = await conn.fetchrow(
                f"SELECT {_VIDEO_COLUMNS} FROM videos WHERE id = $1",
                video_id,
            )
            return Video(**dict(row)) if row else None

    async def list_all(self) -> list[Video]:
        """Whole catalog in insertion order."""
        async with acquire(self.pool) as conn:
            rows = await conn.fetch(f"SELECT {_VIDEO_COLUMNS} FROM videos ORDER BY id ASC")
            return [Video(**dict(row)) for row in rows]
