"""Ordered list of announcement clips."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional
from urllib.parse import unquote, urlparse

_logger = logging.getLogger("catalog")


def derive_track_name(pathname: str) -> str:
    """``announcements/announcement_1717.mp3`` -> ``announcement_1717``."""
    if "://" in pathname:
        pathname = urlparse(pathname).path
    return PurePosixPath(unquote(pathname)).stem


@dataclass(frozen=True)
class Track:
    name: str
    url: str
    id: str
    uploaded_at: Optional[str] = None
    size: Optional[int] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Optional["Track"]:
        """Build a track from a cached or listed entry; None if it has no URL."""
        url = raw.get("url")
        if not isinstance(url, str) or not url:
            return None
        track_id = raw.get("id") or raw.get("pathname") or url
        name = raw.get("name") or derive_track_name(str(track_id))
        size = raw.get("size")
        return cls(
            name=str(name),
            url=url,
            id=str(track_id),
            uploaded_at=raw.get("uploaded_at") or raw.get("uploadedAt"),
            size=int(size) if isinstance(size, (int, float)) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TrackCatalog:
    """Tracks in play order; ``id`` is unique within the catalog."""

    def __init__(self, tracks: Iterable[Track] = ()):
        self._tracks: List[Track] = []
        self.replace(tracks)

    def replace(self, tracks: Iterable[Track]) -> int:
        seen = set()
        unique: List[Track] = []
        for track in tracks:
            if track.id in seen:
                _logger.debug("Dropping duplicate track %s", track.id)
                continue
            seen.add(track.id)
            unique.append(track)
        self._tracks = unique
        return len(unique)

    def remove_at(self, index: int) -> Track:
        if not 0 <= index < len(self._tracks):
            raise IndexError(f"track index {index} out of range")
        return self._tracks.pop(index)

    def index_of(self, track_id: str) -> Optional[int]:
        for position, track in enumerate(self._tracks):
            if track.id == track_id or track.url == track_id:
                return position
        return None

    def to_list(self) -> List[Dict[str, Any]]:
        return [track.to_dict() for track in self._tracks]

    def __len__(self) -> int:
        return len(self._tracks)

    def __getitem__(self, index: int) -> Track:
        return self._tracks[index]

    def __iter__(self) -> Iterator[Track]:
        return iter(list(self._tracks))

    def __bool__(self) -> bool:
        return bool(self._tracks)
