"""
Data models for the content discovery system.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SourceType(Enum):
    VIDEO = "video"
    NOVEL = "novel"
    IMAGE = "image"


class SampleOutcome(Enum):
    FOUND = "found"
    EXHAUSTED = "exhausted"


@dataclass
class Category:
    """A category offered by a content source."""
    id: str
    name: str


@dataclass
class ContentSource:
    """A configured upstream content index."""
    id: int
    name: str
    type: SourceType
    api_url: str
    priority: int = 0
    active: bool = True
    parse_url: str = ""
    categories: List[Category] = field(default_factory=list)


@dataclass
class NegativeRecord:
    """A (source, candidate) pair known to be invalid."""
    source_id: int
    candidate_id: str
    reason: str
    recorded_at: int = 0
    id: Optional[int] = None


@dataclass
class RawContentRecord:
    """One content item as returned by the upstream index."""
    content_id: str
    title: str
    play_url: str
    cover: str = ""
    actor: str = ""
    director: str = ""
    category: str = ""
    pubdate: str = ""
    description: str = ""
    source_id: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class UpstreamListing:
    """Response of the upstream listing endpoint."""
    status: int
    total: Optional[int]
    items: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class UpstreamItem:
    """Response of the upstream by-id endpoint."""
    status: int
    item: Optional[Dict[str, Any]] = None


@dataclass
class SampleHistory:
    """Bookkeeping for one sampling call."""
    source_id: int
    category: Optional[str]
    attempts: int
    cache_hits: int
    outcome: SampleOutcome
    content_id: Optional[str] = None
    sampled_at: int = 0
    id: Optional[int] = None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def raw_record_from_upstream(item: Dict[str, Any], source_id: Optional[int] = None) -> RawContentRecord:
    """Map an upstream item dict (vod_* keys) onto a RawContentRecord."""
    return RawContentRecord(
        content_id=_text(item.get("vod_id")),
        title=_text(item.get("vod_name")),
        play_url=_text(item.get("vod_play_url")),
        cover=_text(item.get("vod_pic")),
        actor=_text(item.get("vod_actor")),
        director=_text(item.get("vod_director")),
        category=_text(item.get("type_name")),
        pubdate=_text(item.get("vod_pubdate") or item.get("vod_time")),
        description=_text(item.get("vod_content") or item.get("vod_blurb")),
        source_id=source_id,
        raw=item,
    )
