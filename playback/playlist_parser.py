"""
Parser for the compact playlist grammar used by upstream indexes.

    playlist := episode ('#' episode)*
    episode  := source ('$$$' source)*
    source   := label '$' url

Parsing never raises. Sources without a url are dropped first, then
episodes left without sources, and only then are the fallback labels
("Line N") numbered, so numbering always counts surviving entries.

An episode is titled after its first source label, which is the generated
"Line 1" when that source has none. Everything after the first '$' of a
source belongs to its url.
"""

from typing import List, Optional, Tuple

from playback.constants import (
    EPISODE_DELIMITER,
    EPISODE_TITLE_TEMPLATE,
    LABEL_DELIMITER,
    LINE_LABEL_TEMPLATE,
    SOURCE_DELIMITER,
)
from playback.models import Episode, PlaySource
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def _split_source(token: str) -> Tuple[str, str]:
    """Split a source token into (label, url). A token without '$' has no url."""
    label, sep, url = token.partition(LABEL_DELIMITER)
    if not sep:
        return label.strip(), ""
    return label.strip(), url.strip()


def _parse_sources(episode_token: str) -> List[Tuple[str, str]]:
    """Surviving (raw_label, url) pairs of one episode, in order."""
    pairs = []
    for source_token in episode_token.split(SOURCE_DELIMITER):
        if not source_token.strip():
            continue
        label, url = _split_source(source_token)
        if not url:
            continue
        pairs.append((label, url))
    return pairs


def parse(raw: Optional[str]) -> List[Episode]:
    """
    Decode a raw playlist string into episodes.

    Args:
        raw: The delimited playlist string (vod_play_url upstream).

    Returns:
        Ordered episodes. Empty when nothing in the string is playable.
    """
    if not isinstance(raw, str) or not raw.strip():
        return []

    surviving = []
    for episode_token in raw.split(EPISODE_DELIMITER):
        pairs = _parse_sources(episode_token)
        if pairs:
            surviving.append(pairs)

    episodes = []
    for episode_number, pairs in enumerate(surviving, start=1):
        sources = tuple(
            PlaySource(label=label or LINE_LABEL_TEMPLATE.format(n=n), url=url)
            for n, (label, url) in enumerate(pairs, start=1)
        )
        title = sources[0].label or EPISODE_TITLE_TEMPLATE.format(n=episode_number)
        episodes.append(Episode(index=episode_number - 1, title=title, sources=sources))

    dropped = raw.count(EPISODE_DELIMITER) + 1 - len(episodes)
    if dropped:
        logger.debug(f"Dropped {dropped} unplayable episode(s) while parsing playlist")
    return episodes
