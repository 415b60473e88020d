"""
Content source configuration.

Sources are loaded from a YAML file (discovery/data/sources.yaml by
default, overridable with the DISCOVERY_SOURCES_PATH environment variable).
"""

import os
from pathlib import Path
from typing import List, Optional

import yaml

from discovery.constants import SOURCES_CONFIG_PATH
from discovery.models import Category, ContentSource, SourceType
from discovery.upstream import UpstreamClient
from util.constants import SOURCES_PATH_ENV_VAR
from util.errors import UpstreamError
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def _default_config_path() -> Path:
    override = os.environ.get(SOURCES_PATH_ENV_VAR)
    if override:
        return Path(override)
    return SOURCES_CONFIG_PATH


def _parse_categories(raw) -> List[Category]:
    if not isinstance(raw, list):
        return []
    categories = []
    for item in raw:
        if isinstance(item, dict) and item.get("name"):
            categories.append(Category(id=str(item.get("id", item["name"])), name=str(item["name"])))
    return categories


def load_sources(config_path: Optional[Path] = None) -> List[ContentSource]:
    """Load every configured content source, active or not."""
    if config_path is None:
        config_path = _default_config_path()

    if not config_path.exists():
        logger.warning(f"Source config not found at {config_path}")
        return []

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    sources = []
    for source_data in data.get("sources", []):
        try:
            sources.append(ContentSource(
                id=int(source_data["id"]),
                name=source_data["name"],
                type=SourceType(source_data.get("type", "video")),
                api_url=source_data["api_url"],
                priority=int(source_data.get("priority", 0)),
                active=bool(source_data.get("active", True)),
                parse_url=source_data.get("parse_url", "") or "",
                categories=_parse_categories(source_data.get("categories")),
            ))
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping malformed source entry {source_data}: {e}")
    return sources


def list_sources(source_type: Optional[SourceType] = None, config_path: Optional[Path] = None) -> List[ContentSource]:
    """Active sources, highest priority first, then by id."""
    sources = [s for s in load_sources(config_path) if s.active]
    if source_type is not None:
        sources = [s for s in sources if s.type == source_type]
    return sorted(sources, key=lambda s: (-s.priority, s.id))


def get_source(source_id: int, config_path: Optional[Path] = None) -> Optional[ContentSource]:
    """Get an active source by id."""
    for source in list_sources(config_path=config_path):
        if source.id == source_id:
            return source
    return None


def get_categories(source: ContentSource, client: Optional[UpstreamClient] = None) -> List[Category]:
    """Categories for a source.

    Preset categories from the configuration win; otherwise the upstream
    listing endpoint is asked. Upstream failures give an empty list.
    """
    if source.categories:
        return list(source.categories)

    if client is None:
        client = UpstreamClient()
    try:
        return client.list_categories(source.api_url)
    except UpstreamError as e:
        logger.error(f"Error fetching categories for source {source.id}: {e}")
        return []
