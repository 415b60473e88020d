"""
Client for the upstream content index API.

Upstream indexes are untrusted. Any transport failure becomes
UpstreamUnavailable; any response that is not a JSON object carrying the
success code becomes UpstreamInvalid.
"""

from typing import Any, Dict, List, Optional

import requests

from discovery.constants import UPSTREAM_SUCCESS_CODE
from discovery.models import Category, UpstreamItem, UpstreamListing
from util.constants import HTTP_TIMEOUT_SECONDS, HTTP_USER_AGENT
from util.errors import UpstreamInvalid, UpstreamUnavailable
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def _parse_total(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class UpstreamClient:
    """Talks to one or more upstream indexes over HTTP."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = HTTP_TIMEOUT_SECONDS):
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": HTTP_USER_AGENT})
        self.timeout = timeout

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"Request to {url} failed: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamInvalid(f"Response from {url} is not JSON") from e

        if not isinstance(data, dict):
            raise UpstreamInvalid(f"Response from {url} is not an object")
        return data

    def _check_status(self, data: Dict[str, Any], url: str) -> int:
        status = _parse_total(data.get("code"))
        if status != UPSTREAM_SUCCESS_CODE:
            raise UpstreamInvalid(f"Upstream {url} returned code {data.get('code')!r}")
        return status

    def list_items(self, endpoint: str, page: int = 1, limit: int = 1, category: Optional[str] = None) -> UpstreamListing:
        """List items from an index. The total is only a hint."""
        params: Dict[str, Any] = {"page": page, "limit": limit}
        if category:
            params["t"] = category

        data = self._get_json(endpoint, params)
        status = self._check_status(data, endpoint)
        items = data.get("list")
        return UpstreamListing(
            status=status,
            total=_parse_total(data.get("total")),
            items=items if isinstance(items, list) else [],
        )

    def get_by_id(self, endpoint: str, candidate_id: str) -> UpstreamItem:
        """Fetch the full record of one item. item is None when the list is empty."""
        data = self._get_json(endpoint, {"ids": candidate_id})
        status = self._check_status(data, endpoint)
        items = data.get("list")
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            return UpstreamItem(status=status, item=None)
        return UpstreamItem(status=status, item=items[0])

    def list_categories(self, endpoint: str) -> List[Category]:
        """Category list from the index's ac=list variant of the endpoint."""
        category_url = endpoint.replace("ac=detail", "ac=list")
        data = self._get_json(category_url)

        classes = data.get("class")
        if not isinstance(classes, list):
            raise UpstreamInvalid(f"No category list in response from {category_url}")

        categories = []
        for item in classes:
            if not isinstance(item, dict):
                continue
            name = str(item.get("type_name", "") or "").strip()
            if not name:
                continue
            categories.append(Category(id=str(item.get("type_id", "")), name=name))
        logger.info(f"Fetched {len(categories)} categories from {category_url}")
        return categories
