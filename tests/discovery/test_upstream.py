"""Tests for the upstream content API client."""

from unittest.mock import MagicMock

import pytest
import requests

from discovery.upstream import UpstreamClient
from util.errors import UpstreamInvalid, UpstreamUnavailable

ENDPOINT = "https://example.com/api.php/provide/vod/?ac=detail"


def _client_returning(payload=None, json_error=None, get_error=None):
    session = MagicMock()
    session.headers = {}
    response = MagicMock()
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    session.get.return_value = response
    if get_error is not None:
        session.get.side_effect = get_error
    return UpstreamClient(session=session), session


class TestListItems:
    def test_parses_listing(self):
        client, session = _client_returning({"code": 1, "total": "321", "list": [{"vod_id": 1}]})

        listing = client.list_items(ENDPOINT, page=1, limit=1)

        assert listing.status == 1
        assert listing.total == 321
        assert listing.items == [{"vod_id": 1}]
        _, kwargs = session.get.call_args
        assert kwargs["params"] == {"page": 1, "limit": 1}

    def test_passes_category(self):
        client, session = _client_returning({"code": 1, "total": 5, "list": []})

        client.list_items(ENDPOINT, category="13")

        _, kwargs = session.get.call_args
        assert kwargs["params"]["t"] == "13"

    def test_missing_total_is_none(self):
        client, _ = _client_returning({"code": 1, "list": []})

        assert client.list_items(ENDPOINT).total is None

    def test_sets_user_agent(self):
        client, session = _client_returning({"code": 1})

        assert "ContentManager" in session.headers["User-Agent"]

    def test_error_code_is_invalid(self):
        client, _ = _client_returning({"code": 0, "msg": "nope"})

        with pytest.raises(UpstreamInvalid):
            client.list_items(ENDPOINT)

    def test_network_failure_is_unavailable(self):
        client, _ = _client_returning(get_error=requests.ConnectionError("refused"))

        with pytest.raises(UpstreamUnavailable):
            client.list_items(ENDPOINT)

    def test_timeout_is_unavailable(self):
        client, _ = _client_returning(get_error=requests.Timeout("slow"))

        with pytest.raises(UpstreamUnavailable):
            client.list_items(ENDPOINT)

    def test_non_json_is_invalid(self):
        client, _ = _client_returning(json_error=ValueError("not json"))

        with pytest.raises(UpstreamInvalid):
            client.list_items(ENDPOINT)

    def test_non_object_is_invalid(self):
        client, _ = _client_returning(["not", "an", "object"])

        with pytest.raises(UpstreamInvalid):
            client.list_items(ENDPOINT)


class TestGetById:
    def test_returns_first_item(self):
        client, session = _client_returning({"code": 1, "list": [{"vod_id": 9, "vod_name": "A"}]})

        response = client.get_by_id(ENDPOINT, "9")

        assert response.item == {"vod_id": 9, "vod_name": "A"}
        _, kwargs = session.get.call_args
        assert kwargs["params"] == {"ids": "9"}

    def test_empty_list_gives_no_item(self):
        client, _ = _client_returning({"code": 1, "list": []})

        assert client.get_by_id(ENDPOINT, "9").item is None

    def test_malformed_list_gives_no_item(self):
        client, _ = _client_returning({"code": 1, "list": "garbage"})

        assert client.get_by_id(ENDPOINT, "9").item is None


class TestListCategories:
    def test_uses_list_endpoint(self):
        client, session = _client_returning({
            "code": 1,
            "class": [
                {"type_id": 1, "type_name": "Movies"},
                {"type_id": 2, "type_name": ""},
                "junk",
            ],
        })

        categories = client.list_categories(ENDPOINT)

        args, _ = session.get.call_args
        assert "ac=list" in args[0]
        assert len(categories) == 1
        assert categories[0].id == "1"
        assert categories[0].name == "Movies"

    def test_missing_class_is_invalid(self):
        client, _ = _client_returning({"code": 1})

        with pytest.raises(UpstreamInvalid):
            client.list_categories(ENDPOINT)
