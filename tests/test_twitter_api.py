from __future__ import annotations

import asyncio

import httpx
import pytest

from adapters.twitter_api import TwitterApi, TwitterApiError, get_error


def test_get_error_reads_first_error() -> None:
    body = {"errors": [{"code": 17, "message": "No user matches for specified terms."}, {"code": 1}]}

    assert get_error(body) == {"code": 17, "message": "No user matches for specified terms."}
    assert get_error({}) == {"code": None, "message": None}
    assert get_error(None) == {"code": None, "message": None}


def _api(handler) -> TwitterApi:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TwitterApi("token", base_url="https://api.example.com/1.1/", client=client)


def test_user_lookup_posts_screen_names() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=[{"id_str": "10", "screen_name": "alice"}])

    users = asyncio.run(_api(handler).user_lookup(["@alice", "bob"]))

    assert users == [{"id_str": "10", "screen_name": "alice"}]
    assert str(requests[0].url) == "https://api.example.com/1.1/users/lookup.json"
    assert requests[0].content == b"screen_name=alice%2Cbob"
    assert requests[0].headers["authorization"] == "Bearer token"


def test_show_tweet_requests_extended_mode() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["tweet_mode"] == "extended"
        assert request.url.path == "/1.1/statuses/show/99.json"
        return httpx.Response(200, json={"id_str": "99"})

    assert asyncio.run(_api(handler).show_tweet("99")) == {"id_str": "99"}


def test_errors_raise_with_api_code() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"errors": [{"code": 17, "message": "No user matches"}]})

    with pytest.raises(TwitterApiError) as excinfo:
        asyncio.run(_api(handler).user_lookup(["ghost"]))

    assert excinfo.value.status == 404
    assert excinfo.value.code == 17
