from __future__ import annotations

import logging

import pytest

import app
import settings
from core.models import Author


@pytest.fixture
def cli(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DB_PATH", str(tmp_path / "cli.db"))

    async def fake_lookup(handle: str):
        if handle.lstrip("@") == "ghost":
            return None
        return Author(user_id="10", name="Alice", screen_name=handle.lstrip("@"))

    monkeypatch.setattr(app, "_lookup_author", fake_lookup)
    return app.main


def test_subscribe_list_unsubscribe(cli, capsys) -> None:
    cli(["subscribe", "@alice", "-100", "--flags", "ping,notext"])
    cli(["list"])
    cli(["unsubscribe", "10", "-100"])
    cli(["list"])

    out = capsys.readouterr().out.splitlines()
    assert out[0] == "Subscribed -100 to @alice (10) flags=[notext,ping]"
    assert out[1] == "1. @alice (10) -> chat -100 [notext,ping]"
    assert out[2] == "Removed subscription of -100 to 10"
    assert out[3] == "No subscriptions yet."


def test_subscribe_rejects_unknown_flags(cli) -> None:
    with pytest.raises(SystemExit, match="Unknown subscription flag"):
        cli(["subscribe", "alice", "-100", "--flags", "loud"])


def test_subscribe_unknown_user(cli) -> None:
    with pytest.raises(SystemExit, match="No Twitter user named ghost"):
        cli(["subscribe", "ghost", "-100"])


def test_redacting_formatter_masks_env_secrets(monkeypatch) -> None:
    monkeypatch.setenv("TWITTER_BEARER_TOKEN", "sekret-token")
    secrets = app._collect_redaction_values({"redact": {"enabled": True, "patterns": ["TWITTER_BEARER_TOKEN"]}})
    formatter = app._RedactingFormatter(secrets, fmt="%(message)s")
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "auth %s", ("sekret-token",), None)

    assert formatter.format(record) == "auth ***"
    assert app._collect_redaction_values({"redact": {"enabled": False, "patterns": ["X"]}}) == []


def test_show_renders_a_fetched_post(monkeypatch, capsys) -> None:
    fetched: list[str] = []

    class FakeApi:
        def __init__(self, bearer_token: str) -> None:
            assert bearer_token == "token"

        async def show_tweet(self, post_id: str):
            fetched.append(post_id)
            return {
                "id_str": post_id,
                "full_text": "hello world",
                "user": {"id_str": "10", "name": "Alice", "screen_name": "alice"},
            }

    class NoPreviews:
        def __init__(self, timeout: float) -> None:
            pass

        async def resolve(self, url: str):
            return None

    monkeypatch.setattr(app, "twitter_bearer_token", lambda: "token")
    monkeypatch.setattr(app, "TwitterApi", FakeApi)
    monkeypatch.setattr(app, "PageMetadataResolver", NoPreviews)

    app.main(["show", "42"])

    out = capsys.readouterr().out
    assert fetched == ["42"]
    assert "Alice (@alice)" in out
    assert "hello world" in out
    assert "https://twitter.com/alice/status/42" in out


def test_show_refuses_posts_that_would_not_be_relayed(monkeypatch) -> None:
    class FakeApi:
        def __init__(self, bearer_token: str) -> None:
            pass

        async def show_tweet(self, post_id: str):
            return {"id_str": post_id}

    monkeypatch.setattr(app, "twitter_bearer_token", lambda: "token")
    monkeypatch.setattr(app, "TwitterApi", FakeApi)

    with pytest.raises(SystemExit, match="Post 7 would not be relayed"):
        app.main(["show", "7"])
