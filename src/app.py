"""Application entry point for the tweetrelay service."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.message_formatting import format_message, media_urls
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_bot_dispatcher import TelegramBotDispatcher
from adapters.telegram_dispatcher import TelegramClientDispatcher
from adapters.tweet_mapper import build_author, build_post
from adapters.twitter_api import TwitterApi, TwitterApiError
from adapters.twitter_stream import TwitterStream
from adapters.unfurl import PageMetadataResolver
from client import build_client, twitter_bearer_token
from core.backoff import Backoff
from core.flags import format_flags, parse_flag_string
from core.models import Destination
from core.processor import PostProcessor
from core.rendering import TweetRenderer
from core.stream_controller import ControllerState, StreamController
from get_session import authorize

NAME = "TWEETRELAY"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    # Longest first so a token containing another secret is masked whole.
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(_collect_redaction_values(config), fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/tweetrelay.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
            backupCount=int(file_cfg.get("backup_count", 5)),
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _open_storage() -> SQLiteStorage:
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    return storage


async def _watch_subscriptions(storage: SQLiteStorage, controller: StreamController) -> None:
    """Re-subscribe the stream when the follow list changes in the database."""

    interval = settings.STREAM_REFRESH_SECONDS
    if interval <= 0:
        return
    while True:
        await asyncio.sleep(interval)
        if controller.state is ControllerState.RECONNECT_PENDING:
            continue
        ids = await storage.list_followed_user_ids()
        if sorted(ids) != sorted(controller.followed_ids):
            LOGGER.info("Follow list changed (%s users), re-creating the stream", len(ids))
            controller.start(ids)


async def _serve(storage: SQLiteStorage, dispatcher) -> None:
    """Wire the core pipeline to the stream and run until cancelled."""

    renderer = TweetRenderer(PageMetadataResolver(timeout=settings.UNFURL_TIMEOUT), settings.RENDER)
    processor = PostProcessor(storage, renderer, dispatcher, announcement=settings.ANNOUNCEMENT)
    bearer_token = twitter_bearer_token()

    async def handle_payload(payload: Any) -> None:
        try:
            post = build_post(payload)
            if post is None:
                return
            await processor.handle(post)
        except Exception:
            LOGGER.exception("Error while processing post")

    controller = StreamController(
        transport_factory=lambda listener: TwitterStream(listener, bearer_token, settings.STREAM_URL),
        handler=handle_payload,
        config=settings.STREAM,
        backoff=Backoff(settings.STREAM.reconnect_start_ms, settings.STREAM.reconnect_max_ms),
        followed_ids=storage.list_followed_user_ids,
    )
    watcher = asyncio.get_running_loop().create_task(_watch_subscriptions(storage, controller))
    try:
        await controller.restart()
        # Explicit lifecycle: everything else happens in stream callbacks and timers.
        await asyncio.Event().wait()
    finally:
        watcher.cancel()
        controller.destroy()


def _run() -> None:
    _print_banner()
    _configure_logging()
    LOGGER.info("Starting tweetrelay")

    storage = _open_storage()

    # Select the dispatch adapter from configuration.
    try:
        if settings.DISPATCH_METHOD == "bot":
            load_dotenv()
            bot_token = os.getenv("BOT_API")
            if not bot_token:
                raise RuntimeError("BOT_API is required when dispatch.method=bot")
            LOGGER.info("Selected dispatch method - bot")
            asyncio.run(_serve(storage, TelegramBotDispatcher(bot_token)))
        elif settings.DISPATCH_METHOD == "client":
            client = build_client()
            client.loop.run_until_complete(client.connect())
            client.loop.run_until_complete(authorize(client))
            LOGGER.info("Selected dispatch method - client")
            try:
                client.loop.run_until_complete(_serve(storage, TelegramClientDispatcher(client)))
            finally:
                client.loop.run_until_complete(client.disconnect())
        else:
            raise RuntimeError("dispatch.method must be 'client' or 'bot'")
    except KeyboardInterrupt:
        LOGGER.info("Stopping tweetrelay")


async def _lookup_author(handle: str):
    api = TwitterApi(twitter_bearer_token())
    users = await api.user_lookup([handle])
    if not users:
        return None
    return build_author(users[0])


async def _render_remote_post(post_id: str):
    api = TwitterApi(twitter_bearer_token())
    post = build_post(await api.show_tweet(post_id))
    if post is None:
        return None
    renderer = TweetRenderer(PageMetadataResolver(timeout=settings.UNFURL_TIMEOUT), settings.RENDER)
    return await renderer.render(post)


def _show(post_id: str) -> None:
    try:
        message = asyncio.run(_render_remote_post(post_id))
    except TwitterApiError as exc:
        raise SystemExit(f"Could not fetch post {post_id}: {exc}") from exc
    if message is None:
        raise SystemExit(f"Post {post_id} would not be relayed")
    print(format_message(message, mode="markdown"))
    for url in media_urls(message):
        print(url)


def _subscribe(handle: str, chat_id: str, is_dm: bool, flag_names: str) -> None:
    try:
        flags = parse_flag_string(flag_names)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    try:
        author = asyncio.run(_lookup_author(handle))
    except TwitterApiError as exc:
        raise SystemExit(f"Could not look up {handle}: {exc}") from exc
    if author is None:
        raise SystemExit(f"No Twitter user named {handle}")

    storage = _open_storage()
    storage.upsert_user(author)
    storage.add_subscription(author.user_id, Destination(channel_id=chat_id, is_dm=is_dm), flags)
    print(f"Subscribed {chat_id} to @{author.screen_name} ({author.user_id}) flags=[{format_flags(flags)}]")


def _unsubscribe(twitter_id: str, chat_id: str) -> None:
    storage = _open_storage()
    if storage.remove_subscription(twitter_id, chat_id):
        print(f"Removed subscription of {chat_id} to {twitter_id}")
    else:
        print("No such subscription.")


def _list_subscriptions() -> None:
    storage = _open_storage()
    records = storage.list_subscriptions()
    if not records:
        print("No subscriptions yet.")
        return
    for index, record in enumerate(records, start=1):
        handle = f"@{record.screen_name}" if record.screen_name else record.twitter_id
        kind = "dm" if record.destination.is_dm else "chat"
        print(f"{index}. {handle} ({record.twitter_id}) -> {kind} {record.destination.channel_id} [{format_flags(record.flags)}]")


def _setup() -> None:
    _print_banner()
    from frontend.app import ConfigPanelApp

    ConfigPanelApp().run()


def _login() -> None:
    _print_banner()
    from get_session import main as login_main

    asyncio.run(login_main())


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="tweetrelay")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the relay")
    subparsers.add_parser("config", help="Launch the config TUI")
    subparsers.add_parser("login", help="Authorize the Telegram delivery session")
    subparsers.add_parser("list", help="List subscriptions")

    show = subparsers.add_parser("show", help="Render one post the way it would be relayed")
    show.add_argument("post_id")

    subscribe = subparsers.add_parser("subscribe", help="Relay a Twitter user to a chat")
    subscribe.add_argument("handle", help="Twitter handle, with or without @")
    subscribe.add_argument("chat_id", help="Telegram chat id or @channel")
    subscribe.add_argument("--dm", action="store_true", help="The chat is a direct conversation")
    subscribe.add_argument("--flags", default="", help="Comma separated: notext,retweet,noquote,ping")

    unsubscribe = subparsers.add_parser("unsubscribe", help="Stop relaying a Twitter user to a chat")
    unsubscribe.add_argument("twitter_id")
    unsubscribe.add_argument("chat_id")

    args = parser.parse_args(argv)
    if args.command in {"setup", "config"}:
        _setup()
        return
    if args.command == "login":
        _login()
        return
    if args.command == "subscribe":
        _subscribe(args.handle, args.chat_id, args.dm, args.flags)
        return
    if args.command == "unsubscribe":
        _unsubscribe(args.twitter_id, args.chat_id)
        return
    if args.command == "show":
        _show(args.post_id)
        return
    if args.command == "list":
        _list_subscriptions()
        return
    _run()


if __name__ == "__main__":
    main()
