"""Interactive Telethon login for the delivery session."""

from __future__ import annotations

import asyncio
import logging
import os
from getpass import getpass

import qrcode
from dotenv import load_dotenv
from telethon import TelegramClient, errors

from client import build_client

LOGIN_METHODS = ("qr", "phone", "bot")


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _resolve_2fa_password() -> str:
    password = os.getenv("2FA")
    if password:
        return password
    return getpass("2FA password: ")


async def _authorize_with_qr(client: TelegramClient) -> None:
    qr = await client.qr_login()
    _print_qr(qr.url)
    await qr.wait(timeout=120)


async def _authorize_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    code = input("Login code: ").strip()
    try:
        await client.sign_in(phone=phone, code=code)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())


async def _authorize_with_bot(client: TelegramClient) -> None:
    # Bot sessions can post to channels where the bot is an admin.
    token = os.getenv("BOT_API") or getpass("Bot token: ").strip()
    await client.sign_in(bot_token=token)


def _pick_login_method() -> str:
    method = (os.getenv("LOGIN_METHOD") or "").strip().lower()
    if method in LOGIN_METHODS:
        return method
    choices = {"1": "qr", "2": "phone", "3": "bot"}
    while True:
        print("")
        print("Login methods:")
        print("[1] QR code")
        print("[2] Phone code")
        print("[3] Bot token")
        print("[4] Exit")
        print("Select a login method: \n")
        choice = input("tweetrelay > ").strip()
        if choice in choices:
            return choices[choice]
        if choice == "4":
            raise SystemExit(0)
        print("Invalid option. Please choose 1, 2, 3 or 4.")


async def authorize(client: TelegramClient) -> None:
    """Log the client in unless its session is already authorized."""

    if await client.is_user_authorized():
        return

    load_dotenv()
    handlers = {
        "qr": _authorize_with_qr,
        "phone": _authorize_with_phone,
        "bot": _authorize_with_bot,
    }
    try:
        await handlers[_pick_login_method()](client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())


async def main() -> None:
    client = build_client()
    await client.connect()

    await authorize(client)

    me = await client.get_me()
    logging.getLogger(__name__).info("Logged in as: %s", getattr(me, "first_name", None) or me.username)

    await client.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
