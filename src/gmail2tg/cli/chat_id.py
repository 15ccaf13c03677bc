"""Print the ids of chats that recently messaged the bot (to fill in TG_CHAT_ID)."""

from __future__ import annotations

import os

import httpx

from gmail2tg.infrastructure.telegram.outbound import TelegramNotifier


def main() -> int:
    token = os.getenv("TG_TOKEN", "").strip()
    if not token:
        print("ERROR: TG_TOKEN is not set")
        return 1

    try:
        chats = TelegramNotifier(token).get_chat_ids()
    except httpx.HTTPError as e:
        print(f"ERROR: Telegram getUpdates failed: {e}")
        return 1

    if not chats:
        print("No chats found. Send /start to the bot, then run this again.")
        return 0

    for chat_id, title in chats:
        print(f"chatId: {chat_id}  {title}")
    print("Put the chat id in TG_CHAT_ID and restart the worker.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
