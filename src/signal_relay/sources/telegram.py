"""Telegram Bot API message source — long-polls getUpdates over httpx."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import structlog

from signal_relay.config.schema import TelegramConfig
from signal_relay.models import Channel, Message
from signal_relay.router.identity import normalize_channel_id
from signal_relay.sources.base import (
    AuthFailed,
    AuthStepRequested,
    MessageReceived,
    MessageSource,
    StatusChanged,
)

log = structlog.get_logger("telegram")

TOKEN_PROMPT = "Enter the Telegram bot token"

# updates dated this far before the session opened still count as live
_LIVE_GRACE = timedelta(seconds=5)


class TelegramError(Exception):
    """The Bot API answered ``ok: false``."""


class TelegramAuthError(TelegramError):
    """The bot token was rejected."""


def backoff_delay(attempt: int, base: float = 1.0, cap: float = 60.0) -> float:
    """Capped exponential backoff: base, 2*base, 4*base ... cap."""
    return min(cap, base * 2 ** max(attempt - 1, 0))


def parse_chat(chat: dict[str, Any]) -> Channel:
    chat_type = chat.get("type")
    return Channel(
        id=str(chat["id"]),
        title=chat.get("title") or chat.get("username") or str(chat["id"]),
        username=chat.get("username"),
        is_private=not chat.get("username"),
        type="channel" if chat_type == "channel" else "group" if chat_type in ("group", "supergroup") else None,
    )


def parse_update(update: dict[str, Any]) -> Message | None:
    """Build a Message from a channel post or group message update.

    Returns None for updates that carry no text.
    """
    post = update.get("channel_post") or update.get("message")
    if not post:
        return None
    text = post.get("text") or post.get("caption")
    chat = post.get("chat")
    if not text or not chat:
        return None

    sender = post.get("author_signature")
    if not sender and post.get("from"):
        who = post["from"]
        sender = " ".join(p for p in (who.get("first_name"), who.get("last_name")) if p) or who.get("username")
    return Message(
        id=post["message_id"],
        channel_id=str(chat["id"]),
        channel_title=chat.get("title") or chat.get("username") or "",
        text=text,
        date=datetime.fromtimestamp(post["date"], tz=timezone.utc),
        sender_name=sender or chat.get("title"),
    )


class TelegramBotSource(MessageSource):
    """MessageSource backed by a Telegram bot added to the monitored chats.

    The bot token plays the part of the credential: a missing or rejected
    token moves the source to ``needs_auth`` at the ``password`` step and
    ``submit_password`` supplies a new one. Transport failures are retried
    with capped exponential backoff; after ``max_attempts`` consecutive
    failures the source reports ``disconnected`` and stops.
    """

    def __init__(
        self,
        config: TelegramConfig | None = None,
        http: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        super().__init__()
        self.config = config or TelegramConfig()
        self.base_url = self.config.base_url.rstrip("/")
        self._token = self.config.bot_token
        self._http = http
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self._offset: int | None = None
        self._live_since: datetime | None = None
        self._channels: dict[str, Channel] = {}
        self._backlog: dict[str, deque[Message]] = {}
        self.bot_username: str | None = None

    async def _get_http(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=self.config.poll_timeout_s + 10)
        return self._http

    async def _call(self, method: str, **params: Any) -> Any:
        http = await self._get_http()
        resp = await http.post(f"{self.base_url}/bot{self._token}/{method}", json=params)
        try:
            data = resp.json()
        except ValueError as exc:
            raise TelegramError(f"{method}: HTTP {resp.status_code}") from exc
        if data.get("ok"):
            return data.get("result")
        description = data.get("description") or f"HTTP {resp.status_code}"
        if data.get("error_code", resp.status_code) in (401, 404):
            raise TelegramAuthError(description)
        raise TelegramError(f"{method}: {description}")

    # ── Session ────────────────────────────────────────────────

    async def connect(self) -> None:
        if self._task is not None and not self._task.done():
            return
        if not self._token:
            self._request_token()
            return
        self.emit(StatusChanged("connecting"))
        self._task = asyncio.create_task(self._run(), name="telegram-poll")

    def _request_token(self, error: str | None = None) -> None:
        self.emit(StatusChanged("needs_auth"))
        self.emit(AuthStepRequested("password", TOKEN_PROMPT))
        if error:
            self.emit(AuthFailed(error))

    async def open(self) -> None:
        """Validate the token and mark the session live."""
        me = await self._call("getMe")
        self.bot_username = (me or {}).get("username")
        self._live_since = datetime.now(timezone.utc)
        log.info("telegram_connected", bot=self.bot_username)
        self.emit(StatusChanged("connected"))

    async def _run(self) -> None:
        attempt = 0
        while True:
            try:
                if self.status != "connected":
                    await self.open()
                await self.poll_once()
                attempt = 0
            except TelegramAuthError as exc:
                log.warning("telegram_token_rejected", reason=str(exc))
                self._request_token(f"Bot token rejected: {exc}")
                return
            except (httpx.HTTPError, TelegramError) as exc:
                attempt += 1
                if attempt >= self.config.max_attempts:
                    log.error("telegram_gave_up", attempts=attempt, reason=str(exc))
                    self.emit(StatusChanged("disconnected"))
                    return
                delay = backoff_delay(attempt, self.config.backoff_base_s, self.config.backoff_cap_s)
                log.warning("telegram_retry", attempt=attempt, delay_s=delay, reason=str(exc))
                if self.status != "connecting":
                    self.emit(StatusChanged("connecting"))
                await self._sleep(delay)

    async def poll_once(self) -> int:
        """Fetch one batch of updates and dispatch them. Returns the batch size."""
        params: dict[str, Any] = {
            "timeout": self.config.poll_timeout_s,
            "allowed_updates": ["channel_post", "message"],
        }
        if self._offset is not None:
            params["offset"] = self._offset
        updates = await self._call("getUpdates", **params) or []
        for update in updates:
            self._offset = max(self._offset or 0, update["update_id"] + 1)
            self._ingest(update)
        return len(updates)

    def _ingest(self, update: dict[str, Any]) -> None:
        message = parse_update(update)
        if message is None:
            return
        post = update.get("channel_post") or update.get("message")
        key = normalize_channel_id(message.channel_id)
        if key not in self._channels:
            self._channels[key] = parse_chat(post["chat"])
            log.info("telegram_channel_discovered", channel_id=message.channel_id, title=message.channel_title)
        self._backlog.setdefault(key, deque(maxlen=self.config.backlog_size)).append(message)

        # updates queued before the session opened are backlog only
        if self._live_since is not None and message.date >= self._live_since - _LIVE_GRACE:
            self.emit(MessageReceived(message.model_copy(update={"is_realtime": True})))

    async def disconnect(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._http is not None and not self._http.is_closed:
            await self._http.aclose()
        self._live_since = None
        if self.status != "disconnected":
            self.emit(StatusChanged("disconnected"))

    # ── Channels ───────────────────────────────────────────────

    async def list_channels(self) -> list[Channel]:
        return sorted(self._channels.values(), key=lambda c: c.title.lower())

    async def select_channel(self, channel_ids: list[str]) -> list[Message]:
        backlog: list[Message] = []
        for channel_id in channel_ids:
            backlog.extend(self._backlog.get(normalize_channel_id(channel_id), ()))
        log.info("telegram_channels_selected", channel_ids=channel_ids, backlog=len(backlog))
        return sorted(backlog, key=lambda m: m.date)

    # ── Credentials ────────────────────────────────────────────

    async def submit_phone(self, phone: str) -> None:
        self.emit(AuthFailed("Phone login is not available for bot sessions; enter the bot token"))

    async def submit_code(self, code: str) -> None:
        self.emit(AuthFailed("Code login is not available for bot sessions; enter the bot token"))

    async def submit_password(self, password: str) -> None:
        self._token = password.strip()
        if self._task is not None and not self._task.done():
            await self.disconnect()
        await self.connect()
