"""QuoteOracle — in-memory quote cache fed by the Hyperliquid allMids WebSocket."""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

import structlog
import websockets

from signal_relay.models import MarketQuote

log = structlog.get_logger("quote_oracle")

QUOTE_CURRENCY = "USD"


@dataclass
class QuoteEntry:
    """A cached mid price with metadata."""

    mid: Decimal
    updated_at: float  # time.monotonic()
    source: str  # "ws", "manual"


def coin_symbol(coin: str) -> str:
    """``"BTC"`` -> ``"BTCUSD"``."""
    return f"{coin.upper()}{QUOTE_CURRENCY}"


def _digits(mid: Decimal) -> int:
    if mid >= 1000:
        return 2
    if mid >= 10:
        return 3
    return 5


class QuoteOracle:
    """In-process quote cache keyed by normalized symbol.

    Bid and ask straddle the mid by ``spread_pct``. Quotes older than the
    staleness threshold are treated as missing.
    """

    def __init__(
        self,
        hl_ws_url: str = "wss://api.hyperliquid.xyz/ws",
        staleness_threshold_s: float = 30.0,
        spread_pct: float = 0.0002,
        coins: list[str] | None = None,
    ) -> None:
        self._hl_ws_url = hl_ws_url
        self._staleness_s = staleness_threshold_s
        self._half_spread = Decimal(str(spread_pct)) / 2
        self._coins = {c.upper() for c in coins} if coins else None
        self._mids: dict[str, QuoteEntry] = {}
        self._tasks: list[asyncio.Task] = []
        self._running = False

    # ── Public API ────────────────────────────────────────────

    def get_mid(self, symbol: str) -> Decimal | None:
        entry = self._mids.get(symbol)
        if entry is None or self._expired(entry):
            return None
        return entry.mid

    def get_quote(self, symbol: str) -> MarketQuote | None:
        mid = self.get_mid(symbol)
        if mid is None:
            return None
        return self._quote(symbol, mid)

    def quotes(self) -> list[MarketQuote]:
        """Every fresh quote, sorted by symbol."""
        return [
            self._quote(symbol, entry.mid)
            for symbol, entry in sorted(self._mids.items())
            if not self._expired(entry)
        ]

    def is_stale(self, symbol: str) -> bool:
        entry = self._mids.get(symbol)
        return entry is None or self._expired(entry)

    def update_quote(self, symbol: str, mid: Decimal, source: str = "manual") -> None:
        """Manually inject a mid price — primarily for testing."""
        self._mids[symbol] = QuoteEntry(mid=Decimal(mid), updated_at=time.monotonic(), source=source)

    def _expired(self, entry: QuoteEntry) -> bool:
        return (time.monotonic() - entry.updated_at) > self._staleness_s

    def _quote(self, symbol: str, mid: Decimal) -> MarketQuote:
        bid = mid * (1 - self._half_spread)
        ask = mid * (1 + self._half_spread)
        return MarketQuote(
            symbol=symbol,
            bid=float(bid),
            ask=float(ask),
            spread=float(ask - bid),
            digits=_digits(mid),
        )

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        """Start the HL WebSocket loop."""
        if self._running:
            return
        self._running = True
        self._tasks.append(asyncio.create_task(self._hl_ws_loop()))
        log.info("quote_oracle_started", url=self._hl_ws_url)

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()
        log.info("quote_oracle_stopped")

    # ── Hyperliquid WebSocket ─────────────────────────────────

    async def _hl_ws_loop(self) -> None:
        """Subscribe to allMids on Hyperliquid WS, auto-reconnect on failure."""
        while self._running:
            try:
                log.info("oracle_hl_ws_connecting", url=self._hl_ws_url)
                async with websockets.connect(self._hl_ws_url) as ws:
                    await ws.send(json.dumps({
                        "method": "subscribe",
                        "subscription": {"type": "allMids"},
                    }))
                    log.info("oracle_hl_ws_subscribed")

                    async for raw in ws:
                        if not self._running:
                            break
                        msg = json.loads(raw)
                        if msg.get("channel") == "allMids":
                            self.handle_all_mids(msg.get("data", {}))

            except asyncio.CancelledError:
                break
            except Exception:
                log.exception("oracle_hl_ws_error", reconnect_in=5)
                await asyncio.sleep(5)

    def handle_all_mids(self, data: dict) -> int:
        """Parse an allMids payload into the cache. Returns how many were stored.

        Expected format: {"mids": {"BTC": "60123.5", "ETH": "3456.7", ...}}.
        Spot pairs ("@107") and index names ("#12") are skipped.
        """
        now = time.monotonic()
        stored = 0
        for coin, mid_str in data.get("mids", {}).items():
            if coin.startswith(("@", "#")):
                continue
            if self._coins is not None and coin.upper() not in self._coins:
                continue
            try:
                mid = Decimal(mid_str)
            except (InvalidOperation, TypeError):
                log.warning("oracle_parse_error", coin=coin, raw=mid_str)
                continue
            self._mids[coin_symbol(coin)] = QuoteEntry(mid=mid, updated_at=now, source="ws")
            stored += 1
        return stored
