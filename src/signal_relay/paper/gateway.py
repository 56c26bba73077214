"""PaperGateway — in-memory ExecutionGateway priced by the QuoteOracle."""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import structlog

from signal_relay.config.schema import PaperConfig
from signal_relay.gateway.base import (
    ExecutionGateway,
    GatewayStatusChanged,
    PositionChanged,
    PositionRemoved,
    PositionsChanged,
)
from signal_relay.models import (
    AccountSnapshot,
    Direction,
    HistoricalTrade,
    MarketQuote,
    OrderResult,
    Position,
    normalize_symbol,
)
from signal_relay.paper.oracle import QuoteOracle
from signal_relay.paper.sizing import (
    apply_slippage,
    calculate_fees,
    calculate_margin,
    calculate_pnl,
    validate_levels,
)

log = structlog.get_logger("paper_gateway")


@dataclass
class PaperPosition:
    id: str
    symbol: str
    direction: Direction
    volume: Decimal
    entry_price: Decimal
    margin: Decimal
    open_time: datetime
    stop_loss: float | None = None
    take_profit: float | None = None


class PaperGateway(ExecutionGateway):
    """Simulated single-account broker.

    Market orders fill at the ask (BUY) or bid (SELL) plus slippage. Fees
    are charged on notional at both legs and realised on close. Open
    positions are watched for stop/target hits by a monitor loop.
    """

    def __init__(self, config: PaperConfig | None = None, oracle: QuoteOracle | None = None) -> None:
        super().__init__()
        self.config = config or PaperConfig()
        self.oracle = oracle or QuoteOracle(
            hl_ws_url=self.config.hl_ws_url,
            staleness_threshold_s=self.config.quote_staleness_s,
            spread_pct=self.config.spread_pct,
        )
        self._contract_size = Decimal(str(self.config.contract_size))
        self._initial_balance = Decimal(str(self.config.initial_balance))
        self._realised = Decimal("0")
        self._positions: dict[str, PaperPosition] = {}
        self._history: list[HistoricalTrade] = []
        self._ids = itertools.count(1)
        self._monitor: asyncio.Task | None = None

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        if self._monitor is not None:
            return
        self.emit(GatewayStatusChanged("connecting"))
        if self.config.quote_feed_enabled:
            await self.oracle.start()
        self._monitor = asyncio.create_task(self._monitor_loop(), name="paper-monitor")
        log.info("paper_gateway_started", balance=float(self._initial_balance), leverage=self.config.leverage)
        self.emit(GatewayStatusChanged("connected"))

    async def stop(self) -> None:
        if self._monitor is not None:
            self._monitor.cancel()
            try:
                await self._monitor
            except asyncio.CancelledError:
                pass
            self._monitor = None
        await self.oracle.stop()
        if self.status != "disconnected":
            self.emit(GatewayStatusChanged("disconnected"))

    async def _monitor_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.monitor_interval_s)
            try:
                self.check_exits()
                if self._positions:
                    self.emit(PositionsChanged(self._snapshot_positions()))
            except Exception:
                log.exception("paper_monitor_error")

    # ── Pricing helpers ───────────────────────────────────────

    def _exit_price(self, pos: PaperPosition) -> Decimal | None:
        quote = self.oracle.get_quote(pos.symbol)
        if quote is None:
            return None
        raw = Decimal(str(quote.bid if pos.direction == "BUY" else quote.ask))
        return apply_slippage(raw, pos.direction, self.config.slippage_pct, is_entry=False)

    def _unrealised(self, pos: PaperPosition, exit_price: Decimal) -> Decimal:
        gross = calculate_pnl(pos.direction, pos.entry_price, exit_price, pos.volume, self._contract_size)
        fees = calculate_fees(pos.entry_price, exit_price, pos.volume, self.config.fee_pct, self._contract_size)
        return gross - fees

    def _to_position(self, pos: PaperPosition) -> Position:
        exit_price = self._exit_price(pos)
        current = exit_price if exit_price is not None else pos.entry_price
        profit = self._unrealised(pos, exit_price) if exit_price is not None else Decimal("0")
        return Position(
            id=pos.id,
            symbol=pos.symbol,
            type="buy" if pos.direction == "BUY" else "sell",
            volume=float(pos.volume),
            open_price=float(pos.entry_price),
            current_price=float(current),
            stop_loss=pos.stop_loss,
            take_profit=pos.take_profit,
            profit=round(float(profit), 2),
            open_time=pos.open_time,
        )

    def _snapshot_positions(self) -> list[Position]:
        return [self._to_position(p) for p in self._positions.values()]

    # ── Snapshots ─────────────────────────────────────────────

    def equity(self) -> Decimal:
        unrealised = Decimal("0")
        for pos in self._positions.values():
            exit_price = self._exit_price(pos)
            if exit_price is not None:
                unrealised += self._unrealised(pos, exit_price)
        return self._initial_balance + self._realised + unrealised

    def used_margin(self) -> Decimal:
        return sum((p.margin for p in self._positions.values()), Decimal("0"))

    async def get_account_snapshot(self) -> AccountSnapshot | None:
        balance = self._initial_balance + self._realised
        equity = self.equity()
        margin = self.used_margin()
        return AccountSnapshot(
            id="paper",
            name="Paper account",
            login="paper",
            server="paper",
            balance=round(float(balance), 2),
            equity=round(float(equity), 2),
            margin=round(float(margin), 2),
            free_margin=round(float(equity - margin), 2),
            currency=self.config.currency,
            leverage=self.config.leverage,
            connected=self.status == "connected",
        )

    async def get_positions(self) -> list[Position]:
        return self._snapshot_positions()

    async def get_market_quotes(self) -> list[MarketQuote]:
        return self.oracle.quotes()

    async def get_trade_history(self, lookback: timedelta) -> list[HistoricalTrade]:
        cutoff = datetime.now(timezone.utc) - lookback
        return [t for t in self._history if t.close_time >= cutoff]

    # ── Orders ────────────────────────────────────────────────

    async def place_order(
        self,
        symbol: str,
        direction: Direction,
        volume: float,
        stop_loss: float | None = None,
        take_profit: float | None = None,
    ) -> OrderResult:
        symbol = normalize_symbol(symbol)
        if volume <= 0:
            return OrderResult(success=False, message="Volume must be positive")
        quote = self.oracle.get_quote(symbol)
        if quote is None:
            return OrderResult(success=False, message=f"No price available for {symbol}")

        raw = Decimal(str(quote.ask if direction == "BUY" else quote.bid))
        fill = apply_slippage(raw, direction, self.config.slippage_pct, is_entry=True)
        invalid = validate_levels(direction, fill, stop_loss, take_profit)
        if invalid:
            return OrderResult(success=False, message=invalid)

        qty = Decimal(str(volume))
        margin = calculate_margin(fill, qty, self.config.leverage, self._contract_size)
        entry_fee = fill * qty * self._contract_size * Decimal(str(self.config.fee_pct))
        free_margin = self.equity() - self.used_margin()
        if margin + entry_fee > free_margin:
            log.info(
                "paper_order_rejected",
                symbol=symbol,
                required=float(margin + entry_fee),
                free_margin=float(free_margin),
            )
            return OrderResult(success=False, message="insufficient margin")

        position = PaperPosition(
            id=str(next(self._ids)),
            symbol=symbol,
            direction=direction,
            volume=qty,
            entry_price=fill,
            margin=margin,
            open_time=datetime.now(timezone.utc),
            stop_loss=stop_loss,
            take_profit=take_profit,
        )
        self._positions[position.id] = position
        log.info(
            "position_opened",
            position_id=position.id,
            symbol=symbol,
            direction=direction,
            entry_price=float(fill),
            raw_price=float(raw),
            volume=volume,
        )
        self.emit(PositionChanged(self._to_position(position)))
        return OrderResult(
            success=True,
            message=f"{direction} {volume} {symbol} filled at {float(fill):.5f}",
            order_id=position.id,
        )

    async def close_position(self, position_id: str) -> OrderResult:
        pos = self._positions.get(position_id)
        if pos is None:
            return OrderResult(success=False, message="Position not found")
        exit_price = self._exit_price(pos)
        if exit_price is None:
            return OrderResult(success=False, message=f"No price available for {pos.symbol}")
        self._close(pos, exit_price, "manual")
        return OrderResult(success=True, message="Position closed", order_id=position_id)

    async def modify_position(
        self,
        position_id: str,
        stop_loss: float | None = None,
        take_profit: float | None = None,
    ) -> OrderResult:
        pos = self._positions.get(position_id)
        if pos is None:
            return OrderResult(success=False, message="Position not found")
        new_stop = stop_loss if stop_loss is not None else pos.stop_loss
        new_target = take_profit if take_profit is not None else pos.take_profit
        invalid = validate_levels(pos.direction, pos.entry_price, new_stop, new_target)
        if invalid:
            return OrderResult(success=False, message=invalid)
        pos.stop_loss = new_stop
        pos.take_profit = new_target
        log.info("position_modified", position_id=position_id, stop_loss=new_stop, take_profit=new_target)
        self.emit(PositionChanged(self._to_position(pos)))
        return OrderResult(success=True, message="Position modified", order_id=position_id)

    # ── Exits ─────────────────────────────────────────────────

    def check_exits(self) -> list[HistoricalTrade]:
        """Close every position whose stop or target has been reached."""
        closed: list[HistoricalTrade] = []
        for pos in list(self._positions.values()):
            exit_price = self._exit_price(pos)
            if exit_price is None:
                continue

            exit_reason: str | None = None
            # Priority: stop_loss → take_profit
            if pos.stop_loss is not None:
                stop = Decimal(str(pos.stop_loss))
                if (pos.direction == "BUY" and exit_price <= stop) or (pos.direction == "SELL" and exit_price >= stop):
                    exit_reason = "stop_loss"
            if exit_reason is None and pos.take_profit is not None:
                target = Decimal(str(pos.take_profit))
                if (pos.direction == "BUY" and exit_price >= target) or (pos.direction == "SELL" and exit_price <= target):
                    exit_reason = "take_profit"

            if exit_reason is not None:
                closed.append(self._close(pos, exit_price, exit_reason))
        return closed

    def _close(self, pos: PaperPosition, exit_price: Decimal, exit_reason: str) -> HistoricalTrade:
        gross_pnl = calculate_pnl(pos.direction, pos.entry_price, exit_price, pos.volume, self._contract_size)
        fees = calculate_fees(pos.entry_price, exit_price, pos.volume, self.config.fee_pct, self._contract_size)
        net_pnl = gross_pnl - fees
        self._realised += net_pnl
        del self._positions[pos.id]

        trade = HistoricalTrade(
            id=pos.id,
            symbol=pos.symbol,
            type="buy" if pos.direction == "BUY" else "sell",
            volume=float(pos.volume),
            open_price=float(pos.entry_price),
            close_price=float(exit_price),
            profit=round(float(net_pnl), 2),
            open_time=pos.open_time,
            close_time=datetime.now(timezone.utc),
            commission=round(float(fees), 2),
        )
        self._history.append(trade)
        log.info(
            "position_closed",
            position_id=pos.id,
            symbol=pos.symbol,
            direction=pos.direction,
            exit_reason=exit_reason,
            gross_pnl=float(gross_pnl),
            fees=float(fees),
            net_pnl=float(net_pnl),
        )
        self.emit(PositionRemoved(pos.id))
        return trade
