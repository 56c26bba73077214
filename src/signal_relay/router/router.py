"""EventRouter — consumes source and gateway events, drives classification,
applies the auto-trade policy and fans every resulting fact out to observers."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from datetime import timedelta
from typing import Any

import structlog

from signal_relay.classifier.base import Classification, SignalClassifier
from signal_relay.config.schema import RouterConfig
from signal_relay.gateway.base import (
    ExecutionGateway,
    GatewayEvent,
    GatewayStatusChanged,
    PositionChanged,
    PositionRemoved,
    PositionsChanged,
    QuotesChanged,
)
from signal_relay.hub import Observer, ObserverHub
from signal_relay.logging import LogBuffer
from signal_relay.models import (
    AccountSnapshot,
    Channel,
    Direction,
    HistoricalTrade,
    MarketQuote,
    Message,
    OrderResult,
    Position,
    Signal,
    normalize_symbol,
)
from signal_relay.protocol.commands import (
    ClosePositionCommand,
    Command,
    CommandError,
    DismissSignalCommand,
    ExecuteTradeCommand,
    ManualTradeCommand,
    ModifyPositionCommand,
    SaveChannelCommand,
    SelectChannelCommand,
    SetDefaultSizeCommand,
    SubmitCodeCommand,
    SubmitPasswordCommand,
    SubmitPhoneCommand,
    ToggleAutoTradeCommand,
    parse_command,
)
from signal_relay.protocol.facts import (
    AccountInfoFact,
    AuthErrorFact,
    AuthRequiredFact,
    AuthStepFact,
    AutoTradeEnabledFact,
    AutoTradeExecutedFact,
    ChannelsFact,
    ChannelsSelectedFact,
    DefaultSizeUpdatedFact,
    ErrorFact,
    Fact,
    GatewayStatusFact,
    HistoryFact,
    LogsFact,
    MarketsFact,
    NewMessageFact,
    PositionClosedFact,
    PositionsFact,
    PositionUpdateFact,
    SavedChannelFact,
    SignalDetectedFact,
    SignalUpdatedFact,
    SourceDisconnectedFact,
    SourceStatusFact,
    TradeResultFact,
)
from signal_relay.router.identity import channels_equal, message_key
from signal_relay.router.recency import RecencySet
from signal_relay.router.settings import SettingsStore
from signal_relay.router.store import SignalStore
from signal_relay.router.transitions import (
    apply_classification,
    mark_analyzing,
    mark_skipped,
    should_auto_trade,
    within_window,
)
from signal_relay.sources.base import (
    AuthFailed,
    AuthStepRequested,
    MessageReceived,
    MessageSource,
    SourceEvent,
    StatusChanged,
)

log = structlog.get_logger("router")


class EventRouter:
    """The single writer of signals, settings and the recency set.

    All state lives on the instance; nothing is module-global, so several
    routers can run side by side (tests do). Every mutation happens on the
    event loop thread, between awaits.
    """

    def __init__(
        self,
        source: MessageSource,
        gateway: ExecutionGateway,
        classifier: SignalClassifier,
        settings: SettingsStore,
        *,
        hub: ObserverHub | None = None,
        config: RouterConfig | None = None,
        log_buffer: LogBuffer | None = None,
    ) -> None:
        self.source = source
        self.gateway = gateway
        self.classifier = classifier
        self.settings = settings
        self.config = config or RouterConfig()
        self.hub = hub or ObserverHub()
        self.log_buffer = log_buffer

        self.signals = SignalStore()
        self.recency = RecencySet(self.config.recency_capacity)

        # latest relayed gateway state
        self.channels: list[Channel] = []
        self.account: AccountSnapshot | None = None
        self.positions: dict[str, Position] = {}
        self.markets: list[MarketQuote] = []
        self.history: list[HistoricalTrade] = []

        self._executing: set[str] = set()
        self._tasks: set[asyncio.Task] = set()
        self._loops: list[asyncio.Task] = []
        self._relaying_log = False
        if log_buffer is not None:
            log_buffer.add_sink(self._relay_log)

        self._handlers: dict[str, Callable[[Any], Awaitable[None]]] = {
            "select_channel": self._select_channel,
            "save_channel": self._save_channel,
            "execute_trade": self._execute_trade,
            "dismiss_signal": self._dismiss_signal,
            "manual_trade": self._manual_trade,
            "close_position": self._close_position,
            "modify_position": self._modify_position,
            "toggle_auto_trade": self._toggle_auto_trade,
            "set_default_size": self._set_default_size,
            "disconnect_source": self._disconnect_source,
            "reconnect_source": self._reconnect_source,
            "submit_phone": self._submit_phone,
            "submit_code": self._submit_code,
            "submit_password": self._submit_password,
        }

    # ── Lifecycle ──────────────────────────────────────────────

    async def start(self) -> None:
        """Start the receive loops and sweeps, then connect both capabilities."""
        if self._loops:
            return
        self._loops = [
            asyncio.create_task(self._source_loop(), name="router-source"),
            asyncio.create_task(self._gateway_loop(), name="router-gateway"),
            asyncio.create_task(
                self._sweep(self.config.account_refresh_s, self.refresh_account_and_markets),
                name="router-account-sweep",
            ),
            asyncio.create_task(
                self._sweep(self.config.history_refresh_s, self.refresh_history),
                name="router-history-sweep",
            ),
        ]
        log.info(
            "router_started",
            auto_trade_enabled=self.settings.current.auto_trade_enabled,
            selected_channel_ids=self.settings.current.selected_channel_ids,
        )
        try:
            await self.gateway.start()
        except Exception:
            log.exception("gateway_start_failed")
        try:
            await self.source.connect()
        except Exception:
            log.exception("source_connect_failed")

    async def stop(self) -> None:
        for task in self._loops:
            task.cancel()
        await asyncio.gather(*self._loops, return_exceptions=True)
        self._loops = []
        for closer in (self.source.disconnect, self.gateway.stop, self.classifier.close):
            try:
                await closer()
            except Exception:
                log.exception("shutdown_step_failed", step=getattr(closer, "__qualname__", str(closer)))
        log.info("router_stopped", in_flight=len(self._tasks))
        if self.log_buffer is not None:
            self.log_buffer.remove_sink(self._relay_log)

    async def run(self) -> None:
        """Run until cancelled."""
        await self.start()
        try:
            await asyncio.gather(*self._loops)
        finally:
            await self.stop()

    async def drain(self) -> None:
        """Wait for every in-flight classification and refresh task."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("background_task_failed", task=task.get_name(), exc_info=exc)

    def broadcast(self, *facts: Fact) -> None:
        for fact in facts:
            self.hub.broadcast(fact)

    def _relay_log(self, entry: dict[str, Any]) -> None:
        # entries logged while broadcasting are buffered but not relayed
        if self._relaying_log:
            return
        self._relaying_log = True
        try:
            self.hub.broadcast(LogsFact(logs=[entry]))
        finally:
            self._relaying_log = False

    # ── Receive loops ──────────────────────────────────────────

    async def _source_loop(self) -> None:
        while True:
            event = await self.source.next_event()
            try:
                await self.handle_source_event(event)
            except Exception:
                log.exception("source_event_failed", event=type(event).__name__)

    async def _gateway_loop(self) -> None:
        while True:
            event = await self.gateway.next_event()
            try:
                self.handle_gateway_event(event)
            except Exception:
                log.exception("gateway_event_failed", event=type(event).__name__)

    async def _sweep(self, interval_s: float, refresh: Callable[[], Awaitable[None]]) -> None:
        while True:
            await asyncio.sleep(interval_s)
            if not self.hub.observer_count:
                continue
            await refresh()

    # ── Source events ──────────────────────────────────────────

    async def handle_source_event(self, event: SourceEvent) -> None:
        if isinstance(event, MessageReceived):
            self.intake(event.message)
        elif isinstance(event, StatusChanged):
            log.info("source_status", status=event.status)
            self.broadcast(SourceStatusFact(status=event.status))
            if event.status == "needs_auth":
                self.broadcast(AuthRequiredFact())
            elif event.status == "connected":
                self.broadcast(AuthStepFact(step="done"))
                self._spawn(self._on_source_connected(), name="source-connected")
        elif isinstance(event, AuthStepRequested):
            self.broadcast(AuthStepFact(step=event.step, message=event.message))
        elif isinstance(event, AuthFailed):
            log.warning("source_auth_failed", message=event.message, step=self.source.auth_step)
            self.broadcast(AuthErrorFact(message=event.message))
            if self.source.auth_step is not None:
                self.broadcast(AuthStepFact(step=self.source.auth_step))

    async def _on_source_connected(self) -> None:
        try:
            channels = await self.source.list_channels()
        except Exception:
            log.exception("channel_list_failed")
            self.broadcast(ErrorFact(message="Failed to load channels"))
            return
        self.channels = channels
        self.broadcast(ChannelsFact(channels=channels))

        selected = self.settings.current.selected_channel_ids
        if selected:
            log.info("reselecting_saved_channels", channel_ids=selected)
            self.broadcast(ChannelsSelectedFact(channel_ids=selected))
            await self._load_backlog(selected)

    def _selected_match(self, channel_id: str) -> str | None:
        for selected in self.settings.current.selected_channel_ids:
            if channels_equal(selected, channel_id):
                return selected
        return None

    def intake(self, message: Message) -> bool:
        """Accept one inbound message. Returns False if it was dropped."""
        selected = self._selected_match(message.channel_id)
        if selected is None:
            log.debug("message_ignored_unselected", channel_id=message.channel_id, message_id=message.id)
            return False
        if selected != message.channel_id:
            log.info(
                "channel_id_mismatch",
                selected=selected,
                received=message.channel_id,
                message_id=message.id,
            )

        key = message_key(message.channel_id, message.id)
        if not message.is_realtime:
            self.broadcast(
                NewMessageFact(message=message),
                NewMessageFact(message=mark_skipped(message)),
            )
            return True

        if not self.recency.add(key):
            log.info("message_discarded_duplicate", key=key)
            return False
        pending = mark_analyzing(message)
        self.broadcast(NewMessageFact(message=pending))
        self._spawn(self._classify(pending), name=f"classify:{key}")
        return True

    async def _load_backlog(self, channel_ids: list[str]) -> None:
        try:
            backlog = await self.source.select_channel(channel_ids)
        except Exception:
            log.exception("channel_select_failed", channel_ids=channel_ids)
            self.broadcast(ErrorFact(message="Failed to select channel"))
            return
        window = timedelta(minutes=self.config.backlog_window_minutes)
        recent = within_window(backlog, window)
        log.info("backlog_loaded", channel_ids=channel_ids, received=len(backlog), recent=len(recent))
        for message in sorted(recent, key=lambda m: m.date):
            self.intake(message.model_copy(update={"is_realtime": False}))

    # ── Classification and auto-trade ──────────────────────────

    async def _classify(self, message: Message) -> None:
        try:
            classification = await self.classifier.classify(message.text)
        except Exception:
            log.exception("classification_failed", channel_id=message.channel_id, message_id=message.id)
            classification = Classification.error()
        for signal in self.complete_classification(message, classification):
            await self._auto_trade(signal)

    def complete_classification(
        self,
        message: Message,
        classification: Classification,
    ) -> list[Signal]:
        """Store the outcome of one classifier call and broadcast it.

        Returns the newly stored signals.
        """
        outcome = apply_classification(message, classification, self.signals)
        for signal in outcome.signals:
            self.signals.add(signal)
            log.info(
                "signal_stored",
                signal_id=signal.id,
                symbol=signal.symbol,
                direction=signal.direction,
                confidence=signal.confidence,
                channel_id=signal.channel_id,
            )
        if outcome.message.ai_verdict == "error":
            log.warning("classification_error", message_id=message.id, reason=outcome.message.verdict_description)
        self.broadcast(*outcome.facts)
        return outcome.signals

    async def _auto_trade(self, signal: Signal) -> None:
        settings = self.settings.current
        if not should_auto_trade(signal, settings, self.config.auto_trade_threshold):
            log.info(
                "signal_awaiting_manual_action",
                signal_id=signal.id,
                confidence=signal.confidence,
                auto_trade_enabled=settings.auto_trade_enabled,
            )
            return

        log.info("auto_trade_submitting", signal_id=signal.id, symbol=signal.symbol, volume=settings.default_order_size)
        self._executing.add(signal.id)
        try:
            result = await self._place_order(
                signal.symbol,
                signal.direction,
                settings.default_order_size,
                signal.stop_loss,
                signal.first_target,
            )
        finally:
            self._executing.discard(signal.id)

        if result.success:
            transition = self.signals.transition(signal.id, "executed")
            if not transition.applied:
                log.warning(
                    "auto_trade_filled_after_settle",
                    signal_id=signal.id,
                    status=transition.signal.status,
                    order_id=result.order_id,
                )
            log.info("auto_trade_executed", signal_id=signal.id, order_id=result.order_id)
            self.broadcast(
                SignalUpdatedFact(signal=transition.signal),
                AutoTradeExecutedFact(signal=transition.signal, result=result),
                TradeResultFact(success=True, message=result.message),
            )
            await self.refresh_positions()
            await self.refresh_account()
        else:
            transition = self.signals.transition(signal.id, "failed", result.message)
            log.warning("auto_trade_failed", signal_id=signal.id, reason=result.message)
            self.broadcast(
                SignalUpdatedFact(signal=transition.signal),
                ErrorFact(message=f"Auto-trade failed: {result.message}"),
                TradeResultFact(success=False, message=result.message),
            )

    async def _place_order(
        self,
        symbol: str,
        direction: Direction,
        volume: float,
        stop_loss: float | None,
        take_profit: float | None,
    ) -> OrderResult:
        try:
            return await self.gateway.place_order(symbol, direction, volume, stop_loss, take_profit)
        except Exception as exc:
            log.exception("place_order_failed", symbol=symbol, direction=direction)
            return OrderResult(success=False, message=str(exc) or "order placement failed")

    # ── Gateway events and refresh ─────────────────────────────

    def handle_gateway_event(self, event: GatewayEvent) -> None:
        if isinstance(event, GatewayStatusChanged):
            log.info("gateway_status", status=event.status)
            self.broadcast(GatewayStatusFact(status=event.status))
            if event.status == "connected":
                self._spawn(self.refresh_all(), name="gateway-connected-refresh")
        elif isinstance(event, PositionsChanged):
            self.positions = {p.id: p for p in event.positions}
            self.broadcast(PositionsFact(positions=event.positions))
        elif isinstance(event, PositionChanged):
            self.positions[event.position.id] = event.position
            self.broadcast(PositionUpdateFact(position=event.position))
        elif isinstance(event, PositionRemoved):
            self.positions.pop(event.position_id, None)
            self.broadcast(PositionClosedFact(position_id=event.position_id))
        elif isinstance(event, QuotesChanged):
            self.markets = list(event.quotes)
            self.broadcast(MarketsFact(markets=self.markets))

    async def refresh_account(self) -> None:
        try:
            account = await self.gateway.get_account_snapshot()
        except Exception:
            log.exception("account_refresh_failed")
            return
        if account is not None:
            self.account = account
            self.broadcast(AccountInfoFact(account=account))

    async def refresh_positions(self) -> None:
        try:
            positions = await self.gateway.get_positions()
        except Exception:
            log.exception("positions_refresh_failed")
            return
        self.positions = {p.id: p for p in positions}
        self.broadcast(PositionsFact(positions=positions))

    async def refresh_markets(self) -> None:
        try:
            markets = await self.gateway.get_market_quotes()
        except Exception:
            log.exception("markets_refresh_failed")
            return
        self.markets = markets
        self.broadcast(MarketsFact(markets=markets))

    async def refresh_history(self) -> None:
        lookback = timedelta(days=self.config.history_lookback_days)
        try:
            trades = await self.gateway.get_trade_history(lookback)
        except Exception:
            log.exception("history_refresh_failed")
            return
        self.history = trades
        self.broadcast(HistoryFact(trades=trades))

    async def refresh_account_and_markets(self) -> None:
        await self.refresh_account()
        await self.refresh_markets()

    async def refresh_all(self) -> None:
        await self.refresh_account()
        await self.refresh_positions()
        await self.refresh_markets()
        await self.refresh_history()

    # ── Observers ──────────────────────────────────────────────

    def initial_sync(self) -> list[Fact]:
        """Full catch-up for a newly connected observer, from cached state."""
        settings = self.settings.current
        facts: list[Fact] = []
        if self.log_buffer is not None:
            facts.append(LogsFact(logs=self.log_buffer.recent()))
        facts += [
            AutoTradeEnabledFact(enabled=settings.auto_trade_enabled),
            DefaultSizeUpdatedFact(size=settings.default_order_size),
            SavedChannelFact(channel_id=settings.selected_channel_id),
            ChannelsSelectedFact(channel_ids=settings.selected_channel_ids),
            SourceStatusFact(status=self.source.status),
            GatewayStatusFact(status=self.gateway.status),
        ]
        if self.source.auth_step is not None:
            facts += [AuthRequiredFact(), AuthStepFact(step=self.source.auth_step)]
        if self.source.status == "connected" and self.channels:
            facts.append(ChannelsFact(channels=self.channels))
        if self.account is not None:
            facts.append(AccountInfoFact(account=self.account))
        facts.append(PositionsFact(positions=list(self.positions.values())))
        if self.markets:
            facts.append(MarketsFact(markets=self.markets))
        if self.history:
            facts.append(HistoryFact(trades=self.history))
        facts += [SignalDetectedFact(signal=s) for s in self.signals.all()]
        return facts

    def connect_observer(self) -> Observer:
        """Attach a new observer, primed with the catch-up before any live fact."""
        observer = self.hub.create_observer()
        observer.preload([fact.to_wire() for fact in self.initial_sync()])
        self.hub.attach(observer)
        if self.gateway.status == "connected":
            self._spawn(self.refresh_all(), name=f"observer-{observer.id}-refresh")
        return observer

    def disconnect_observer(self, observer: Observer) -> None:
        self.hub.detach(observer)

    # ── Commands ───────────────────────────────────────────────

    async def handle_raw(self, raw: str | bytes | dict) -> None:
        """Parse and run one observer command; bad input becomes an error fact."""
        try:
            command = parse_command(raw)
        except CommandError as exc:
            log.warning("command_rejected", reason=str(exc))
            self.broadcast(ErrorFact(message=str(exc)))
            return
        await self.handle_command(command)

    async def handle_command(self, command: Command) -> None:
        log.info("command_received", command=command.type)
        try:
            await self._handlers[command.type](command)
        except Exception as exc:
            log.exception("command_failed", command=command.type)
            self.broadcast(ErrorFact(message=f"{command.type} failed: {exc}"))
        self._spawn(self._refresh_after_command(), name=f"after-{command.type}")

    async def _refresh_after_command(self) -> None:
        await self.refresh_positions()
        await self.refresh_account()

    async def _select_channel(self, command: SelectChannelCommand) -> None:
        ids = command.channel_id
        self.settings.update(selected_channel_ids=ids)
        self.broadcast(
            ChannelsSelectedFact(channel_ids=ids),
            SavedChannelFact(channel_id=self.settings.current.selected_channel_id),
        )
        if not ids:
            return
        if self.source.status != "connected":
            log.info("channel_select_deferred", channel_ids=ids, source_status=self.source.status)
            return
        await self._load_backlog(ids)

    async def _save_channel(self, command: SaveChannelCommand) -> None:
        self.settings.update(selected_channel_ids=command.channel_id)
        self.broadcast(
            ChannelsSelectedFact(channel_ids=command.channel_id),
            SavedChannelFact(channel_id=self.settings.current.selected_channel_id),
        )

    async def _execute_trade(self, command: ExecuteTradeCommand) -> None:
        signal = self.signals.get(command.signal_id)
        if signal is None:
            self.broadcast(
                ErrorFact(message="Signal not found"),
                TradeResultFact(success=False, message="Signal not found"),
            )
            return
        if not signal.is_pending:
            log.info("execute_ignored_settled", signal_id=signal.id, status=signal.status)
            self.broadcast(SignalUpdatedFact(signal=signal))
            return
        if signal.id in self._executing:
            log.info("execute_ignored_in_flight", signal_id=signal.id)
            self.broadcast(ErrorFact(message="An order for this signal is already in flight"))
            return

        self._executing.add(signal.id)
        try:
            result = await self._place_order(
                signal.symbol,
                signal.direction,
                command.volume,
                command.stop_loss if command.stop_loss is not None else signal.stop_loss,
                command.take_profit if command.take_profit is not None else signal.first_target,
            )
        finally:
            self._executing.discard(signal.id)

        if result.success:
            transition = self.signals.transition(signal.id, "executed")
            self.broadcast(
                SignalUpdatedFact(signal=transition.signal),
                TradeResultFact(
                    success=True,
                    message=f"{signal.direction} {signal.symbol} executed successfully",
                ),
            )
        else:
            transition = self.signals.transition(signal.id, "failed", result.message)
            self.broadcast(
                SignalUpdatedFact(signal=transition.signal),
                ErrorFact(message=result.message),
                TradeResultFact(success=False, message=result.message),
            )

    async def _dismiss_signal(self, command: DismissSignalCommand) -> None:
        if command.signal_id not in self.signals:
            self.broadcast(ErrorFact(message="Signal not found"))
            return
        transition = self.signals.transition(command.signal_id, "dismissed")
        if not transition.applied:
            log.info("dismiss_ignored_settled", signal_id=command.signal_id, status=transition.signal.status)
        self.broadcast(SignalUpdatedFact(signal=transition.signal))

    async def _manual_trade(self, command: ManualTradeCommand) -> None:
        symbol = normalize_symbol(command.symbol)
        result = await self._place_order(
            symbol, command.direction, command.volume, command.stop_loss, command.take_profit,
        )
        self._report(result, f"{command.direction} {symbol} executed successfully")

    async def _close_position(self, command: ClosePositionCommand) -> None:
        try:
            result = await self.gateway.close_position(command.position_id)
        except Exception as exc:
            log.exception("close_position_failed", position_id=command.position_id)
            result = OrderResult(success=False, message=str(exc) or "close failed")
        if result.success:
            self.positions.pop(command.position_id, None)
            self.broadcast(PositionClosedFact(position_id=command.position_id))
        self._report(result, "Position closed successfully")

    async def _modify_position(self, command: ModifyPositionCommand) -> None:
        try:
            result = await self.gateway.modify_position(
                command.position_id, command.stop_loss, command.take_profit,
            )
        except Exception as exc:
            log.exception("modify_position_failed", position_id=command.position_id)
            result = OrderResult(success=False, message=str(exc) or "modify failed")
        self._report(result, "Position modified successfully")

    def _report(self, result: OrderResult, success_message: str) -> None:
        if result.success:
            self.broadcast(TradeResultFact(success=True, message=success_message))
        else:
            self.broadcast(
                ErrorFact(message=result.message),
                TradeResultFact(success=False, message=result.message),
            )

    async def _toggle_auto_trade(self, command: ToggleAutoTradeCommand) -> None:
        settings = self.settings.update(auto_trade_enabled=command.enabled)
        log.info("auto_trade_toggled", enabled=settings.auto_trade_enabled)
        self.broadcast(AutoTradeEnabledFact(enabled=settings.auto_trade_enabled))

    async def _set_default_size(self, command: SetDefaultSizeCommand) -> None:
        settings = self.settings.update(default_order_size=command.size)
        self.broadcast(DefaultSizeUpdatedFact(size=settings.default_order_size))

    async def _disconnect_source(self, command: Any) -> None:
        await self.source.disconnect()
        self.recency.clear()
        self.channels = []
        self.broadcast(SourceDisconnectedFact())

    async def _reconnect_source(self, command: Any) -> None:
        await self.source.connect()

    async def _submit_phone(self, command: SubmitPhoneCommand) -> None:
        await self.source.submit_phone(command.phone)

    async def _submit_code(self, command: SubmitCodeCommand) -> None:
        await self.source.submit_code(command.code)

    async def _submit_password(self, command: SubmitPasswordCommand) -> None:
        await self.source.submit_password(command.password)

    # ── Read-only views ────────────────────────────────────────

    def tracked_signals(self) -> list[Signal]:
        return self.signals.all()

    def open_positions(self) -> list[Position]:
        return list(self.positions.values())

    def status(self) -> dict[str, Any]:
        return {
            "source": self.source.status,
            "gateway": self.gateway.status,
            "observers": self.hub.observer_count,
            "signals": len(self.signals),
            "in_flight": len(self._tasks),
        }
