"""Fill, margin and P&L calculations — pure functions."""

from __future__ import annotations

from decimal import Decimal


def apply_slippage(
    price: Decimal,
    direction: str,
    slippage_pct: float,
    is_entry: bool,
) -> Decimal:
    """Apply slippage to a price based on direction and entry/exit.

    For entries:
    - BUY: pay more (price * (1 + slippage))
    - SELL: receive less (price * (1 - slippage))

    For exits the sides swap.
    """
    slippage = Decimal(str(slippage_pct))
    pays_more = (direction == "BUY") == is_entry
    if pays_more:
        return price * (1 + slippage)
    return price * (1 - slippage)


def calculate_pnl(
    direction: str,
    entry_price: Decimal,
    exit_price: Decimal,
    volume: Decimal,
    contract_size: Decimal = Decimal("1"),
) -> Decimal:
    """Realised P&L for a closed position.

    BUY:  (exit - entry) * volume * contract_size
    SELL: (entry - exit) * volume * contract_size
    """
    units = volume * contract_size
    if direction == "BUY":
        return (exit_price - entry_price) * units
    return (entry_price - exit_price) * units


def calculate_fees(
    entry_price: Decimal,
    exit_price: Decimal,
    volume: Decimal,
    fee_pct: float,
    contract_size: Decimal = Decimal("1"),
) -> Decimal:
    """Total fees for a round-trip trade, charged on notional at both legs."""
    fee_rate = Decimal(str(fee_pct))
    units = volume * contract_size
    return (entry_price * units + exit_price * units) * fee_rate


def calculate_margin(
    price: Decimal,
    volume: Decimal,
    leverage: int,
    contract_size: Decimal = Decimal("1"),
) -> Decimal:
    """Margin held for an open position: notional / leverage."""
    if leverage <= 0:
        return price * volume * contract_size
    return price * volume * contract_size / Decimal(leverage)


def validate_levels(
    direction: str,
    price: Decimal,
    stop_loss: float | None,
    take_profit: float | None,
) -> str | None:
    """Return an error message if stop/target sit on the wrong side of *price*."""
    if direction == "BUY":
        if stop_loss is not None and Decimal(str(stop_loss)) >= price:
            return f"Stop loss {stop_loss} must be below the entry price for a BUY"
        if take_profit is not None and Decimal(str(take_profit)) <= price:
            return f"Take profit {take_profit} must be above the entry price for a BUY"
    else:
        if stop_loss is not None and Decimal(str(stop_loss)) <= price:
            return f"Stop loss {stop_loss} must be above the entry price for a SELL"
        if take_profit is not None and Decimal(str(take_profit)) >= price:
            return f"Take profit {take_profit} must be below the entry price for a SELL"
    return None
