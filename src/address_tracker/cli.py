"""
Address tracker CLI - inspect balance and transaction history of an address.
"""

from __future__ import annotations

import asyncio
import sys
from datetime import UTC, datetime
from typing import Any

import typer
from loguru import logger
from pydantic import ValidationError

from address_tracker.backends.base import AddressDataSource
from address_tracker.backends.esplora import EsploraBackend
from address_tracker.balance import confirmed_balance, pending_balance, total_balance
from address_tracker.config import Settings, get_settings
from address_tracker.events import EventStream, InterestRegistry
from address_tracker.lifecycle import AddressTracker
from address_tracker.models import (
    Address,
    AddressResolutionError,
    EnrichedTransaction,
    TransactionType,
)
from address_tracker.session import AddressSession, SessionState

app = typer.Typer(
    name="address-tracker",
    help="Track the balance and transaction history of a Bitcoin address",
    add_completion=False,
)


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def load_settings(**options: Any) -> Settings:
    """Settings from environment with command line options applied on top."""
    try:
        return get_settings(**options)
    except ValidationError as e:
        raise typer.BadParameter(str(e)) from e


def format_sats(value: int | None) -> str:
    if value is None:
        return "-"
    return f"{value:,} sats ({value / 1e8:.8f} BTC)"


def format_transaction(tx: EnrichedTransaction) -> str:
    if tx.type == TransactionType.SENT:
        direction = "SENT    "
    elif tx.type == TransactionType.RECEIVED:
        direction = "RECEIVED"
    else:
        direction = "-       "

    if tx.is_confirmed and tx.block_time is not None:
        when = datetime.fromtimestamp(tx.block_time, UTC).strftime("%Y-%m-%d %H:%M:%S")
    elif tx.is_confirmed:
        when = "confirmed"
    else:
        when = "unconfirmed"

    value = f"{tx.value:>15,} sats" if tx.value is not None else f"{'-':>15}     "
    return f"{direction} {value}  {when:<19}  {tx.txid}"


def format_summary(state: SessionState, network: str = "") -> str:
    lines = [f"Address:   {state.address_id or '-'}"]
    if network:
        lines.append(f"Network:   {network}")
    lines.extend(
        [
            f"Confirmed: {format_sats(confirmed_balance(state.address))}",
            f"Pending:   {format_sats(pending_balance(state.address))}",
            f"Total:     {format_sats(total_balance(state.address))}",
        ]
    )
    if state.error is not None:
        lines.append(f"Error:     {state.error}")

    lines.append(f"\nTransactions ({len(state.transactions)}):")
    if not state.transactions:
        lines.append("  (none)")
    for tx in state.transactions:
        lines.append(f"  {format_transaction(tx)}")
    return "\n".join(lines)


async def track_address(
    backend: AddressDataSource,
    address_id: str,
    pages: int = 1,
    network: str = "",
) -> SessionState:
    """Run a tracker for one address until the requested pages are loaded."""
    session = AddressSession(backend)
    route_changes: EventStream[str | None] = EventStream("route")
    network_changes: EventStream[str] = EventStream("network")
    tracker = AddressTracker(session, route_changes, network_changes, InterestRegistry())

    async with tracker:
        network_changes.emit(network)
        route_changes.emit(address_id)
        await session.wait_idle()

        for _ in range(pages - 1):
            if session.error is not None or not session.transactions:
                break
            loaded = len(session.transactions)
            await session.load_more()
            if len(session.transactions) == loaded:
                logger.debug("No more transactions")
                break

    return session.state


@app.command()
def show(
    address: str = typer.Argument(..., help="Address to inspect"),
    network: str = typer.Option(None, "--network", "-n", help="Bitcoin network"),
    api_url: str = typer.Option(None, "--api-url", envvar="ESPLORA_API_URL"),
    pages: int = typer.Option(None, "--pages", "-p", min=1, help="Transaction pages to load"),
    log_level: str = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Show balances and transaction history of an address."""
    settings = load_settings(
        network=network, esplora_api_url=api_url, max_pages=pages, log_level=log_level
    )
    setup_logging(settings.log_level)

    async def _run() -> SessionState:
        backend = EsploraBackend(api_url=settings.get_api_url(), timeout=settings.request_timeout)
        try:
            return await track_address(
                backend, address, pages=settings.max_pages, network=settings.network
            )
        finally:
            await backend.close()

    state = asyncio.run(_run())
    print(format_summary(state, network=settings.network))
    if state.error is not None:
        raise typer.Exit(code=1)


@app.command()
def balance(
    address: str = typer.Argument(..., help="Address to inspect"),
    network: str = typer.Option(None, "--network", "-n", help="Bitcoin network"),
    api_url: str = typer.Option(None, "--api-url", envvar="ESPLORA_API_URL"),
    log_level: str = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Show only the confirmed and pending balance of an address."""
    settings = load_settings(network=network, esplora_api_url=api_url, log_level=log_level)
    setup_logging(settings.log_level)

    async def _run() -> Address:
        backend = EsploraBackend(api_url=settings.get_api_url(), timeout=settings.request_timeout)
        try:
            return await backend.resolve_address(address)
        finally:
            await backend.close()

    try:
        resolved = asyncio.run(_run())
    except AddressResolutionError as e:
        logger.error(f"Failed to resolve address: {e}")
        raise typer.Exit(code=1) from e

    print(f"Confirmed: {format_sats(confirmed_balance(resolved))}")
    print(f"Pending:   {format_sats(pending_balance(resolved))}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
