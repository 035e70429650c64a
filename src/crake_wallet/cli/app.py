"""CLI for crake-wallet - send, track and reconcile transactions from the terminal."""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from crake_wallet.errors import EstimationError, SubmissionError, ValidationError, WalletError

app = typer.Typer(
    name="crake-wallet",
    help="Send native coins and ERC-20 tokens across EVM chains and track their status.",
    no_args_is_help=True,
)
console = Console()

PRIVATE_KEY_ENV = "CRAKE_WALLET_PRIVATE_KEY"

_home: Path | None = None


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        console.print(f"crake-wallet {version('crake-wallet')}")
        raise typer.Exit()


@app.callback()
def main(
    home: Path = typer.Option(
        None,
        "--home",
        help="Directory containing .crake-wallet/ (default: current directory)",
        envvar="CRAKE_WALLET_HOME",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show log output"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Send native coins and ERC-20 tokens across EVM chains and track their status."""
    global _home
    _home = home
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


def _run(coro):
    """Run an async function synchronously."""
    try:
        loop = asyncio.get_event_loop()
        if loop.is_running():
            import concurrent.futures
            with concurrent.futures.ThreadPoolExecutor() as pool:
                return pool.submit(asyncio.run, coro).result()
        return loop.run_until_complete(coro)
    except RuntimeError:
        return asyncio.run(coro)


def _load_account():
    """Build a signing account from the environment, if a key is set."""
    key = os.environ.get(PRIVATE_KEY_ENV)
    if not key:
        return None
    from eth_account import Account
    return Account.from_key(key)


def _short(address: str) -> str:
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"


def _format_ts(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


STATUS_COLORS = {"pending": "yellow", "confirmed": "green", "failed": "red"}


# ------------------------------------------------------------------
# Setup
# ------------------------------------------------------------------

@app.command("init")
def init(
    chain: str = typer.Option("ethereum", "--chain", "-c", help="Default chain"),
    address: str = typer.Option(None, "--address", "-a", help="Default address for read-only commands"),
):
    """Create .crake-wallet/config.yaml with defaults."""
    from crake_wallet.config import WalletConfig, get_data_dir, save_config

    try:
        config = WalletConfig(default_chain=chain, address=address)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    config_path = get_data_dir(_home) / "config.yaml"
    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        raise typer.Exit(1)
    save_config(config, config_path)
    console.print(f"[green]Wrote {config_path}[/green]")


@app.command("chains")
def chains():
    """List supported chains."""
    from crake_wallet.wallet.chains import CHAINS

    table = Table(title="Supported Chains")
    table.add_column("Name", style="cyan")
    table.add_column("Chain ID", justify="right")
    table.add_column("Symbol")
    table.add_column("Explorer", style="dim")
    for chain in CHAINS.values():
        table.add_row(chain.name, str(chain.chain_id), chain.native_symbol, chain.explorer_url)
    console.print(table)


# ------------------------------------------------------------------
# Balances and sending
# ------------------------------------------------------------------

@app.command("balance")
def balance(
    chain: str = typer.Option(None, "--chain", "-c", help="Chain name (ethereum, polygon, base, arbitrum, optimism)"),
):
    """Show native token balances."""
    from crake_wallet.wallet.manager import WalletManager

    async def _balance():
        manager = await WalletManager.load(_home, account=_load_account())
        try:
            return await manager.get_balance(chain_name=chain)
        finally:
            await manager.shutdown()

    result = _run(_balance())

    if "error" in result:
        console.print(f"[red]{result['error']}[/red]")
        raise typer.Exit(1)

    table = Table(title="Wallet Balances")
    table.add_column("Chain", style="cyan")
    table.add_column("Balance", justify="right")
    table.add_column("Symbol")
    table.add_column("Status", style="dim")
    for name, info in result.items():
        err = info.get("error")
        table.add_row(
            name,
            info["balance"],
            info["symbol"],
            f"[red]{err}[/red]" if err else "[green]OK[/green]",
        )
    console.print(table)


@app.command("send")
def send(
    amount: str = typer.Argument(help="Amount to send (e.g. 0.01)"),
    to: str = typer.Option(..., "--to", "-t", help="Recipient address (0x...) or saved contact name"),
    chain: str = typer.Option(None, "--chain", "-c", help="Chain to send on"),
    token: str = typer.Option(None, "--token", help="ERC-20 symbol or contract address"),
    gas_limit: str = typer.Option(None, "--gas-limit", help="Custom gas limit"),
    gas_price: str = typer.Option(None, "--gas-price", help="Custom gas price in gwei"),
    data: str = typer.Option(None, "--data", help="Hex calldata for native sends"),
    sender: str = typer.Option(None, "--from", help="Node-managed sending address (when no key is set)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Estimate, review and send a transaction."""
    from crake_wallet.wallet.chains import get_chain
    from crake_wallet.wallet.manager import WalletManager
    from crake_wallet.wallet.tokens import find_token

    async def _send():
        manager = await WalletManager.load(_home, account=_load_account())
        try:
            chain_info = get_chain(chain or manager.config.default_chain, manager.config.rpc_urls)
            session = manager.open_send(chain_info.name, sender=sender)

            token_ref = None
            if token:
                token_ref = find_token(chain_info.chain_id, token)
                if token_ref is None:
                    raise WalletError(f"Unknown token '{token}' on {chain_info.name}")

            if await session.prefill_recipient(manager.address_book, to) is None:
                session.edit(recipient=to)
            session.edit(amount=amount, data=data, token=token_ref)
            session.set_custom_gas(gas_limit=gas_limit, gas_price_gwei=gas_price)

            approval = await session.review()
            unit = token_ref.symbol if token_ref else chain_info.native_symbol
            console.print(Panel(
                f"Sending:   [bold]{approval.amount} {unit}[/bold]\n"
                f"To:        {approval.recipient}\n"
                f"Chain:     {chain_info.name}\n"
                f"Gas:       {approval.gas_limit} @ {approval.gas_price} wei\n"
                f"Fee:       {approval.estimated_cost} {chain_info.native_symbol}\n"
                f"[bold]Total:     {approval.total_cost} {chain_info.native_symbol}[/bold]"
                + (f" [dim](+ {approval.amount} {unit})[/dim]" if token_ref else ""),
                title="Confirm Transaction",
            ))
            console.print(
                "[dim]Double-check the recipient address and amount. "
                "Transactions cannot be reversed.[/dim]"
            )
            if not yes and not typer.confirm("Confirm & send?"):
                session.cancel()
                return None, chain_info
            record = await session.confirm()
            return record, chain_info
        finally:
            await manager.shutdown()

    try:
        record, chain_info = _run(_send())
    except ValidationError as e:
        for field, reason in e.errors.items():
            console.print(f"[red]{field}:[/red] {reason}")
        raise typer.Exit(1)
    except EstimationError as e:
        console.print(f"[red]Cannot estimate fee:[/red] {e}")
        raise typer.Exit(1)
    except SubmissionError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except (WalletError, ValueError, KeyError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if record is None:
        console.print("[yellow]Cancelled.[/yellow]")
        raise typer.Exit(1)

    console.print(Panel(
        f"[bold green]Transaction sent![/bold green]\n\n"
        f"Tx: [cyan]{record.hash}[/cyan]\n"
        f"Explorer: {chain_info.tx_url(record.hash)}",
        title="Transaction Sent",
    ))


# ------------------------------------------------------------------
# History
# ------------------------------------------------------------------

@app.command("history")
def history(
    address: str = typer.Option(None, "--address", "-a", help="Only show transactions involving this address"),
    refresh: bool = typer.Option(False, "--refresh", "-r", help="Reconcile pending transactions first"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum rows to show"),
):
    """Show transaction history, newest first."""
    from crake_wallet.wallet.manager import WalletManager

    async def _history():
        manager = await WalletManager.load(_home, account=_load_account())
        try:
            if refresh:
                await manager.reconcile()
            owner = address or manager.address
            if owner:
                return await manager.history.query_by_address(owner)
            return await manager.history.list_all()
        finally:
            await manager.shutdown()

    records = _run(_history())
    if not records:
        console.print("[dim]No transactions yet.[/dim]")
        return

    table = Table(title="Transaction History")
    table.add_column("Time", style="dim")
    table.add_column("Direction")
    table.add_column("Amount", justify="right")
    table.add_column("To", style="dim")
    table.add_column("Status")
    table.add_column("Hash", style="cyan")
    for r in records[:limit]:
        color = STATUS_COLORS.get(r.status.value, "white")
        unit = r.token.symbol if r.token else ""
        table.add_row(
            _format_ts(r.timestamp),
            r.direction.value,
            f"{r.amount} {unit}".strip(),
            _short(r.to_address),
            f"[{color}]{r.status.value}[/{color}]",
            _short(r.hash),
        )
    console.print(table)


@app.command("reconcile")
def reconcile():
    """Check pending transactions against the chain."""
    from crake_wallet.wallet.manager import WalletManager

    async def _reconcile():
        manager = await WalletManager.load(_home, account=_load_account())
        try:
            return await manager.reconcile()
        finally:
            await manager.shutdown()

    results = _run(_reconcile())
    if not results:
        console.print("[dim]No pending transactions.[/dim]")
        return
    for name, summary in results.items():
        console.print(
            f"[bold]{name}:[/bold] {summary.checked} checked, "
            f"[green]{summary.confirmed} confirmed[/green], "
            f"[red]{summary.failed} failed[/red], "
            f"[yellow]{summary.still_pending} pending[/yellow]"
            + (f", {summary.errors} lookup error(s)" if summary.errors else "")
        )


@app.command("history-clear")
def history_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Delete the local transaction history."""
    from crake_wallet.wallet.manager import WalletManager

    if not yes:
        typer.confirm("Clear all transaction history?", abort=True)

    async def _clear():
        manager = await WalletManager.load(_home)
        try:
            await manager.history.clear()
        finally:
            await manager.shutdown()

    _run(_clear())
    console.print("[bold]Transaction history cleared.[/bold]")


# ------------------------------------------------------------------
# contacts sub-commands
# ------------------------------------------------------------------

contacts_app = typer.Typer(
    name="contacts",
    help="Manage saved recipient addresses.",
    no_args_is_help=True,
)
app.add_typer(contacts_app, name="contacts")


@contacts_app.command("add")
def contacts_add(
    name: str = typer.Argument(help="Display name"),
    address: str = typer.Argument(help="Address (0x...)"),
    note: str = typer.Option(None, "--note", help="Optional note"),
):
    """Save a new contact."""
    from crake_wallet.wallet.manager import WalletManager

    async def _add():
        manager = await WalletManager.load(_home)
        try:
            return await manager.address_book.add(name, address, note)
        finally:
            await manager.shutdown()

    try:
        entry = _run(_add())
    except ValidationError as e:
        for field, reason in e.errors.items():
            console.print(f"[red]{field}:[/red] {reason}")
        raise typer.Exit(1)
    console.print(f"Saved [cyan]{entry.name}[/cyan] ({entry.address}) id={entry.id}")


@contacts_app.command("list")
def contacts_list():
    """List saved contacts, most recently used first."""
    from crake_wallet.wallet.manager import WalletManager

    async def _list():
        manager = await WalletManager.load(_home)
        try:
            return await manager.address_book.list_entries()
        finally:
            await manager.shutdown()

    entries = _run(_list())
    if not entries:
        console.print("[dim]No saved addresses.[/dim]")
        return

    table = Table(title="Address Book")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Address")
    table.add_column("Last used", style="dim")
    table.add_column("Note")
    for e in entries:
        table.add_row(
            e.id,
            e.name,
            e.address,
            _format_ts(e.last_used) if e.last_used else "-",
            e.note or "",
        )
    console.print(table)


@contacts_app.command("use")
def contacts_use(
    name_or_address: str = typer.Argument(help="Contact name or saved address"),
):
    """Mark a contact as used and print its address."""
    from crake_wallet.wallet.manager import WalletManager

    async def _use():
        manager = await WalletManager.load(_home)
        try:
            address = await manager.address_book.lookup(name_or_address)
            if address is None:
                return None
            return await manager.address_book.select(address)
        finally:
            await manager.shutdown()

    entry = _run(_use())
    if entry is None:
        console.print(f"[red]No contact named '{name_or_address}'.[/red]")
        raise typer.Exit(1)
    console.print(entry.address)


@contacts_app.command("remove")
def contacts_remove(
    entry_id: str = typer.Argument(help="Contact ID to remove"),
):
    """Remove a saved contact."""
    from crake_wallet.wallet.manager import WalletManager

    async def _remove():
        manager = await WalletManager.load(_home)
        try:
            return await manager.address_book.remove(entry_id)
        finally:
            await manager.shutdown()

    if not _run(_remove()):
        console.print(f"[red]Contact {entry_id} not found.[/red]")
        raise typer.Exit(1)
    console.print(f"[bold]Contact {entry_id} removed.[/bold]")


if __name__ == "__main__":
    app()
