"""
Consigne operator CLI.

Usage:
    consigne deposit-address
    consigne sweep
    consigne retry USER_ADDRESS [--wallet W] [--tx-id T] [--force]
    consigne refund USER_ADDRESS [--to ADDRESS]
    consigne complete USER_ADDRESS
    consigne show USER_ADDRESS
    consigne monitor [--once]
"""

import asyncio
import json
import sys
from typing import Any, Awaitable, Callable

import click
from pydantic import ValidationError as SettingsValidationError

from consigne.config.settings import load_config
from consigne.di.container import DIContainer
from consigne.domain.exceptions import (
    ConsigneException,
    EntityNotFoundError,
    VerificationFailedError,
)
from consigne.infrastructure.monitoring.logger import setup_logging

Operation = Callable[[DIContainer], Awaitable[Any]]


def _echo(payload: Any, err: bool = False) -> None:
    click.echo(json.dumps(payload, indent=2, default=str), err=err)


def _run(ctx: click.Context, operation: Operation) -> None:
    """Run one operation against a fresh container and print its result."""
    container: DIContainer = ctx.obj.get("container") or DIContainer(
        settings=ctx.obj["settings"]
    )

    async def runner() -> Any:
        await container.initialize()
        try:
            return await operation(container)
        finally:
            await container.shutdown()

    try:
        result = asyncio.run(runner())
    except ConsigneException as e:
        _echo({"error": e.code, "message": e.message}, err=True)
        sys.exit(1)

    _echo(result)


@click.group()
@click.option("--env", "-e", default=None, help="Environment (development, test)")
@click.pass_context
def cli(ctx, env):
    """Consigne - deposit reconciliation operations."""
    ctx.ensure_object(dict)
    if "container" in ctx.obj:
        return

    if "settings" not in ctx.obj:
        try:
            ctx.obj["settings"] = load_config(env=env)
        except SettingsValidationError as e:
            raise click.ClickException(f"Invalid configuration: {e}")

    settings = ctx.obj["settings"]
    setup_logging(level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)


@cli.command("deposit-address")
@click.pass_context
def deposit_address(ctx):
    """Print the protocol deposit address."""

    async def operation(container: DIContainer) -> dict:
        return {
            "deposit_address": container.manager.deposit_address,
            "amount_lovelace": container.manager.deposit_amount,
        }

    _run(ctx, operation)


@cli.command()
@click.pass_context
def sweep(ctx):
    """Verify every pending deposit that has a sender wallet."""

    async def operation(container: DIContainer) -> dict:
        report = await container.manager.auto_verify_all()
        return report.to_dict()

    _run(ctx, operation)


@cli.command()
@click.argument("user_address")
@click.option("--wallet", "-w", default=None, help="Sender wallet address")
@click.option("--tx-id", "-t", default=None, help="Deposit transaction id")
@click.option("--force", is_flag=True, help="Re-verify a verified deposit")
@click.pass_context
def retry(ctx, user_address, wallet, tx_id, force):
    """Re-run deposit verification for a user."""

    async def operation(container: DIContainer) -> dict:
        outcome = await container.manager.retry_verification(
            user_address,
            sender_wallet_address=wallet,
            tx_id=tx_id,
            force=force,
        )
        if not outcome.success:
            raise VerificationFailedError(outcome.reason, outcome.message)
        return outcome.to_dict()

    _run(ctx, operation)


@cli.command()
@click.argument("user_address")
@click.option("--to", "destination", default=None, help="Refund destination")
@click.pass_context
def refund(ctx, user_address, destination):
    """Refund a verified deposit."""

    async def operation(container: DIContainer) -> dict:
        result = await container.manager.process_refund(
            user_address, refund_destination=destination
        )
        return result.to_dict()

    _run(ctx, operation)


@cli.command()
@click.argument("user_address")
@click.pass_context
def complete(ctx, user_address):
    """Mark a verified signup as completed."""

    async def operation(container: DIContainer) -> dict:
        tx_id = await container.manager.complete_signup(user_address)
        return {"user_address": user_address, "deposit_tx_id": tx_id}

    _run(ctx, operation)


@cli.command()
@click.argument("user_address")
@click.pass_context
def show(ctx, user_address):
    """Show a deposit record and its journaled transactions."""

    async def operation(container: DIContainer) -> dict:
        record = await container.manager.get_deposit(user_address)
        if record is None:
            raise EntityNotFoundError("DepositRecord", user_address)

        transactions = await container.transaction_repository.list_by_user(
            user_address
        )
        payload = record.to_dict()
        payload["transactions"] = [t.to_dict() for t in transactions]
        return payload

    _run(ctx, operation)


@cli.command()
@click.option("--once", is_flag=True, help="Run a single cycle and exit")
@click.pass_context
def monitor(ctx, once):
    """Run the deposit monitor."""

    async def operation(container: DIContainer) -> dict:
        deposit_monitor = container.monitor
        if once:
            return await deposit_monitor.run_once()

        await deposit_monitor.start()
        try:
            while deposit_monitor.is_running:
                await asyncio.sleep(1)
        finally:
            await deposit_monitor.stop()
        return deposit_monitor.get_status()

    try:
        _run(ctx, operation)
    except KeyboardInterrupt:
        click.echo("Monitor stopped")


def main():
    """Entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
