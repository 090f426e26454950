"""
Jormungandr Wallet CLI - Recover wallets, inspect block0 funds, convert and vote.
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from loguru import logger
from pydantic import ValidationError

from jorwallet.config import WalletConfig, get_config
from jorwallet.errors import WalletError
from jorwallet.wallet.conversion import split_dust
from jorwallet.wallet.service import Wallet
from jorwallet.wallet.vote import build_proposal, build_vote_plan

app = typer.Typer(
    name="jor-wallet",
    help="Jormungandr Wallet Management",
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


def load_mnemonic(mnemonic: str | None, mnemonic_file: Path | None) -> str:
    """
    Load mnemonic from argument, file, or environment variable.

    Priority:
    1. --mnemonic argument (or MNEMONIC environment variable)
    2. --mnemonic-file argument

    Raises:
        ValueError: If no mnemonic source is available
    """
    if mnemonic:
        return mnemonic

    if mnemonic_file:
        if not mnemonic_file.exists():
            raise ValueError(f"Mnemonic file not found: {mnemonic_file}")
        return mnemonic_file.read_text().strip()

    raise ValueError("Mnemonic required. Use --mnemonic, --mnemonic-file, or MNEMONIC env var")


def _open_wallet(
    mnemonic: str | None,
    mnemonic_file: Path | None,
    passphrase: str | None,
    config: WalletConfig | None = None,
) -> Wallet:
    try:
        resolved = load_mnemonic(mnemonic, mnemonic_file)
    except ValueError as e:
        logger.error(str(e))
        raise typer.Exit(1)

    try:
        return Wallet.recover(resolved, (passphrase or "").encode(), config)
    except WalletError as e:
        logger.error(f"Recovery failed: {e}")
        raise typer.Exit(1)


def _load_config(**overrides: int | str | None) -> WalletConfig:
    try:
        config = get_config(**overrides)
    except ValidationError as e:
        # logging is not configured yet
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(1)
    setup_logging(config.log_level)
    return config


def _read_block0(path: Path) -> bytes:
    if not path.exists():
        logger.error(f"Block0 file not found: {path}")
        raise typer.Exit(1)
    return path.read_bytes()


@app.command()
def recover(
    mnemonic: str = typer.Option(None, "--mnemonic", envvar="MNEMONIC", help="BIP39 mnemonic"),
    mnemonic_file: Path | None = typer.Option(
        None, "--mnemonic-file", "-f", help="Path to mnemonic file"
    ),
    passphrase: str = typer.Option(None, "--passphrase", envvar="PASSPHRASE"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Recover a wallet and print its identifier."""
    config = _load_config(log_level=log_level)

    with _open_wallet(mnemonic, mnemonic_file, passphrase, config) as wallet:
        typer.echo(f"Scheme:    {wallet.keys.scheme.value}")
        typer.echo(f"Wallet id: {wallet.id.hex()}")


@app.command()
def funds(
    block0: Path = typer.Option(..., "--block0", "-b", help="Path to the block0 file"),
    mnemonic: str = typer.Option(None, "--mnemonic", envvar="MNEMONIC", help="BIP39 mnemonic"),
    mnemonic_file: Path | None = typer.Option(
        None, "--mnemonic-file", "-f", help="Path to mnemonic file"
    ),
    passphrase: str = typer.Option(None, "--passphrase", envvar="PASSPHRASE"),
    gap_limit: int | None = typer.Option(None, "--gap-limit", "-g", help="Address gap limit"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Display the funds of the wallet found in block0."""
    config = _load_config(log_level=log_level, gap_limit=gap_limit)
    data = _read_block0(block0)

    with _open_wallet(mnemonic, mnemonic_file, passphrase, config) as wallet:
        try:
            settings = wallet.retrieve_funds(data)
        except WalletError as e:
            logger.error(f"Cannot read block0: {e}")
            raise typer.Exit(1)

        typer.echo(f"Block0:   {settings.block0_hash_hex}")
        typer.echo(f"Network:  {settings.discrimination.value}")
        typer.echo(f"Account:  {wallet.account_address(settings.discrimination)}")
        typer.echo(f"Fees:     {settings.fees.constant} + {settings.fees.coefficient} per in/out")
        typer.echo(f"\n{len(wallet.utxos)} UTXOs:")
        for utxo in wallet.utxos:
            typer.echo(
                f"  {utxo.fragment_id.hex()}:{utxo.output_index}  {utxo.value:>20}  {utxo.path}"
            )
        typer.echo(f"\nAccount value: {wallet.state.value}")
        typer.echo(f"Total value:   {wallet.total_value()}")


@app.command()
def convert(
    block0: Path = typer.Option(..., "--block0", "-b", help="Path to the block0 file"),
    mnemonic: str = typer.Option(None, "--mnemonic", envvar="MNEMONIC", help="BIP39 mnemonic"),
    mnemonic_file: Path | None = typer.Option(
        None, "--mnemonic-file", "-f", help="Path to mnemonic file"
    ),
    passphrase: str = typer.Option(None, "--passphrase", envvar="PASSPHRASE"),
    gap_limit: int | None = typer.Option(None, "--gap-limit", "-g", help="Address gap limit"),
    max_inputs: int | None = typer.Option(None, "--max-inputs", help="Inputs per transaction"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Build the transactions moving the block0 funds to the account (hex, one per line)."""
    config = _load_config(
        log_level=log_level, gap_limit=gap_limit, max_inputs_per_transaction=max_inputs
    )
    data = _read_block0(block0)

    with _open_wallet(mnemonic, mnemonic_file, passphrase, config) as wallet:
        try:
            settings = wallet.retrieve_funds(data)
            conversion = wallet.convert(settings)
        except WalletError as e:
            logger.error(f"Conversion failed: {e}")
            raise typer.Exit(1)

        for tx in conversion.transactions:
            typer.echo(tx.hex())
        unfunded, dust = split_dust(conversion.ignored, settings)
        if dust:
            logger.warning(
                f"{len(dust)} dust entries ignored (total {sum(e.value for e in dust)})"
            )
        if unfunded:
            logger.warning(
                f"{len(unfunded)} entries ignored, their batch cannot pay its fee "
                f"(total {sum(e.value for e in unfunded)})"
            )


@app.command()
def vote(
    block0: Path = typer.Option(..., "--block0", "-b", help="Path to the block0 file"),
    plan_id: str = typer.Option(..., "--plan-id", help="Vote plan id (hex, 32 bytes)"),
    proposal_index: int = typer.Option(..., "--proposal", help="Proposal index in the plan"),
    num_choices: int = typer.Option(..., "--num-choices", help="Number of options"),
    choice: int = typer.Option(..., "--choice", help="Chosen option"),
    payload_type: int = typer.Option(1, "--payload-type", help="1 public, 2 private"),
    value: int = typer.Option(0, "--value", help="Current account value"),
    counter: int = typer.Option(0, "--counter", help="Current account counter"),
    mnemonic: str = typer.Option(None, "--mnemonic", envvar="MNEMONIC", help="BIP39 mnemonic"),
    mnemonic_file: Path | None = typer.Option(
        None, "--mnemonic-file", "-f", help="Path to mnemonic file"
    ),
    passphrase: str = typer.Option(None, "--passphrase", envvar="PASSPHRASE"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Build a signed vote cast transaction (hex)."""
    config = _load_config(log_level=log_level)
    data = _read_block0(block0)

    try:
        plan_id_bytes = bytes.fromhex(plan_id)
    except ValueError:
        logger.error(f"Invalid vote plan id: {plan_id}")
        raise typer.Exit(1)

    with _open_wallet(mnemonic, mnemonic_file, passphrase, config) as wallet:
        try:
            settings = wallet.retrieve_funds(data)
            wallet.set_state(value, counter)
            plan = build_vote_plan(plan_id_bytes, payload_type)
            proposal = build_proposal(proposal_index, num_choices)
            tx = wallet.vote(settings, plan, proposal, choice)
        except WalletError as e:
            logger.error(f"Vote failed: {e}")
            raise typer.Exit(1)

        typer.echo(tx.hex())


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
