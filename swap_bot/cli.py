#!/usr/bin/env python3
"""
Swap Bot CLI
============

Commands:
- run           start the swap lanes (default)
- status        show wallet balances and lane assignments
- encrypt-keys  encrypt a plaintext key list

Usage:
    swap-bot run
    swap-bot --config ./config.yaml run --dry-run
    swap-bot status
    swap-bot encrypt-keys --input pk.txt --output keys.enc

Exit codes: 0 on clean shutdown or after maxCycles, 1 on a fatal error.
"""

import os
import sys
import signal
import argparse
import getpass
from typing import List, Optional

from rich import box
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .allocator import build_lane_assignments
from .chain import connect
from .config import ConfigManager
from .logging_utils import console, register_secrets, setup_logging
from .orchestrator import LaneOrchestrator
from .utils import ConfigError, ErrorKind, KeysError, error_reason, format_units
from .wallet import SecureKeyManager, load_private_keys, load_wallet_secrets, open_wallet

MIN_PASSWORD_LENGTH = 8


def print_banner():
    """Print the CLI banner."""
    console.print(Panel(
        f"Auto Swap Bot v{__version__}\nRandomized native -> token swaps on Tea Sepolia",
        style="bold cyan",
        box=box.DOUBLE,
    ))


def get_password(prompt: str = "Enter key file password: ") -> str:
    """Read a password from the terminal, enforcing a minimum length."""
    console.print(f"[yellow]{prompt}[/yellow]")
    password = getpass.getpass("> ")

    if len(password) < MIN_PASSWORD_LENGTH:
        raise KeysError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    return password


def _load(args):
    config = ConfigManager(args.config).load_config()
    logger = setup_logging(config.logging.level, config.logging.dir)
    secrets = load_wallet_secrets(config.keys)
    register_secrets(secrets)
    return config, logger, secrets


def run_command(args) -> int:
    """Handle run command - start the lanes and block until they stop."""
    config, logger, secrets = _load(args)
    if args.dry_run:
        config.dry_run = True

    logger.info("Initializing Auto Swap Script for Tea Sepolia")
    if config.dry_run:
        logger.warning("DRY RUN: transactions will be estimated but never sent")
    logger.info(f"SwapManager initialized with {len(secrets)} wallet(s)")

    w3 = connect(config.network)
    reports = LaneOrchestrator(config, secrets, w3, logger=logger).run()

    crashed = [r for r in reports if r.error]
    if crashed:
        logger.error(f"{len(crashed)} lane(s) crashed")
        return 1
    logger.info("All lanes finished")
    return 0


def status_command(args) -> int:
    """Handle status command - show balances and lane assignments."""
    print_banner()
    config, _, secrets = _load(args)
    w3 = connect(config.network)

    lane_of = {}
    for assignment in build_lane_assignments(len(secrets), config.threads):
        for wallet_index in assignment.wallet_indices:
            lane_of[wallet_index] = assignment.lane_id

    table = Table(title="Wallets", box=box.ROUNDED)
    table.add_column("#", style="cyan", width=4)
    table.add_column("Lane", style="blue", justify="right")
    table.add_column("Address", style="dim")
    table.add_column(config.network.native_symbol, style="green", justify="right")

    total = 0
    for index, secret in enumerate(secrets):
        wallet = open_wallet(secret, index)
        try:
            balance = w3.eth.get_balance(wallet.address)
            total += balance
            balance_text = format_units(balance)
        except Exception as e:
            balance_text = f"[red]{error_reason(e)}[/red]"
        table.add_row(str(index), str(lane_of[index]), wallet.address, balance_text)

    console.print(table)
    console.print(
        f"\n[bold]Total:[/bold] {format_units(total)} {config.network.native_symbol} "
        f"across {len(secrets)} wallet(s), {config.threads} lane(s)"
    )
    return 0


def encrypt_keys_command(args) -> int:
    """Handle encrypt-keys command - write an encrypted copy of a key list."""
    print_banner()
    keys = load_private_keys(args.input)

    password = os.environ.get(args.password_env) if args.password_env else None
    if password is None:
        password = get_password("Create encryption password: ")
        console.print("[yellow]Confirm password:[/yellow]")
        if getpass.getpass("> ") != password:
            raise KeysError("Passwords don't match")

    SecureKeyManager(args.output).encrypt_and_save(keys, password)
    console.print(f"[green]Encrypted {len(keys)} key(s) to {args.output}[/green]")
    console.print(
        f"[dim]Set keys.file: {args.output} and keys.encrypted: true in the config, "
        f"then remove {args.input}[/dim]"
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swap-bot",
        description="Auto swap bot for Uniswap-V2 style routers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with ./config.yaml and ./pk.txt
  swap-bot run

  # Estimate every swap without sending
  swap-bot run --dry-run

  # Show balances and lane assignments
  swap-bot status

  # Encrypt the key list
  swap-bot encrypt-keys --input pk.txt --output keys.enc
        """
    )

    # Global options
    parser.add_argument("--config", default="config.yaml", help="Path to config file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Start the swap lanes")
    run_parser.add_argument("--dry-run", action="store_true", help="Estimate swaps without sending")

    # Status command
    subparsers.add_parser("status", help="Show wallet balances and lanes")

    # Encrypt command
    encrypt_parser = subparsers.add_parser("encrypt-keys", help="Encrypt a plaintext key file")
    encrypt_parser.add_argument("--input", default="pk.txt", help="Plaintext key file")
    encrypt_parser.add_argument("--output", default="keys.enc", help="Encrypted output file")
    encrypt_parser.add_argument(
        "--password-env", default=None, help="Read the password from this environment variable"
    )

    parser.set_defaults(command="run", dry_run=False)
    return parser


COMMANDS = {
    "run": run_command,
    "status": status_command,
    "encrypt-keys": encrypt_keys_command,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # Console-only logging until the config names a log directory
    logger = setup_logging("INFO", log_dir=None)

    # SIGTERM takes the same path as Ctrl+C
    previous_handler = signal.signal(signal.SIGTERM, signal.default_int_handler)

    try:
        return COMMANDS[args.command](args)
    except KeyboardInterrupt:
        logger.info("Service is shutting down gracefully...")
        return 0
    except ConfigError as e:
        logger.error(f"Configuration error ({ErrorKind.CONFIG_MISSING.value}): {error_reason(e)}")
        return 1
    except KeysError as e:
        logger.error(f"Key error ({ErrorKind.KEYS_MISSING.value}): {error_reason(e)}")
        return 1
    except Exception as e:
        logger.critical(f"Fatal error: {error_reason(e)}")
        return 1
    finally:
        signal.signal(signal.SIGTERM, previous_handler)


if __name__ == "__main__":
    sys.exit(main())
