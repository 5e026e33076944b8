"""Accumulator CLI entry point."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from accumulator import __version__
from accumulator.config import Settings, get_settings
from accumulator.exceptions import AccumulatorError, ConfigurationInvalid, ShutdownRequested
from accumulator.pipeline import PipelineRunner, run_accumulator
from accumulator.scheduler import start_scheduler
from accumulator.storage import AuditSink
from accumulator.transactions import ShutdownSignal

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

# Reduce noise from HTTP libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("web3").setLevel(logging.WARNING)


CONFIG_TEMPLATE = """# Accumulator Configuration
# Operational parameters. Wallet address, private key and RPC URL belong in
# the .env file (NETWORK_URL, WALLET_ADDRESS, WALLET_PRIVATE_KEY), not here.

chain:
  chain_id: 137

tokens:
  award_token: WMATIC
  deposit_token: USDT

gas:
  # price_limit_gwei: 100
  gas_limit: 450000
  price_source: gas_station

swap:
  slippage_buffer: 1000
  deadline_minutes: 5

confirmation:
  poll_interval_seconds: 15

scheduler:
  cron_pattern: "0 */12 * * *"

audit:
  create_event_log: false
"""


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from accumulator.observability import initialize_logfire

        initialize_logfire(get_settings())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory, configuration template and event log."""
    try:
        settings = get_settings()
        data_dir = settings.data_dir
        data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        AuditSink.from_settings(settings).ensure_file()

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Copy .env.example to .env and add your RPC URL and wallet")
        print("2. Review and customize data/config.yaml if needed")
        print("3. Run 'python -m accumulator config' to verify configuration")
        print("4. Run 'python -m accumulator run --once' for a single run\n")

        return 0

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()
        gas_limit = settings.gas.price_limit_gwei

        print("\n=== Accumulator Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Wallet:")
        print(f"  Address: {settings.wallet_address or '✗ Not set'}")
        print(f"  Private Key: {'✓ Set' if settings.wallet_private_key else '✗ Not set'}")
        print(f"  Network URL: {'✓ Set' if settings.network_url else '✗ Not set'}")
        print(f"  Chain ID: {settings.chain.chain_id}\n")

        print("Contracts:")
        for name, address in settings.contracts.model_dump().items():
            print(f"  {name}: {address}")
        print()

        print("Tokens:")
        print(f"  Award: {settings.tokens.award_token}")
        print(f"  Deposit: {settings.tokens.deposit_token}\n")

        print("Gas:")
        print(f"  Price Source: {settings.gas.price_source}")
        print(f"  Price Limit: {f'{gas_limit} gwei' if gas_limit is not None else 'none'}")
        print(f"  Gas Limit: {settings.gas.gas_limit:,}\n")

        print("Swap:")
        print(f"  Slippage Buffer: {settings.swap.slippage_buffer}")
        print(f"  Deadline: {settings.swap.deadline_minutes} min\n")

        print(f"Poll Interval: {settings.confirmation.poll_interval_seconds}s")
        print(f"Cron Pattern: {settings.scheduler.cron_pattern or '✗ Not set'}")
        print(f"Event Log: {settings.audit_file if settings.audit.create_event_log else 'disabled'}")
        print(f"Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")

        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        return 1


def cmd_events(args: argparse.Namespace) -> int:
    """List transactions recorded in the event log."""
    settings = get_settings()
    audit = AuditSink.from_settings(settings)
    records = audit.read_records()

    print(f"\n=== Event Log ({audit.path}) ===\n")
    if not records:
        print("  (None)\n")
        return 0

    for record in records[-args.limit:]:
        print(f"  {record['timestamp']}  {record['event_type']:<15} {record['tx_hash']}")
    print()
    return 0


async def _run_once(settings: Settings, shutdown: ShutdownSignal) -> int:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown.request)
        except NotImplementedError:
            pass
    return await PipelineRunner().run(lambda: run_accumulator(settings, shutdown))


def cmd_run(args: argparse.Namespace) -> int:
    """Run the accumulation once, or on the configured cron schedule."""
    try:
        _init_logfire()

        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        settings = get_settings()
        settings.validate_required(scheduled=not args.once)
        logger.info("Starting Aave reward accumulator...")
        logger.info(f"Configuration: {settings.loggable()}")

        shutdown = ShutdownSignal()

        if args.once:
            print("\nDoing a single run (claim -> swap -> deposit)...\n")
            deposited = asyncio.run(_run_once(settings, shutdown))
            print(f"\n✓ Deposited {deposited} {settings.tokens.deposit_token}\n")
            return 0

        print("Starting scheduler...\n")
        start_scheduler(settings, shutdown)

        return 0

    except ConfigurationInvalid as e:
        logger.error(f"Exception in config: {e}")
        print(f"\n❌ {e}\n")
        return 1
    except ShutdownRequested as e:
        logger.warning(str(e))
        print(f"\n{e}\n")
        return 0
    except AccumulatorError as e:
        logger.error(f"Encountered error in main accumulating sequence: {e}", exc_info=True)
        print(f"\n❌ Run failed: {e}\n")
        return 1
    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
        return 0
    except Exception as e:
        logger.error(f"Failed to run: {e}", exc_info=True)
        print(f"\nFailed to run: {e}\n")
        return 1


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Accumulator: claim Aave rewards, swap them and re-deposit the proceeds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Accumulator {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration files",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_events = subparsers.add_parser(
        "events",
        help="List transactions recorded in the event log",
    )
    parser_events.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Number of most recent events to show",
    )
    parser_events.set_defaults(func=cmd_events)

    parser_run = subparsers.add_parser(
        "run",
        help="Start the accumulator on its cron schedule",
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser_run.add_argument(
        "--once",
        action="store_true",
        help="Run the pipeline once then exit",
    )
    parser_run.set_defaults(func=cmd_run)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
