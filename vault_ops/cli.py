"""Command line front end (``vault-ops``)."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from .config import DEFAULT_CONFIG_PATH, load_config
from .core.errors import VaultOpsError
from .core.orchestrator import VaultOrchestrator
from .core.queries import CreateVaultRequest
from .models.vault import OperationOutcome, OutcomeStatus
from .reporting import format_config, format_outcomes, format_vault, format_vault_list

logger = logging.getLogger("vault_ops.cli")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vault-ops", description="Manage structured-product vaults")
    parser.add_argument("network", help="network name from the configuration file")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="path to the JSON configuration")
    parser.add_argument(
        "--log-level",
        default="INFO",
        type=str.upper,
        choices=LOG_LEVELS,
        help="logging level (default: INFO)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("createVault", help="create a vault")
    create.add_argument("-t", "--trading-pair", required=True)
    create.add_argument("-p", "--linked-price", required=True)
    create.add_argument("-q", "--quantity", required=True)
    create.add_argument("-e", "--expiry", required=True, type=int)
    create.add_argument("-y", "--yield-percentage", required=True)
    create.add_argument("--is-buy-low", action="store_true")
    create.add_argument("--use-collateral-pool", action="store_true")

    for name in ("cancelVault", "withdrawVault", "lpWithdrawVault", "showVault"):
        commands.add_parser(name).add_argument("-v", "--vault", required=True)

    subscribe = commands.add_parser("subscribeVault", help="deposit into a vault")
    subscribe.add_argument("-v", "--vault", required=True)
    subscribe.add_argument("-a", "--amount", required=True)

    adjust = commands.add_parser("adjustVaultYield", help="change the yield of an open vault")
    adjust.add_argument("-v", "--vault", required=True)
    adjust.add_argument("-y", "--yield-percentage", required=True)

    approve = commands.add_parser("approveVault", help="toggle collateral pool approval")
    approve.add_argument("-v", "--vault", required=True)
    approve.add_argument("--revoke", action="store_true")

    for name in ("withdrawMultipleVaults", "lpWithdrawMultipleVaults", "cancelMultipleVaults"):
        batch = commands.add_parser(name)
        batch.add_argument("vaults", nargs="+")
        batch.add_argument("--bypass-check", action="store_true")

    commands.add_parser("lpWithdrawAllVaults")
    commands.add_parser("subscriberWithdrawAllVaults")
    commands.add_parser("showConfig")

    listing = commands.add_parser("listAllVaults", help="list vaults owned by an address")
    listing.add_argument("-a", "--address")
    listing.add_argument("--offset", type=int)
    listing.add_argument("--limit", type=int)
    return parser


def run(args: argparse.Namespace, orchestrator: VaultOrchestrator) -> list[OperationOutcome]:
    """Dispatch one parsed command; printable results are written to stdout."""

    command = args.command
    if command == "createVault":
        request = CreateVaultRequest(
            trading_pair=args.trading_pair,
            linked_price=args.linked_price,
            quantity=args.quantity,
            expiry=args.expiry,
            yield_percentage=args.yield_percentage,
            is_buy_low=args.is_buy_low,
            use_collateral_pool=args.use_collateral_pool,
        )
        return [orchestrator.create_vault(request)]
    if command == "cancelVault":
        return [orchestrator.cancel_vault(args.vault)]
    if command == "subscribeVault":
        return [orchestrator.subscribe_vault(args.vault, args.amount)]
    if command in ("withdrawVault", "lpWithdrawVault"):
        return [orchestrator.withdraw_vault(args.vault, check_owner=command == "lpWithdrawVault")]
    if command == "adjustVaultYield":
        return [orchestrator.adjust_vault_yield(args.vault, args.yield_percentage)]
    if command == "approveVault":
        return [orchestrator.approve_vault(args.vault, not args.revoke)]
    if command in ("withdrawMultipleVaults", "lpWithdrawMultipleVaults"):
        return orchestrator.withdraw_multiple_vaults(
            args.vaults,
            check_owner=command == "lpWithdrawMultipleVaults",
            bypass_check=args.bypass_check,
        )
    if command == "cancelMultipleVaults":
        return orchestrator.cancel_multiple_vaults(args.vaults, bypass_check=args.bypass_check)
    if command in ("lpWithdrawAllVaults", "subscriberWithdrawAllVaults"):
        return orchestrator.withdraw_all_vaults(check_owner=command == "lpWithdrawAllVaults")
    if command == "listAllVaults":
        owner = args.address or orchestrator.account
        vaults = orchestrator.list_vaults(owner, offset=args.offset, limit=args.limit)
        print("\n".join(format_vault_list(owner, vaults)))
        return []
    if command == "showVault":
        print("\n".join(format_vault(orchestrator.show_vault(args.vault))))
        return []
    raise VaultOpsError(f"Unknown command {command}")


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = load_config(args.config)
        network = config.network(args.network)
        logger.info("Running on %s", args.network)
        if args.command == "showConfig":
            print(format_config(network, config.settings))
            return 0
        orchestrator = VaultOrchestrator.from_config(config, args.network)
        try:
            outcomes = run(args, orchestrator)
        finally:
            orchestrator.close()
    except VaultOpsError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    if outcomes:
        print("\n".join(format_outcomes(outcomes)))
    return 1 if any(outcome.status is OutcomeStatus.FAILED for outcome in outcomes) else 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
