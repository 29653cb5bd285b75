from __future__ import annotations

import json

import pytest

from tests.fakes import FACTORY, TRADING_PAIRS, FakeBackend, StubPriceSource, make_ledger
from vault_ops.cli import build_parser, main, run
from vault_ops.config import NetworkConfig
from vault_ops.core.oracle import PriceOracleAdapter
from vault_ops.core.orchestrator import VaultOrchestrator
from vault_ops.models.shared import FeedType


def test_parser_reads_create_arguments():
    args = build_parser().parse_args(
        ["arbitrum", "createVault", "-t", "WETH-USDC", "-p", "2500", "-q", "10", "-e", "1750000000", "-y", "3", "--is-buy-low"]
    )

    assert args.network == "arbitrum"
    assert args.command == "createVault"
    assert args.expiry == 1_750_000_000
    assert args.is_buy_low is True
    assert args.use_collateral_pool is False


def test_parser_reads_batch_arguments():
    args = build_parser().parse_args(["arbitrum", "cancelMultipleVaults", "0x01", "0x02", "--bypass-check"])

    assert args.vaults == ["0x01", "0x02"]
    assert args.bypass_check is True


def test_batch_command_requires_vaults():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["arbitrum", "withdrawMultipleVaults"])


def test_show_config_needs_no_chain(tmp_path, capsys):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"arbitrum": {"rpcNode": "https://arb.example", "passphrase": "secret"}}), encoding="utf-8")

    code = main(["arbitrum", "--config", str(path), "showConfig"])

    out = capsys.readouterr().out
    assert code == 0
    assert '"network": "arbitrum"' in out
    assert "secret" not in out


def test_unknown_network_exits_with_error(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"arbitrum": {"rpcNode": "https://arb.example"}}), encoding="utf-8")

    assert main(["base", "--config", str(path), "showConfig"]) == 1


def test_run_prints_vault_list(capsys):
    backend = FakeBackend()
    backend.set_read(FACTORY, "getDeployedVaults()", ["0xaaaa"])
    backend.set_read("0xaaaa", "owner", backend.account)
    network = NetworkConfig(name="arbitrum", trading_pairs=TRADING_PAIRS)
    oracle = PriceOracleAdapter(TRADING_PAIRS, source_overrides={FeedType.PYTH: StubPriceSource()})
    orchestrator = VaultOrchestrator(network, make_ledger(backend), oracle)
    args = build_parser().parse_args(["arbitrum", "listAllVaults"])

    assert run(args, orchestrator) == []
    out = capsys.readouterr().out
    assert f"Vaults owned by {backend.account} (1):" in out
    assert "0xaaaa" in out


def test_log_level_is_case_insensitive():
    args = build_parser().parse_args(["arbitrum", "--log-level", "debug", "showConfig"])

    assert args.log_level == "DEBUG"


def test_unknown_log_level_is_a_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        build_parser().parse_args(["arbitrum", "--log-level", "verbose", "showConfig"])

    assert excinfo.value.code == 2


def test_network_missing_rpc_node_reports_validation_error(tmp_path, caplog):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"base": {"factory": "0x01"}}), encoding="utf-8")

    assert main(["base", "--config", str(path), "lpWithdrawAllVaults"]) == 1
    assert "rpcNode is not set" in caplog.text
