"""Minimal ABI fragments for the contract roles the orchestrator drives.

Only the functions and events that are actually called are listed.
"""

from __future__ import annotations

from ...contracts.ledger.interface import ContractRole


def _view(name: str, outputs: list[dict], inputs: list[dict] | None = None) -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": inputs or [],
        "outputs": outputs,
    }


def _write(name: str, inputs: list[dict], *, payable: bool = False, outputs: list[dict] | None = None) -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "payable" if payable else "nonpayable",
        "inputs": inputs,
        "outputs": outputs or [],
    }


def _arg(name: str, type_: str, **extra) -> dict:
    return {"name": name, "type": type_, **extra}


_UINT = [_arg("", "uint256")]
_ADDRESS = [_arg("", "address")]
_BOOL = [_arg("", "bool")]
_PRICE_UPDATE = _arg("priceUpdate", "bytes[]")

GET_PRICE_OPTIONS = _arg(
    "getPriceOptions",
    "tuple",
    components=[
        _arg("pythPublishTime", "uint256"),
        _arg("pythMinConfidenceRatio", "uint256"),
        _arg("chainlinkUseLatestAnswer", "bool"),
        _arg("chainlinkRoundId", "uint80"),
    ],
)

CREATE_VAULT_PARAMS = _arg(
    "params",
    "tuple",
    components=[
        _arg("owner", "address"),
        _arg("baseToken", "address"),
        _arg("quoteToken", "address"),
        _arg("expiry", "uint256"),
        _arg("linkedOraclePrice", "uint256"),
        _arg("yieldValue", "uint256"),
        _arg("isBuyLow", "bool"),
        _arg("quantity", "uint256"),
        _arg("useCollateralPool", "bool"),
        _arg("useNativeToken", "bool"),
        _arg("vaultSeriesVersion", "uint256"),
        _arg("signer", "address"),
    ],
)

ERC20_ABI = [
    _view("decimals", [_arg("", "uint8")]),
    _view("symbol", [_arg("", "string")]),
    _view("name", [_arg("", "string")]),
    _view("balanceOf", _UINT, [_arg("account", "address")]),
    _write("approve", [_arg("spender", "address"), _arg("amount", "uint256")], outputs=_BOOL),
]

VAULT_ABI = [
    _view("owner", _ADDRESS),
    _view("isBuyLow", _BOOL),
    _view("investmentToken", _ADDRESS),
    _view("linkedToken", _ADDRESS),
    _view("quantity", _UINT),
    _view("depositTotal", _UINT),
    _view("state", [_arg("", "uint8")]),
    _view("expiry", _UINT),
    _view("linkedPrice", _UINT),
    _view("linkedOraclePrice", _UINT),
    _view("yieldValue", _UINT),
    _view("oraclePriceAtCreation", _UINT),
    _view("tradingFeeRate", _UINT),
    _view("cancellationFeeRate", _UINT),
    _view("useCollateralPool", _BOOL),
    _view("depositDeadline", _UINT),
    _view("lpCancelled", _BOOL),
    _view("balances", _UINT, [_arg("account", "address")]),
    _write("lpCancel", []),
    _write("lpWithdraw", [_PRICE_UPDATE, GET_PRICE_OPTIONS], payable=True),
    _write("withdraw", [_PRICE_UPDATE, GET_PRICE_OPTIONS], payable=True),
    _write("adjustYieldValue", [_arg("newYieldValue", "uint256")]),
]

FACTORY_ABI = [
    _view(
        "getPresetFeeParams",
        [
            _arg(
                "",
                "tuple",
                components=[
                    _arg("tradingFeeRate", "uint256"),
                    _arg("cancellationFeeRate", "uint256"),
                ],
            )
        ],
    ),
    _view("getDeployedVaults", [_arg("", "address[]")]),
    _view(
        "getDeployedVaults",
        [_arg("", "address[]")],
        [_arg("offset", "uint256"), _arg("limit", "uint256")],
    ),
    _write("createVault", [CREATE_VAULT_PARAMS, _PRICE_UPDATE], payable=True, outputs=_ADDRESS),
    {
        "type": "event",
        "name": "VaultCreated",
        "anonymous": False,
        "inputs": [
            _arg("owner", "address", indexed=True),
            _arg("baseToken", "address", indexed=True),
            _arg("quoteToken", "address", indexed=True),
            _arg("vaultAddress", "address", indexed=False),
            _arg("expiry", "uint256", indexed=False),
            _arg("linkedPrice", "uint256", indexed=False),
            _arg("linkedOraclePrice", "uint256", indexed=False),
            _arg("yieldValue", "uint256", indexed=False),
            _arg("isBuyLow", "bool", indexed=False),
            _arg("quantity", "uint256", indexed=False),
            _arg("createdAt", "uint256", indexed=False),
            _arg("depositDeadline", "uint256", indexed=False),
            _arg("tradingFeeRate", "uint256", indexed=False),
            _arg("cancellationFeeRate", "uint256", indexed=False),
            _arg("oraclePriceAtCreation", "uint256", indexed=False),
        ],
    },
]

ROUTER_ABI = [
    _write(
        "deposit",
        [_arg("vault", "address"), _arg("amount", "uint256"), _PRICE_UPDATE],
        payable=True,
    ),
]

COLLATERAL_POOL_ABI = [
    _write("approveVault", [_arg("vault", "address"), _arg("approved", "bool")]),
]

BATCH_MANAGER_ABI = [
    _write("lpWithdrawVaults", [_arg("vaults", "address[]"), _PRICE_UPDATE, GET_PRICE_OPTIONS], payable=True),
    _write("withdrawVaults", [_arg("vaults", "address[]"), _PRICE_UPDATE, GET_PRICE_OPTIONS], payable=True),
    _write("lpCancelVaults", [_arg("vaults", "address[]")]),
]

PYTH_ABI = [
    _view("getUpdateFee", _UINT, [_arg("updateData", "bytes[]")]),
]

ABIS: dict[ContractRole, list[dict]] = {
    ContractRole.FACTORY: FACTORY_ABI,
    ContractRole.ROUTER: ROUTER_ABI,
    ContractRole.VAULT: VAULT_ABI,
    ContractRole.TOKEN: ERC20_ABI,
    ContractRole.COLLATERAL_POOL: COLLATERAL_POOL_ABI,
    ContractRole.BATCH_MANAGER: BATCH_MANAGER_ABI,
    ContractRole.PRICE_FEED: PYTH_ABI,
}
