"""Minimal ABIs for the contract functions the accumulator calls."""


def _fn(name, inputs, outputs, mutability="nonpayable"):
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
        "stateMutability": mutability,
    }


ERC20_ABI = [
    _fn("balanceOf", [("account", "address")], [("", "uint256")], "view"),
    _fn("approve", [("spender", "address"), ("amount", "uint256")], [("", "bool")]),
]

AAVE_DATA_PROVIDER_ABI = [
    {
        "type": "function",
        "name": "getAllReservesTokens",
        "inputs": [],
        "outputs": [
            {
                "name": "",
                "type": "tuple[]",
                "components": [
                    {"name": "symbol", "type": "string"},
                    {"name": "tokenAddress", "type": "address"},
                ],
            }
        ],
        "stateMutability": "view",
    },
    _fn(
        "getReserveTokensAddresses",
        [("asset", "address")],
        [
            ("aTokenAddress", "address"),
            ("stableDebtTokenAddress", "address"),
            ("variableDebtTokenAddress", "address"),
        ],
        "view",
    ),
]

AAVE_INCENTIVES_ABI = [
    _fn(
        "getRewardsBalance",
        [("assets", "address[]"), ("user", "address")],
        [("", "uint256")],
        "view",
    ),
    _fn(
        "claimRewards",
        [("assets", "address[]"), ("amount", "uint256"), ("to", "address")],
        [("", "uint256")],
    ),
]

AAVE_LENDING_POOL_ABI = [
    _fn(
        "deposit",
        [
            ("asset", "address"),
            ("amount", "uint256"),
            ("onBehalfOf", "address"),
            ("referralCode", "uint16"),
        ],
        [],
    ),
]

UNISWAP_V2_ROUTER_ABI = [
    _fn(
        "getAmountsOut",
        [("amountIn", "uint256"), ("path", "address[]")],
        [("amounts", "uint256[]")],
        "view",
    ),
    _fn(
        "swapExactTokensForTokens",
        [
            ("amountIn", "uint256"),
            ("amountOutMin", "uint256"),
            ("path", "address[]"),
            ("to", "address"),
            ("deadline", "uint256"),
        ],
        [("amounts", "uint256[]")],
    ),
]

UNISWAP_V2_FACTORY_ABI = [
    _fn(
        "getPair",
        [("tokenA", "address"), ("tokenB", "address")],
        [("pair", "address")],
        "view",
    ),
]
