"""
Chain Access Module

Router and ERC20 ABIs, Web3 connection and contract bindings.
"""

from web3 import Web3

from .config import NetworkSettings
from .logging_utils import logger


def _fn(name, inputs, outputs, mutability):
    return {
        "inputs": [{"internalType": t, "name": n, "type": t} for n, t in inputs],
        "name": name,
        "outputs": [{"internalType": t, "name": n, "type": t} for n, t in outputs],
        "stateMutability": mutability,
        "type": "function",
    }


# Uniswap V2 style router (minimal)
ROUTER_ABI = [
    _fn(
        "swapExactETHForTokens",
        [("amountOutMin", "uint256"), ("path", "address[]"), ("to", "address"), ("deadline", "uint256")],
        [("amounts", "uint256[]")],
        "payable",
    ),
    _fn(
        "swapExactTokensForETH",
        [("amountIn", "uint256"), ("amountOutMin", "uint256"), ("path", "address[]"),
         ("to", "address"), ("deadline", "uint256")],
        [("amounts", "uint256[]")],
        "nonpayable",
    ),
    _fn(
        "swapExactTokensForTokens",
        [("amountIn", "uint256"), ("amountOutMin", "uint256"), ("path", "address[]"),
         ("to", "address"), ("deadline", "uint256")],
        [("amounts", "uint256[]")],
        "nonpayable",
    ),
    _fn(
        "getAmountsOut",
        [("amountIn", "uint256"), ("path", "address[]")],
        [("amounts", "uint256[]")],
        "view",
    ),
]

# ERC20 ABI (minimal)
ERC20_ABI = [
    _fn("balanceOf", [("owner", "address")], [("balance", "uint256")], "view"),
    _fn("decimals", [], [("", "uint8")], "view"),
    _fn("symbol", [], [("", "string")], "view"),
    _fn("name", [], [("", "string")], "view"),
    _fn("approve", [("spender", "address"), ("amount", "uint256")], [("", "bool")], "nonpayable"),
    _fn("allowance", [("owner", "address"), ("spender", "address")], [("", "uint256")], "view"),
]


def connect(network: NetworkSettings) -> Web3:
    """
    Open the JSON-RPC connection shared (read-only) by every lane.

    A chain id mismatch is only warned about; the node may be a fork or a
    proxy that reports a different id.
    """
    w3 = Web3(Web3.HTTPProvider(network.rpc_url, request_kwargs={"timeout": network.request_timeout}))

    if not w3.is_connected():
        raise ConnectionError(f"Failed to connect to RPC endpoint for chain {network.chain_id}")

    try:
        chain_id = w3.eth.chain_id
        if chain_id != network.chain_id:
            logger.warning(f"Connected chain id {chain_id} differs from configured {network.chain_id}")
    except Exception as e:
        logger.warning(f"Could not read chain id: {e}")

    return w3


def get_router(w3: Web3, network: NetworkSettings):
    """Bind the router contract."""
    return w3.eth.contract(address=Web3.to_checksum_address(network.router_address), abi=ROUTER_ABI)


def get_token_contract(w3: Web3, token_address: str):
    """Bind an ERC20 contract."""
    return w3.eth.contract(address=Web3.to_checksum_address(token_address), abi=ERC20_ABI)
