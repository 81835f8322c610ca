"""
Token Catalog Module

Static list of swap-target tokens on Tea Sepolia, plus on-chain metadata
lookup for addresses outside the list.
"""

import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from web3 import Web3

from .chain import get_token_contract


@dataclass(frozen=True)
class TokenDescriptor:
    """Immutable token metadata."""
    address: str
    symbol: str
    name: str
    decimals: int = 18


TOKEN_LIST: List[TokenDescriptor] = [
    TokenDescriptor("0xdf1aAdF0FdFb14Ae4Cbe9bF550E1716Ed901b41C", "NSCM", "NotAScam"),
    TokenDescriptor("0xD89455C62BeC95820cE048fbE0f2Ae900F18A2DC", "FTEA", "Fresh Tea"),
    TokenDescriptor("0xb1885A41876ff1BcB107a80A352A800b3D394f6F", "DAUN", "Daun Tea"),
    TokenDescriptor("0x0281e0e9Df9920E994051fC3798fd1565F6d28BF", "LEAF", "Tea Leaf"),
    TokenDescriptor("0x7d7D20Ea5afb64Fc7beC15ba4670FF08B5E838b6", "HBRL", "Herbal Tea"),
    TokenDescriptor("0xdbCb51116b426F67a727dA75EE7119fb88D1069A", "AAA", "AAA Token"),
    TokenDescriptor("0xE8976C1873dD34B1262f8096E63a95AdE4d88997", "TEAA", "Tea Anget"),
    TokenDescriptor("0xd2325fB82bb3122D9656D87F4aCF01e4D535d7Ea", "MATCHA", "Matcha"),
    TokenDescriptor("0x5E5613bAEE77215c6781635e48E7fcc4B3d02790", "P0N", "Project Nomad"),
    TokenDescriptor("0x8e7Ae8eb29FbF68fdEea6ef0daBEb2C9F7fAB366", "CANDY", "Candy"),
    TokenDescriptor("0xbBb017586E75C465Cc52cBE4c6b2B71d4baED5c6", "MOM", "Mommycoin"),
    TokenDescriptor("0x09bA156Aaf3505d07b6F82872b35D75b7A7d5032", "sTEA", "sTEA Token"),
    TokenDescriptor("0x615a02020b4cd1171551e3379491B825315ce77B", "BTC", "AssamBTC"),
    TokenDescriptor("0x2b3aBf76D9D2eD4Eb2975D5DBb6981B77DF06E5A", "MTN", "MeowTea Token"),
    TokenDescriptor("0xE1b512683cb5c3d56D462dB326a6632EeEbb60BB", "TGS", "TeaDogs Inu"),
    TokenDescriptor("0xF3b6ebeA3B46694a76e760B8970EFfC76Ee8b96A", "DTT1", "Diontea Token V1"),
]


class TokenCatalog:
    """
    Token metadata lookup with a per-address cache.

    Shared by all lanes; the cache is the only mutable part and is guarded
    by a lock. Entries never change once stored.
    """

    def __init__(self, w3: Optional[Web3] = None, tokens: Iterable[TokenDescriptor] = TOKEN_LIST):
        self.w3 = w3
        self.tokens: List[TokenDescriptor] = list(tokens)
        self._cache: Dict[str, TokenDescriptor] = {t.address.lower(): t for t in self.tokens}
        self._lock = threading.Lock()

    def __len__(self):
        return len(self.tokens)

    def get(self, token_address: str) -> TokenDescriptor:
        """
        Resolve token metadata, fetching symbol/name/decimals from chain
        for unknown addresses. Errors from the chain propagate.
        """
        key = token_address.lower()
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        if self.w3 is None:
            raise LookupError(f"Unknown token {token_address} and no chain connection")

        contract = get_token_contract(self.w3, token_address)
        descriptor = TokenDescriptor(
            address=Web3.to_checksum_address(token_address),
            symbol=contract.functions.symbol().call(),
            name=contract.functions.name().call(),
            decimals=int(contract.functions.decimals().call()),
        )

        with self._lock:
            return self._cache.setdefault(key, descriptor)
