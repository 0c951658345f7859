"""
Utility functions for blockchain operations.
"""

import re
from typing import Union
from decimal import Decimal
from urllib.parse import urlsplit, urlunsplit, quote

from eth_utils import to_checksum_address, is_address, from_wei

from .types import BackendId


HEDERA_ID_PATTERN = re.compile(r'^\d+\.\d+\.\d+$')
SOLANA_ADDRESS_PATTERN = re.compile(r'^[1-9A-HJ-NP-Za-km-z]{32,44}$')

# Hedera SDK form 0.0.123@1700000000.000000001, mirror node form 0.0.123-1700000000-000000001
HEDERA_TX_ID_PATTERN = re.compile(r'^(\d+\.\d+\.\d+)@(\d+)\.(\d+)$')

EVM_BACKENDS = (BackendId.ETHEREUM, BackendId.BASE)


def validate_address(address: str, backend: Union[BackendId, str] = BackendId.ETHEREUM) -> bool:
    """Validate blockchain address format"""
    if not isinstance(address, str):
        return False
    backend = BackendId(backend)
    if backend in EVM_BACKENDS:
        return is_address(address)
    elif backend == BackendId.SOLANA:
        # base58, 32-44 chars
        return bool(SOLANA_ADDRESS_PATTERN.match(address))
    elif backend == BackendId.HEDERA:
        return bool(HEDERA_ID_PATTERN.match(address))
    return False


def normalize_address(address: str, backend: Union[BackendId, str] = BackendId.ETHEREUM) -> str:
    """Normalize address to standard format"""
    if BackendId(backend) in EVM_BACKENDS:
        return to_checksum_address(address)
    return address


def hedera_tx_id_to_mirror(transaction_id: str) -> str:
    """Convert an SDK transaction id to the mirror node path form"""
    match = HEDERA_TX_ID_PATTERN.match(transaction_id)
    if not match:
        return transaction_id
    account, seconds, nanos = match.groups()
    return f"{account}-{seconds}-{nanos}"


def format_wei(wei_value: Union[int, str], unit: str = "ether") -> Decimal:
    """Convert wei to larger unit"""
    return Decimal(str(from_wei(int(wei_value), unit)))


def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(int(lamports)) / Decimal(10 ** 9)


def tinybars_to_hbar(tinybars: int) -> Decimal:
    return Decimal(int(tinybars)) / Decimal(10 ** 8)


def calculate_tx_cost(gas_used: int, gas_price: int) -> int:
    """Calculate total transaction cost in the smallest unit"""
    return gas_used * gas_price


def validate_private_key(private_key: str) -> bool:
    """Validate an EVM private key format"""
    if private_key.startswith('0x'):
        private_key = private_key[2:]

    # 64 hex characters
    return bool(re.match(r'^[0-9a-fA-F]{64}$', private_key))


def join_explorer_url(base_url: str, kind: str, identifier: str) -> str:
    """
    Append /{kind}/{identifier} to an explorer base URL.

    A query string on the base (e.g. ?cluster=devnet) is kept after the
    new path rather than being corrupted by plain concatenation.
    """
    parts = urlsplit(base_url)
    path = parts.path.rstrip('/') + f"/{kind}/{quote(str(identifier), safe='@.-')}"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))
