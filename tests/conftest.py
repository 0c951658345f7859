"""
Pytest configuration and shared fakes
"""

import asyncio

import httpx
import pytest

from multichain_core.types import BackendId, ErrorCode
from multichain_core.config import BlockchainConfiguration, Settings
from multichain_core.adapters.base import BaseAdapter, adapter_operation


class FakeAdapter(BaseAdapter):
    """In-memory adapter used to exercise lifecycle, factory and error handling"""

    backend = BackendId.HEDERA
    name = "FakeAdapter"

    connect_delay = 0.0
    connect_error = None
    close_error = None
    created = None

    def __init__(self, settings=None):
        super().__init__(settings)
        self.connect_calls = 0
        self.close_calls = 0
        if type(self).created is not None:
            type(self).created.append(self)

    async def _connect(self, config):
        self.connect_calls += 1
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.connect_error is not None:
            raise self.connect_error

    async def _close(self):
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error

    def _session_address(self):
        return "0.0.1234"

    def _backend_operations(self):
        return {"echo": self._echo}

    async def _echo(self, params):
        return params

    @adapter_operation(ErrorCode.TRANSACTION_FAILED, address_errors=True)
    async def get_balance(self, address):
        failures = {
            "bad": ValueError("malformed address"),
            "down": httpx.ConnectError("connection refused"),
            "slow": asyncio.TimeoutError(),
            "boom": RuntimeError("boom"),
        }
        if address in failures:
            raise failures[address]
        return 42

    async def _not_needed(self, *args, **kwargs):
        raise self._unsupported("fake", "not implemented")

    create_token = transfer_token = get_token_balance = _not_needed
    create_nft = mint_nft = transfer_nft = _not_needed
    deploy_contract = call_contract = sign_transaction = _not_needed
    get_gas_price = estimate_fees = get_transaction_status = _not_needed


def make_adapter_class(backend=BackendId.HEDERA, **attributes):
    """Fresh FakeAdapter subclass with its own instance log"""
    namespace = {"backend": BackendId(backend), "created": [], **attributes}
    return type(f"Fake{BackendId(backend).value.capitalize()}Adapter", (FakeAdapter,), namespace)


@pytest.fixture
def settings():
    return Settings(initialize_timeout=1.0, request_timeout=1.0)


@pytest.fixture
def hedera_config():
    return BlockchainConfiguration(backend="hedera", network="testnet")


@pytest.fixture
def adapter_class():
    return make_adapter_class()


@pytest.fixture
def make_adapter():
    return make_adapter_class
