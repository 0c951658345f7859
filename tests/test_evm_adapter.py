"""
Tests for the EVM adapters (Ethereum and Base)
"""

import logging
from unittest.mock import AsyncMock, Mock, patch

import pytest
import pytest_asyncio
from eth_account import Account
from web3.exceptions import TransactionNotFound, TimeExhausted, ContractLogicError

from multichain_core.types import (
    BackendId, FeeOperation, GasUnit, TransactionState, WalletProvider,
    InvalidAddressError, InvalidCredentialsError, UnsupportedOperationError, ContractError
)
from multichain_core.config import BlockchainConfiguration, ChainCredentials
from multichain_core.models import (
    BalanceParams, TransferParams, EstimateFeeParams, CallContractParams,
    CreateTokenParams, Transaction
)
from multichain_core.adapters.evm import EVMAdapter, EthereumAdapter, BaseL2Adapter, OPERATION_GAS


TEST_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_ADDRESS = Account.from_key(TEST_KEY).address
RECIPIENT = "0x" + "11" * 20
TOKEN = "0x" + "22" * 20
GWEI = 10 ** 9
TX_HASH = bytes.fromhex("ab" * 32)


class _Awaitable:
    """Awaitable that can be awaited repeatedly, like web3's async properties"""

    def __init__(self, value):
        self.value = value

    def __await__(self):
        if False:
            yield
        return self.value


def _receipt(status=1, block_number=100, contract_address=None):
    return {
        "transactionHash": TX_HASH,
        "status": status,
        "gasUsed": 21_000,
        "effectiveGasPrice": 20 * GWEI,
        "blockNumber": block_number,
        "contractAddress": contract_address,
    }


def _fake_w3(chain_id=11155111, connected=True):
    w3 = Mock()
    w3.is_connected = AsyncMock(return_value=connected)
    w3.provider = Mock(spec=[])
    w3.eth.chain_id = _Awaitable(chain_id)
    w3.eth.gas_price = _Awaitable(20 * GWEI)
    w3.eth.block_number = _Awaitable(110)
    w3.eth.get_balance = AsyncMock(return_value=10 ** 18)
    w3.eth.get_transaction_count = AsyncMock(return_value=7)
    w3.eth.estimate_gas = AsyncMock(return_value=21_000)
    w3.eth.send_raw_transaction = AsyncMock(return_value=TX_HASH)
    w3.eth.wait_for_transaction_receipt = AsyncMock(return_value=_receipt())
    w3.eth.get_transaction_receipt = AsyncMock(return_value=_receipt())
    return w3


def _config(backend=BackendId.ETHEREUM, **credentials):
    credentials.setdefault("private_key_evm", TEST_KEY)
    return BlockchainConfiguration(
        backend=backend,
        network="testnet",
        rpc_url="http://localhost:8545",
        credentials=ChainCredentials(**credentials),
    )


async def _connected(adapter_class, settings, w3, config=None):
    with patch("multichain_core.adapters.evm.AsyncWeb3", return_value=w3), \
            patch("multichain_core.adapters.evm.AsyncHTTPProvider"):
        adapter = adapter_class(settings)
        await adapter.initialize(config or _config(adapter_class.backend))
    return adapter


@pytest.fixture
def w3():
    return _fake_w3()


@pytest_asyncio.fixture
async def adapter(settings, w3):
    ethereum = await _connected(EthereumAdapter, settings, w3)
    yield ethereum
    await ethereum.disconnect()


class TestEVMConnection:
    """Test EVM initialization"""

    def test_generic_adapter_is_abstract(self, settings):
        """Test the shared EVM class cannot be used without a bound chain"""
        with pytest.raises(TypeError, match="backend"):
            EVMAdapter(settings)

    def test_chain_adapters_bind_backend(self, settings):
        assert EthereumAdapter(settings).backend == BackendId.ETHEREUM
        assert BaseL2Adapter(settings).backend == BackendId.BASE

    @pytest.mark.asyncio
    async def test_connect(self, adapter):
        assert adapter.is_connected is True
        assert adapter._chain_id == 11155111

    @pytest.mark.asyncio
    async def test_requires_endpoint(self, settings):
        """Test Ethereum has no keyless default endpoint"""
        adapter = EthereumAdapter(settings)
        config = BlockchainConfiguration(backend="ethereum")
        with pytest.raises(InvalidCredentialsError):
            await adapter.initialize(config)

    def test_provider_key_endpoint(self, settings):
        adapter = EthereumAdapter(settings)
        config = BlockchainConfiguration(backend="ethereum", credentials=ChainCredentials(infura_key="abc"))
        assert adapter._default_rpc_url(config) == "https://sepolia.infura.io/v3/abc"

    def test_base_has_public_endpoint(self, settings):
        adapter = BaseL2Adapter(settings)
        assert adapter._default_rpc_url(BlockchainConfiguration(backend="base")) == "https://sepolia.base.org"

    @pytest.mark.asyncio
    async def test_invalid_private_key(self, settings, w3):
        with pytest.raises(InvalidCredentialsError):
            await _connected(EthereumAdapter, settings, w3, _config(private_key_evm="0x1234"))

    @pytest.mark.asyncio
    async def test_unreachable_node(self, settings):
        from multichain_core.types import NetworkError

        with pytest.raises(NetworkError):
            await _connected(EthereumAdapter, settings, _fake_w3(connected=False))

    @pytest.mark.asyncio
    async def test_chain_id_mismatch_warns(self, settings, caplog):
        with caplog.at_level(logging.WARNING, logger="multichain_core.adapters.evm"):
            adapter = await _connected(BaseL2Adapter, settings, _fake_w3(chain_id=1))

        assert adapter.is_connected is True
        assert "Chain ID mismatch" in caplog.text


class TestEVMReads:
    """Test balances, gas and status"""

    @pytest.mark.asyncio
    async def test_get_balance(self, adapter, w3):
        assert await adapter.get_balance(RECIPIENT) == 10 ** 18
        w3.eth.get_balance.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalid_address(self, adapter):
        with pytest.raises(InvalidAddressError):
            await adapter.get_balance("not-an-address")

    @pytest.mark.asyncio
    async def test_token_balance(self, adapter, w3):
        w3.eth.contract.return_value.functions.balanceOf.return_value.call = AsyncMock(return_value=500)

        balance = await adapter.get_token_balance(BalanceParams(address=RECIPIENT, token_id=TOKEN))

        assert balance == 500

    @pytest.mark.asyncio
    async def test_gas_price_tiers(self, adapter):
        gas = await adapter.get_gas_price()
        assert gas.standard == 20 * GWEI
        assert gas.fast == 25 * GWEI
        assert gas.instant == 30 * GWEI
        assert gas.unit == GasUnit.WEI

    @pytest.mark.asyncio
    async def test_estimate_fees(self, adapter):
        transfer = await adapter.estimate_fees(EstimateFeeParams())
        assert transfer.estimated_cost == OPERATION_GAS[FeeOperation.TRANSFER] * 20 * GWEI
        assert transfer.currency == "ETH"

        custom = await adapter.estimate_fees(EstimateFeeParams(operation="custom", complexity="complex"))
        assert custom.breakdown["gas_units"] == 400_000

        deploy = await adapter.estimate_fees(EstimateFeeParams(operation=FeeOperation.DEPLOY, contract_size=1000))
        assert deploy.breakdown["gas_units"] == 1_700_000

    @pytest.mark.asyncio
    async def test_transaction_status(self, adapter, w3):
        success = await adapter.get_transaction_status("0x" + "ab" * 32)
        assert success.status == TransactionState.SUCCESS
        assert success.confirmations == 11

        w3.eth.get_transaction_receipt = AsyncMock(return_value=_receipt(status=0))
        failed = await adapter.get_transaction_status("0x" + "ab" * 32)
        assert failed.status == TransactionState.FAILED

        w3.eth.get_transaction_receipt = AsyncMock(side_effect=TransactionNotFound("not found"))
        pending = await adapter.get_transaction_status("0x" + "ab" * 32)
        assert pending.status == TransactionState.PENDING


class TestEVMWrites:
    """Test signing and transaction submission"""

    @pytest.mark.asyncio
    async def test_native_transfer(self, adapter, w3):
        result = await adapter.transfer_token(TransferParams(to=RECIPIENT, amount="1000"))

        assert result.status == TransactionState.SUCCESS
        assert result.transaction_hash == "0x" + "ab" * 32
        assert result.gas_used == 21_000
        assert result.cost_usd == pytest.approx(1.05)
        assert result.explorer_url == f"https://sepolia.etherscan.io/tx/0x{'ab' * 32}"
        w3.eth.send_raw_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_transfer_without_receipt_is_pending(self, adapter, w3):
        w3.eth.wait_for_transaction_receipt = AsyncMock(side_effect=TimeExhausted("timeout"))

        result = await adapter.transfer_token(TransferParams(to=RECIPIENT, amount=1))

        assert result.status == TransactionState.PENDING
        assert result.gas_price == 20 * GWEI

    @pytest.mark.asyncio
    async def test_transfer_requires_signer(self, settings, w3):
        adapter = await _connected(EthereumAdapter, settings, w3, _config(private_key_evm=None))
        with pytest.raises(InvalidCredentialsError):
            await adapter.transfer_token(TransferParams(to=RECIPIENT, amount=1))

    @pytest.mark.asyncio
    async def test_sign_transaction(self, adapter, w3):
        signed = await adapter.sign_transaction(Transaction(
            to=RECIPIENT, value=1, gas=21_000, gas_price=GWEI, nonce=0, chain_id=11155111
        ))

        assert signed.raw_transaction.startswith("0x")
        assert len(signed.transaction_hash) == 66
        assert signed.signature.startswith("0x")
        w3.eth.get_transaction_count.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_token_requires_artifact(self, adapter):
        with pytest.raises(UnsupportedOperationError):
            await adapter.create_token(CreateTokenParams(name="Demo", symbol="DMO"))

    @pytest.mark.asyncio
    async def test_connect_wallet(self, adapter):
        connection = await adapter.connect_wallet(WalletProvider.CUSTOM)
        assert connection.address == TEST_ADDRESS
        assert connection.chain_id == "11155111"

        with pytest.raises(UnsupportedOperationError):
            await adapter.connect_wallet(WalletProvider.METAMASK)


class TestEVMContracts:
    """Test contract calls"""

    ABI = [{
        "name": "totalSupply", "type": "function", "stateMutability": "view",
        "inputs": [], "outputs": [{"name": "", "type": "uint256"}],
    }]

    @pytest.mark.asyncio
    async def test_view_call(self, adapter, w3):
        function = w3.eth.contract.return_value.get_function_by_name.return_value.return_value
        function.call = AsyncMock(return_value=1_000_000)

        result = await adapter.call_contract(CallContractParams(
            contract_address=TOKEN, method_name="totalSupply", abi=self.ABI
        ))

        assert result == 1_000_000

    @pytest.mark.asyncio
    async def test_unknown_method(self, adapter):
        with pytest.raises(ContractError):
            await adapter.call_contract(CallContractParams(
                contract_address=TOKEN, method_name="mint", abi=self.ABI
            ))

    @pytest.mark.asyncio
    async def test_revert_is_contract_error(self, adapter, w3):
        function = w3.eth.contract.return_value.get_function_by_name.return_value.return_value
        function.call = AsyncMock(side_effect=ContractLogicError("execution reverted"))

        with pytest.raises(ContractError) as exc_info:
            await adapter.call_contract(CallContractParams(
                contract_address=TOKEN, method_name="totalSupply", abi=self.ABI
            ))
        assert "reverted" in str(exc_info.value)
