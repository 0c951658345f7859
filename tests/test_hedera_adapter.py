"""
Tests for the Hedera adapter (mirror node reads, SDK writes)
"""

import base64
from unittest.mock import Mock, patch

import httpx
import pytest
import pytest_asyncio
from eth_abi import encode
from hiero_sdk_python import ResponseCode, SupplyType, TokenType

from multichain_core.types import (
    BackendId, ErrorCode, FeeOperation, GasUnit, TransactionState, WalletProvider,
    ContractError, InsufficientBalanceError, InvalidAddressError, InvalidCredentialsError,
    NetworkError, NotInitializedError, TransactionFailedError, UnsupportedOperationError
)
from multichain_core.config import BlockchainConfiguration, ChainCredentials
from multichain_core.models import (
    BalanceParams, CallContractParams, CreateNFTParams, CreateTokenParams,
    DeployContractParams, EstimateFeeParams, MintNFTParams, NFTMetadata,
    Transaction, TransferNFTParams, TransferParams
)
from multichain_core.adapters.hedera import (
    HederaAdapter, HEDERA_FEES, MAX_FEE_CREATE_TOKEN, TINYBARS_PER_HBAR
)


_RealAsyncClient = httpx.AsyncClient

TX_ID = "0.0.1001@1700000000.000000001"
MODULE = "multichain_core.adapters.hedera"


def _mirror_node(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/api/v1/network/nodes":
        return httpx.Response(200, json={"nodes": [{"node_id": 0}]})
    if path == "/api/v1/accounts/0.0.1001":
        return httpx.Response(200, json={"account": "0.0.1001", "balance": {"balance": 250_000_000}})
    if path == "/api/v1/accounts/0.0.1001/tokens":
        return httpx.Response(200, json={"tokens": [
            {"token_id": "0.0.555", "balance": 70},
            {"token_id": "0.0.777", "balance": 5},
        ]})
    if path == "/api/v1/transactions/0.0.1001-1700000000-000000001":
        return httpx.Response(200, json={"transactions": [
            {"result": "SUCCESS", "consensus_timestamp": "1700000001.000000000"}
        ]})
    if path == "/api/v1/transactions/0.0.1001-1700000000-000000002":
        return httpx.Response(200, json={"transactions": [
            {"result": "INSUFFICIENT_PAYER_BALANCE", "consensus_timestamp": "1700000001.000000000"}
        ]})
    if path == "/api/v1/topics/0.0.4242/messages":
        return httpx.Response(200, json={"messages": [
            {"sequence_number": 1, "consensus_timestamp": "1700000002.0",
             "message": base64.b64encode(b"hello").decode()},
        ]})
    if path == "/api/v1/tokens/0.0.555":
        return httpx.Response(200, json={"token_id": "0.0.555", "symbol": "DEMO"})
    if path == "/api/v1/accounts/0.0.9999":
        return httpx.Response(500, json={"_status": {"messages": [{"message": "internal"}]}})
    return httpx.Response(404, json={"_status": {"messages": [{"message": "Not found"}]}})


def _client_factory(handler):
    def factory(**kwargs):
        return _RealAsyncClient(transport=httpx.MockTransport(handler), **kwargs)
    return factory


def _transaction(status=ResponseCode.SUCCESS, transaction_id=TX_ID, **receipt_fields):
    """SDK transaction stub whose execute() returns a receipt"""
    transaction = Mock()
    transaction.transaction_id = transaction_id
    transaction.execute.return_value = Mock(status=status, **receipt_fields)
    return transaction


@pytest.fixture
def operator_key():
    key = Mock()
    key.public_key.return_value = "302a300506032b6570032100" + "ab" * 32
    key.sign.return_value = b"\x01\x02"
    return key


@pytest.fixture
def sdk_client():
    return Mock()


@pytest.fixture(autouse=True)
def hiero_sdk(operator_key, sdk_client):
    """Keep the SDK client and key parsing offline"""
    with patch(f"{MODULE}.PrivateKey") as private_key, \
            patch(f"{MODULE}.Network"), \
            patch(f"{MODULE}.Client", return_value=sdk_client):
        private_key.from_string.return_value = operator_key
        yield private_key


@pytest.fixture
def config():
    return BlockchainConfiguration(
        backend=BackendId.HEDERA,
        network="testnet",
        credentials=ChainCredentials(account_id="0.0.1001", private_key="302e0201"),
    )


@pytest_asyncio.fixture
async def adapter(config, settings):
    with patch(f"{MODULE}.httpx.AsyncClient", side_effect=_client_factory(_mirror_node)):
        hedera = HederaAdapter(settings)
        await hedera.initialize(config)
    yield hedera
    await hedera.disconnect()


class TestHederaConnection:
    """Test Hedera initialization"""

    @pytest.mark.asyncio
    async def test_missing_credentials(self, settings):
        adapter = HederaAdapter(settings)
        with pytest.raises(InvalidCredentialsError):
            await adapter.initialize(BlockchainConfiguration(backend="hedera"))
        assert adapter.is_connected is False

    @pytest.mark.asyncio
    async def test_malformed_account_id(self, settings):
        adapter = HederaAdapter(settings)
        config = BlockchainConfiguration(
            backend="hedera",
            credentials=ChainCredentials(account_id="1001", private_key="302e0201"),
        )
        with pytest.raises(InvalidCredentialsError):
            await adapter.initialize(config)

    @pytest.mark.asyncio
    async def test_invalid_private_key(self, config, settings, hiero_sdk):
        hiero_sdk.from_string.side_effect = ValueError("not a DER or hex key")

        adapter = HederaAdapter(settings)
        with pytest.raises(InvalidCredentialsError) as exc_info:
            await adapter.initialize(config)

        assert "private key" in str(exc_info.value)
        assert adapter.is_connected is False

    @pytest.mark.asyncio
    async def test_unreachable_mirror_node(self, config, settings):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        with patch(f"{MODULE}.httpx.AsyncClient", side_effect=_client_factory(refuse)):
            adapter = HederaAdapter(settings)
            with pytest.raises(NetworkError):
                await adapter.initialize(config)
        assert adapter.is_connected is False

    @pytest.mark.asyncio
    async def test_operator_set_on_sdk_client(self, adapter, sdk_client, operator_key):
        operator_id, key = sdk_client.set_operator.call_args.args
        assert str(operator_id) == "0.0.1001"
        assert key is operator_key

    @pytest.mark.asyncio
    async def test_disconnect_closes_sdk_client(self, adapter, sdk_client):
        await adapter.disconnect()
        sdk_client.close.assert_called_once()
        assert adapter.is_connected is False


class TestHederaOperations:
    """Test Hedera read operations against a mocked mirror node"""

    @pytest.mark.asyncio
    async def test_get_balance(self, adapter):
        assert await adapter.get_balance("0.0.1001") == 250_000_000

    @pytest.mark.asyncio
    async def test_get_balance_invalid_address(self, adapter):
        with pytest.raises(InvalidAddressError):
            await adapter.get_balance("0xabc")

    @pytest.mark.asyncio
    async def test_get_balance_unknown_account(self, adapter):
        with pytest.raises(InvalidAddressError):
            await adapter.get_balance("0.0.4040")

    @pytest.mark.asyncio
    async def test_server_error_is_network_error(self, adapter):
        with pytest.raises(NetworkError) as exc_info:
            await adapter.get_balance("0.0.9999")
        assert exc_info.value.code == ErrorCode.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_get_token_balance(self, adapter):
        balance = await adapter.get_token_balance(BalanceParams(address="0.0.1001", token_id="0.0.555"))
        assert balance == 70

        native = await adapter.get_token_balance(BalanceParams(address="0.0.1001"))
        assert native == 250_000_000

    @pytest.mark.asyncio
    async def test_gas_price_is_fixed(self, adapter):
        gas = await adapter.get_gas_price()
        assert gas.standard == gas.fast == gas.instant
        assert gas.unit == GasUnit.TINYBARS

    @pytest.mark.asyncio
    async def test_estimate_fees(self, adapter):
        transfer = await adapter.estimate_fees(EstimateFeeParams())
        assert transfer.estimated_cost == HEDERA_FEES[FeeOperation.TRANSFER]
        assert transfer.currency == "HBAR"
        assert transfer.estimated_cost_usd == pytest.approx(0.0001)

        deploy = await adapter.estimate_fees(EstimateFeeParams(operation=FeeOperation.DEPLOY))
        assert deploy.estimated_cost == 2_000_000_000

    @pytest.mark.asyncio
    async def test_transaction_status(self, adapter):
        success = await adapter.get_transaction_status("0.0.1001@1700000000.000000001")
        assert success.status == TransactionState.SUCCESS
        assert success.timestamp is not None

        failed = await adapter.get_transaction_status("0.0.1001-1700000000-000000002")
        assert failed.status == TransactionState.FAILED
        assert failed.error == "INSUFFICIENT_PAYER_BALANCE"

        pending = await adapter.get_transaction_status("0.0.1001@1700000000.000000003")
        assert pending.status == TransactionState.PENDING

    @pytest.mark.asyncio
    async def test_connect_wallet(self, adapter):
        connection = await adapter.connect_wallet(WalletProvider.CUSTOM)
        assert connection.address == "0.0.1001"
        assert connection.chain_id == "296"
        assert connection.public_key.startswith("302a")

    @pytest.mark.asyncio
    async def test_explorer_url(self, adapter):
        assert adapter.get_explorer_url("0.0.1001@1700000000.000000001") == \
            "https://hashscan.io/testnet/transaction/0.0.1001@1700000000.000000001"


class TestHederaTokenService:
    """Test token and NFT transactions built with the SDK"""

    @pytest.mark.asyncio
    async def test_create_token(self, adapter, operator_key):
        transaction = _transaction(token_id="0.0.5005")

        with patch(f"{MODULE}.TokenCreateTransaction", return_value=transaction):
            result = await adapter.create_token(CreateTokenParams(
                name="Demo", symbol="DMO", decimals=2, initial_supply=1_000
            ))

        assert result.token_id == "0.0.5005"
        assert result.token_address == "0.0.5005"
        assert result.transaction.status == TransactionState.SUCCESS
        assert result.transaction.explorer_url == f"https://hashscan.io/testnet/transaction/{TX_ID}"
        transaction.set_token_name.assert_called_once_with("Demo")
        transaction.set_decimals.assert_called_once_with(2)
        transaction.set_initial_supply.assert_called_once_with(1_000)
        transaction.set_token_type.assert_called_once_with(TokenType.FUNGIBLE_COMMON)
        transaction.set_supply_key.assert_called_once()
        transaction.set_freeze_key.assert_not_called()
        transaction.set_transaction_fee.assert_called_once_with(MAX_FEE_CREATE_TOKEN * TINYBARS_PER_HBAR)
        transaction.sign.assert_called_once_with(operator_key)

    @pytest.mark.asyncio
    async def test_hbar_transfer(self, adapter):
        transaction = _transaction()

        with patch(f"{MODULE}.TransferTransaction", return_value=transaction):
            result = await adapter.transfer_token(TransferParams(to="0.0.2002", amount=500, memo="rent"))

        amounts = [call.args[1] for call in transaction.add_hbar_transfer.call_args_list]
        assert amounts == [-500, 500]
        assert str(transaction.add_hbar_transfer.call_args_list[1].args[0]) == "0.0.2002"
        transaction.set_transaction_memo.assert_called_once_with("rent")
        assert result.transaction_hash == TX_ID

    @pytest.mark.asyncio
    async def test_token_transfer(self, adapter):
        transaction = _transaction()

        with patch(f"{MODULE}.TransferTransaction", return_value=transaction):
            await adapter.transfer_token(TransferParams(to="0.0.2002", amount="25", token_id="0.0.555"))

        transaction.add_hbar_transfer.assert_not_called()
        amounts = [call.args[2] for call in transaction.add_token_transfer.call_args_list]
        assert amounts == [-25, 25]

    @pytest.mark.asyncio
    async def test_transfer_to_invalid_account(self, adapter):
        with pytest.raises(InvalidAddressError):
            await adapter.transfer_token(TransferParams(to="0xabc", amount=1))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,expected", [
        (ResponseCode.INSUFFICIENT_PAYER_BALANCE, InsufficientBalanceError),
        (ResponseCode.INVALID_SIGNATURE, TransactionFailedError),
    ])
    async def test_failed_receipt(self, adapter, status, expected):
        transaction = _transaction(status=status)

        with patch(f"{MODULE}.TransferTransaction", return_value=transaction):
            with pytest.raises(expected) as exc_info:
                await adapter.transfer_token(TransferParams(to="0.0.2002", amount=1))

        assert exc_info.value.details["status"] == status.name
        assert exc_info.value.details["transaction_id"] == TX_ID

    @pytest.mark.asyncio
    async def test_create_finite_nft_collection(self, adapter):
        transaction = _transaction(token_id="0.0.6006")
        metadata = NFTMetadata(name="Demo", image="ipfs://demo")

        with patch(f"{MODULE}.TokenCreateTransaction", return_value=transaction):
            result = await adapter.create_nft(CreateNFTParams(
                name="Demo", symbol="DMO", metadata=metadata, collection_size=100
            ))

        assert result.collection_id == "0.0.6006"
        transaction.set_token_type.assert_called_once_with(TokenType.NON_FUNGIBLE_UNIQUE)
        transaction.set_supply_type.assert_called_once_with(SupplyType.FINITE)
        transaction.set_max_supply.assert_called_once_with(100)

    @pytest.mark.asyncio
    async def test_mint_nft_to_other_account(self, adapter):
        """Test minted serials are moved from the treasury to the receiver"""
        mint = _transaction(serial_numbers=[1, 2])
        transfer = _transaction(transaction_id="0.0.1001@1700000000.000000009")
        metadata = NFTMetadata(name="Demo", image="ipfs://demo")

        with patch(f"{MODULE}.TokenMintTransaction", return_value=mint), \
                patch(f"{MODULE}.TransferTransaction", return_value=transfer):
            result = await adapter.mint_nft(MintNFTParams(
                collection_id="0.0.6006", to="0.0.2002", metadata=metadata, amount=2
            ))

        mint.set_metadata.assert_called_once_with([b"ipfs://demo", b"ipfs://demo"])
        assert transfer.add_nft_transfer.call_count == 2
        assert result.custom_data["serial_numbers"] == [1, 2]
        assert result.custom_data["transfer_transaction_id"] == "0.0.1001@1700000000.000000009"

    @pytest.mark.asyncio
    async def test_mint_nft_to_treasury(self, adapter):
        mint = _transaction(serial_numbers=[7])
        metadata = NFTMetadata(name="Demo", image="ipfs://demo")

        with patch(f"{MODULE}.TokenMintTransaction", return_value=mint), \
                patch(f"{MODULE}.TransferTransaction") as transfer_class:
            result = await adapter.mint_nft(MintNFTParams(
                collection_id="0.0.6006", to="0.0.1001", metadata=metadata
            ))

        transfer_class.assert_not_called()
        assert result.custom_data == {"serial_numbers": [7]}

    @pytest.mark.asyncio
    async def test_transfer_nft(self, adapter):
        transaction = _transaction()

        with patch(f"{MODULE}.TransferTransaction", return_value=transaction):
            await adapter.transfer_nft(TransferNFTParams(to="0.0.2002", token_id="0.0.6006", nft_id="3"))

        nft_id, sender, receiver = transaction.add_nft_transfer.call_args.args
        assert nft_id.serial_number == 3
        assert str(sender) == "0.0.1001"
        assert str(receiver) == "0.0.2002"

    @pytest.mark.asyncio
    async def test_transfer_nft_invalid_token(self, adapter):
        with pytest.raises(InvalidAddressError):
            await adapter.transfer_nft(TransferNFTParams(to="0.0.2002", token_id="token", nft_id=1))


class TestHederaContracts:
    """Test smart contract service calls"""

    ABI = [
        {"type": "constructor", "inputs": [{"name": "supply", "type": "uint256"}]},
        {"name": "totalSupply", "type": "function", "stateMutability": "view",
         "inputs": [], "outputs": [{"name": "", "type": "uint256"}]},
        {"name": "mint", "type": "function", "stateMutability": "nonpayable",
         "inputs": [{"name": "amount", "type": "uint256"}], "outputs": []},
    ]

    @pytest.mark.asyncio
    async def test_deploy_contract(self, adapter):
        file_create = _transaction(file_id="0.0.7007")
        contract_create = _transaction(contract_id="0.0.7008")

        with patch(f"{MODULE}.FileCreateTransaction", return_value=file_create), \
                patch(f"{MODULE}.ContractCreateTransaction", return_value=contract_create):
            result = await adapter.deploy_contract(DeployContractParams(
                contract_code="0x6080", abi=self.ABI, constructor_args=[5], gas=250_000
            ))

        assert result.contract_id == "0.0.7008"
        file_create.set_contents.assert_called_once_with(b"6080")
        contract_create.set_bytecode_file_id.assert_called_once_with("0.0.7007")
        contract_create.set_gas.assert_called_once_with(250_000)
        contract_create.set_constructor_parameters.assert_called_once_with(encode(["uint256"], [5]))

    @pytest.mark.asyncio
    async def test_constructor_args_without_constructor(self, adapter):
        with patch(f"{MODULE}.FileCreateTransaction") as file_create:
            with pytest.raises(ContractError):
                await adapter.deploy_contract(DeployContractParams(
                    contract_code="6080", abi=self.ABI[1:], constructor_args=[5]
                ))

        file_create.assert_not_called()

    @pytest.mark.asyncio
    async def test_view_call_is_query(self, adapter):
        query = Mock()
        query.execute.return_value = Mock(contract_call_result=encode(["uint256"], [1_000]))

        with patch(f"{MODULE}.ContractCallQuery", return_value=query):
            result = await adapter.call_contract(CallContractParams(
                contract_address="0.0.7008", method_name="totalSupply", abi=self.ABI
            ))

        assert result == 1_000
        assert query.set_function_parameters.call_args.args[0][:4] == bytes.fromhex("18160ddd")

    @pytest.mark.asyncio
    async def test_state_changing_call_is_transaction(self, adapter):
        transaction = _transaction()

        with patch(f"{MODULE}.ContractExecuteTransaction", return_value=transaction):
            result = await adapter.call_contract(CallContractParams(
                contract_address="0.0.7008", method_name="mint", args=[10], abi=self.ABI
            ))

        call_data = transaction.set_function_parameters.call_args.args[0]
        assert call_data[4:] == encode(["uint256"], [10])
        assert result.transaction_hash == TX_ID

    @pytest.mark.asyncio
    async def test_unknown_method(self, adapter):
        with pytest.raises(ContractError):
            await adapter.call_contract(CallContractParams(
                contract_address="0.0.7008", method_name="burn", abi=self.ABI
            ))


class TestHederaSigning:
    """Test offline signing"""

    @pytest.mark.asyncio
    async def test_sign_transaction(self, adapter, operator_key, sdk_client):
        transfer = _transaction()
        transfer.build_transaction_body.return_value.SerializeToString.return_value = b"body"

        with patch(f"{MODULE}.TransferTransaction", return_value=transfer):
            signed = await adapter.sign_transaction(Transaction(to="0.0.2002", value=500))

        assert signed.raw_transaction == base64.b64encode(b"body").decode()
        assert signed.signature == "0102"
        assert signed.transaction_hash == TX_ID
        transfer.freeze_with.assert_called_once_with(sdk_client)
        transfer.execute.assert_not_called()
        operator_key.sign.assert_called_once_with(b"body")


class TestHederaBackendOperations:
    """Test consensus and token service operations"""

    @pytest.mark.asyncio
    async def test_create_topic(self, adapter):
        transaction = _transaction(topic_id="0.0.4242")

        with patch(f"{MODULE}.TopicCreateTransaction", return_value=transaction):
            result = await adapter.execute_backend_specific_operation(
                "createTopic", {"memo": "audit trail", "submitKey": True}
            )

        assert result["topic_id"] == "0.0.4242"
        assert result["transaction_hash"] == TX_ID
        transaction.set_memo.assert_called_once_with("audit trail")
        transaction.set_submit_key.assert_called_once()
        transaction.set_admin_key.assert_not_called()

    @pytest.mark.asyncio
    async def test_submit_message(self, adapter):
        transaction = _transaction()

        with patch(f"{MODULE}.TopicMessageSubmitTransaction", return_value=transaction):
            result = await adapter.execute_backend_specific_operation(
                "submitMessage", {"topicId": "0.0.4242", "message": "hello"}
            )

        transaction.set_message.assert_called_once_with("hello")
        assert result["topic_id"] == "0.0.4242"
        assert result["explorer_url"].endswith(TX_ID)

    @pytest.mark.asyncio
    async def test_submit_message_invalid_topic(self, adapter):
        with pytest.raises(InvalidAddressError):
            await adapter.execute_backend_specific_operation("submitMessage", {"topicId": "t", "message": "x"})

    @pytest.mark.asyncio
    async def test_topic_messages(self, adapter):
        result = await adapter.execute_backend_specific_operation("getTopicMessages", {"topicId": "0.0.4242"})
        assert result["topic_id"] == "0.0.4242"
        assert result["messages"][0]["message"] == "hello"

    @pytest.mark.asyncio
    async def test_token_info(self, adapter):
        info = await adapter.execute_backend_specific_operation("getTokenInfo", {"token_id": "0.0.555"})
        assert info["symbol"] == "DEMO"

    @pytest.mark.asyncio
    async def test_invalid_topic(self, adapter):
        with pytest.raises(InvalidAddressError):
            await adapter.execute_backend_specific_operation("getTopicMessages", {"topicId": "topic"})

    @pytest.mark.asyncio
    async def test_unknown_operation(self, adapter):
        with pytest.raises(UnsupportedOperationError) as exc_info:
            await adapter.execute_backend_specific_operation("deleteTopic")
        assert exc_info.value.details["available"] == [
            "createTopic", "getTokenInfo", "getTopicMessages", "submitMessage"
        ]

    @pytest.mark.asyncio
    async def test_requires_initialize(self, settings):
        with pytest.raises(NotInitializedError):
            await HederaAdapter(settings).execute_backend_specific_operation("createTopic")
