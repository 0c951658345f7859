"""
Hedera adapter.

Reads go through the public mirror node REST API; writes are native
Hedera transactions built, signed with the operator key and executed
through the Hiero Python SDK.
"""

import asyncio
import base64
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Tuple

import httpx
from eth_abi import encode, decode
from eth_utils import function_abi_to_4byte_selector
from hiero_sdk_python import (
    AccountId, Client, ContractCallQuery, ContractCreateTransaction,
    ContractExecuteTransaction, ContractId, FileCreateTransaction, Hbar, Network,
    NftId, PrivateKey, ResponseCode, SupplyType, TokenCreateTransaction, TokenId,
    TokenMintTransaction, TokenType, TopicCreateTransaction, TopicId,
    TopicMessageSubmitTransaction, TransferTransaction
)

from .base import BaseAdapter, BackendOperation, adapter_operation
from ..types import (
    BackendId, ErrorCode, FeeOperation, GasUnit, NetworkType, TransactionState,
    ContractError, InsufficientBalanceError, InvalidAddressError,
    InvalidCredentialsError, TransactionFailedError
)
from ..config import BlockchainConfiguration
from ..models import (
    CreateTokenParams, TokenResult, TransferParams, TransactionResult,
    BalanceParams, CreateNFTParams, NFTResult, MintNFTParams, TransferNFTParams,
    DeployContractParams, ContractResult, CallContractParams, Transaction,
    SignedTransaction, GasPrice, EstimateFeeParams, FeeEstimate, TransactionStatusInfo,
    to_int_amount
)
from ..utils import validate_address, hedera_tx_id_to_mirror, tinybars_to_hbar

logger = logging.getLogger(__name__)


# Fixed fee schedule (tinybars)
HEDERA_GAS_PRICE = 100_000
HEDERA_FEES: Dict[FeeOperation, int] = {
    FeeOperation.TRANSFER: 100_000,  # 0.001 HBAR
    FeeOperation.DEPLOY: 2_000_000_000,  # 20 HBAR
    FeeOperation.MINT: 50_000_000,  # 0.5 HBAR
    FeeOperation.BURN: 50_000_000,
}

# Max transaction fees (HBAR)
MAX_FEE_CREATE_TOKEN = 30
MAX_FEE_MINT = 10
MAX_FEE_DEPLOY = 20
MAX_FEE_DEFAULT = 2

DEFAULT_CONTRACT_GAS = 100_000

# Indicative HBAR price used for USD estimates
HBAR_USD = 0.1

TINYBARS_PER_HBAR = 100_000_000


class HederaAdapter(BaseAdapter):
    """Hedera token, consensus and smart contract services"""

    backend = BackendId.HEDERA
    name = "HederaAdapter"
    explorer_path = "transaction"

    def __init__(self, settings=None):
        super().__init__(settings)
        self._client: Optional[httpx.AsyncClient] = None
        self._sdk_client: Optional[Client] = None
        self._account_id: Optional[str] = None
        self._operator_id: Optional[AccountId] = None
        self._operator_key: Optional[PrivateKey] = None

    async def _connect(self, config: BlockchainConfiguration) -> None:
        credentials = config.credentials
        if not credentials.account_id or not credentials.private_key:
            raise InvalidCredentialsError(
                "Hedera requires account_id and private_key in credentials",
                backend=self.backend,
                operation="initialize",
            )
        if not validate_address(credentials.account_id, self.backend):
            raise InvalidCredentialsError(
                f"Invalid Hedera account id: {credentials.account_id} (expected shard.realm.num)",
                backend=self.backend,
                operation="initialize",
            )
        try:
            operator_key = PrivateKey.from_string(credentials.private_key)
        except (ValueError, TypeError) as e:
            raise InvalidCredentialsError(
                f"Invalid Hedera private key: {e}",
                backend=self.backend,
                operation="initialize",
            ) from e

        base_url = config.mirror_node_url or config.rpc_url or config.custom_config.get("rpc_url") \
            or self.metadata.rpc_url_candidates(self.network)[0]

        self._client = httpx.AsyncClient(base_url=base_url, timeout=self.settings.request_timeout)
        response = await self._client.get("/api/v1/network/nodes", params={"limit": 1})
        response.raise_for_status()

        operator_id = AccountId.from_string(credentials.account_id)
        sdk_network = "mainnet" if self.network == NetworkType.MAINNET else "testnet"

        def _open_client():
            client = Client(Network(network=sdk_network))
            client.set_operator(operator_id, operator_key)
            return client

        loop = asyncio.get_event_loop()
        self._sdk_client = await loop.run_in_executor(None, _open_client)

        self._account_id = credentials.account_id
        self._operator_id = operator_id
        self._operator_key = operator_key
        logger.info(f"Hedera mirror node {base_url} reachable for account {self._account_id}")

    async def _close(self) -> None:
        client, self._client = self._client, None
        sdk_client, self._sdk_client = self._sdk_client, None
        self._account_id = None
        self._operator_id = None
        self._operator_key = None
        if sdk_client is not None:
            sdk_client.close()
        if client is not None:
            await client.aclose()

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """GET a mirror node resource; None on 404"""
        response = await self._client.get(path, params=params)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    def _require_account(self, address: str, operation: str) -> str:
        if not validate_address(address, self.backend):
            raise InvalidAddressError(
                f"Invalid Hedera account id: {address}",
                backend=self.backend,
                operation=operation,
            )
        return address

    def _entity_id(self, value: Any, parser, kind: str, operation: str):
        """Parse a shard.realm.num entity id with the matching SDK type"""
        if not value or not validate_address(str(value), self.backend):
            raise InvalidAddressError(
                f"Invalid Hedera {kind} id: {value}",
                backend=self.backend,
                operation=operation,
            )
        return parser(str(value))

    def _session_address(self) -> Optional[str]:
        return self._account_id

    def _session_public_key(self) -> Optional[str]:
        if self._operator_key is None:
            return None
        return str(self._operator_key.public_key())

    async def _submit(self, transaction, operation: str,
                      max_fee_hbar: int = MAX_FEE_DEFAULT) -> Tuple[str, Any]:
        """
        Freeze, sign with the operator key and execute a transaction.

        The SDK blocks on gRPC, so execution runs in the default executor.

        Returns:
            The transaction id (account@seconds.nanos) and its receipt
        """
        client, operator_key = self._sdk_client, self._operator_key

        def _execute():
            transaction.set_transaction_fee(max_fee_hbar * TINYBARS_PER_HBAR)
            transaction.freeze_with(client)
            transaction.sign(operator_key)
            return transaction.execute(client)

        loop = asyncio.get_event_loop()
        receipt = await loop.run_in_executor(None, _execute)
        transaction_id = str(transaction.transaction_id)

        if receipt.status != ResponseCode.SUCCESS:
            status = ResponseCode(receipt.status).name
            insufficient = status.startswith("INSUFFICIENT") and status.endswith("BALANCE")
            error_class = InsufficientBalanceError if insufficient else TransactionFailedError
            raise error_class(
                f"{operation} transaction {transaction_id} failed with {status}",
                backend=self.backend,
                operation=operation,
                details={"transaction_id": transaction_id, "status": status},
            )

        logger.debug(f"{operation} executed as {transaction_id}")
        return transaction_id, receipt

    # Accounts

    @adapter_operation(ErrorCode.NETWORK_ERROR)
    async def get_balance(self, address: str) -> int:
        """HBAR balance in tinybars"""
        self._require_account(address, "get_balance")
        account = await self._get_json(f"/api/v1/accounts/{address}")
        if account is None:
            raise InvalidAddressError(
                f"Hedera account {address} not found",
                backend=self.backend,
                operation="get_balance",
            )
        return int(account.get("balance", {}).get("balance", 0))

    @adapter_operation(ErrorCode.NETWORK_ERROR)
    async def get_token_balance(self, params: BalanceParams) -> int:
        if not params.token_id:
            return await self.get_balance(params.address)

        self._require_account(params.address, "get_token_balance")
        data = await self._get_json(
            f"/api/v1/accounts/{params.address}/tokens",
            params={"token.id": params.token_id},
        )
        if data is None:
            raise InvalidAddressError(
                f"Hedera account {params.address} not found",
                backend=self.backend,
                operation="get_token_balance",
            )
        return sum(
            int(entry.get("balance", 0))
            for entry in data.get("tokens", [])
            if entry.get("token_id") == params.token_id
        )

    # Token service

    @adapter_operation(ErrorCode.TRANSACTION_FAILED)
    async def create_token(self, params: CreateTokenParams) -> TokenResult:
        """Create a fungible HTS token with the operator as treasury"""
        self._ensure_capability("has_native_tokens", "create_token")
        public_key = self._operator_key.public_key()
        custom_fields = params.metadata.custom_fields if params.metadata else {}

        transaction = TokenCreateTransaction()
        transaction.set_token_name(params.name)
        transaction.set_token_symbol(params.symbol)
        transaction.set_decimals(params.decimals)
        transaction.set_initial_supply(to_int_amount(params.initial_supply))
        transaction.set_treasury_account_id(self._operator_id)
        transaction.set_token_type(TokenType.FUNGIBLE_COMMON)
        transaction.set_supply_type(SupplyType.INFINITE)
        if custom_fields.get("adminKey", True):
            transaction.set_admin_key(public_key)
        if params.mintable or params.burnable:
            transaction.set_supply_key(public_key)
        if params.freezable:
            transaction.set_freeze_key(public_key)
        if params.pausable:
            transaction.set_pause_key(public_key)
        if custom_fields.get("wipeKey"):
            transaction.set_wipe_key(public_key)

        transaction_id, receipt = await self._submit(transaction, "create_token", MAX_FEE_CREATE_TOKEN)
        token_id = str(receipt.token_id)
        logger.info(f"Created HTS token {params.symbol} as {token_id}")
        return TokenResult(
            token_id=token_id,
            token_address=token_id,
            transaction=self._transaction_result(transaction_id, TransactionState.SUCCESS),
            metadata=params.metadata,
        )

    @adapter_operation(ErrorCode.TRANSACTION_FAILED)
    async def transfer_token(self, params: TransferParams) -> TransactionResult:
        """Move HTS tokens, or HBAR (tinybars) when no token_id is given"""
        receiver = self._entity_id(params.to, AccountId.from_string, "account", "transfer_token")
        amount = to_int_amount(params.amount)

        transaction = TransferTransaction()
        if params.token_id:
            token_id = self._entity_id(params.token_id, TokenId.from_string, "token", "transfer_token")
            transaction.add_token_transfer(token_id, self._operator_id, -amount)
            transaction.add_token_transfer(token_id, receiver, amount)
        else:
            transaction.add_hbar_transfer(self._operator_id, -amount)
            transaction.add_hbar_transfer(receiver, amount)
        if params.memo:
            transaction.set_transaction_memo(params.memo)

        transaction_id, _ = await self._submit(transaction, "transfer_token")
        return self._transaction_result(transaction_id, TransactionState.SUCCESS)

    @adapter_operation(ErrorCode.TRANSACTION_FAILED)
    async def create_nft(self, params: CreateNFTParams) -> NFTResult:
        """Create a non-fungible HTS collection; finite when collection_size is set"""
        self._ensure_capability("has_native_tokens", "create_nft")
        public_key = self._operator_key.public_key()

        transaction = TokenCreateTransaction()
        transaction.set_token_name(params.name)
        transaction.set_token_symbol(params.symbol)
        transaction.set_token_type(TokenType.NON_FUNGIBLE_UNIQUE)
        transaction.set_decimals(0)
        transaction.set_initial_supply(0)
        transaction.set_treasury_account_id(self._operator_id)
        transaction.set_supply_key(public_key)
        if params.collection_size:
            transaction.set_supply_type(SupplyType.FINITE)
            transaction.set_max_supply(params.collection_size)
        else:
            transaction.set_supply_type(SupplyType.INFINITE)
        if params.metadata.properties.get("adminKey", True):
            transaction.set_admin_key(public_key)

        transaction_id, receipt = await self._submit(transaction, "create_nft", MAX_FEE_CREATE_TOKEN)
        collection_id = str(receipt.token_id)
        logger.info(f"Created HTS NFT collection {params.symbol} as {collection_id}")
        return NFTResult(
            collection_id=collection_id,
            collection_address=collection_id,
            transaction=self._transaction_result(transaction_id, TransactionState.SUCCESS),
            metadata=params.metadata,
        )

    @adapter_operation(ErrorCode.TRANSACTION_FAILED)
    async def mint_nft(self, params: MintNFTParams) -> TransactionResult:
        """
        Mint serials into the treasury, then hand them to `to` when it is
        another account.
        """
        token_id = self._entity_id(params.collection_id, TokenId.from_string, "token", "mint_nft")
        receiver = self._entity_id(params.to, AccountId.from_string, "account", "mint_nft")

        transaction = TokenMintTransaction()
        transaction.set_token_id(token_id)
        transaction.set_metadata([params.metadata.token_uri.encode("utf-8")] * params.amount)

        transaction_id, receipt = await self._submit(transaction, "mint_nft", MAX_FEE_MINT)
        serial_numbers: List[int] = [int(serial) for serial in receipt.serial_numbers]

        custom_data: Dict[str, Any] = {"serial_numbers": serial_numbers}
        if params.to != self._account_id:
            transfer = TransferTransaction()
            for serial in serial_numbers:
                transfer.add_nft_transfer(NftId(token_id, serial), self._operator_id, receiver)
            transfer_id, _ = await self._submit(transfer, "mint_nft")
            custom_data["transfer_transaction_id"] = transfer_id

        return self._transaction_result(transaction_id, TransactionState.SUCCESS, custom_data=custom_data)

    @adapter_operation(ErrorCode.TRANSACTION_FAILED)
    async def transfer_nft(self, params: TransferNFTParams) -> TransactionResult:
        token_id = self._entity_id(params.token_id, TokenId.from_string, "token", "transfer_nft")
        receiver = self._entity_id(params.to, AccountId.from_string, "account", "transfer_nft")

        transaction = TransferTransaction()
        transaction.add_nft_transfer(NftId(token_id, int(params.nft_id)), self._operator_id, receiver)
        if params.memo:
            transaction.set_transaction_memo(params.memo)

        transaction_id, _ = await self._submit(transaction, "transfer_nft")
        return self._transaction_result(transaction_id, TransactionState.SUCCESS)

    # Smart contract service

    @adapter_operation(ErrorCode.CONTRACT_ERROR)
    async def deploy_contract(self, params: DeployContractParams) -> ContractResult:
        """Upload the bytecode to a file, then create the contract from it"""
        self._ensure_capability("has_smart_contracts", "deploy_contract")
        bytecode = params.contract_code
        if isinstance(bytecode, bytes):
            bytecode = bytecode.hex()
        bytecode = bytecode[2:] if bytecode.startswith("0x") else bytecode

        constructor_parameters = None
        if params.constructor_args:
            constructor = next((item for item in params.abi if item.get("type") == "constructor"), None)
            if constructor is None:
                raise ContractError(
                    "constructor_args given but the ABI has no constructor",
                    backend=self.backend,
                    operation="deploy_contract",
                )
            constructor_parameters = encode(_input_types(constructor), list(params.constructor_args))

        file_transaction = FileCreateTransaction()
        file_transaction.set_keys([self._operator_key.public_key()])
        file_transaction.set_contents(bytecode.encode("ascii"))
        _, file_receipt = await self._submit(file_transaction, "deploy_contract")

        transaction = ContractCreateTransaction()
        transaction.set_bytecode_file_id(file_receipt.file_id)
        transaction.set_gas(params.gas or DEFAULT_CONTRACT_GAS)
        if params.value:
            transaction.set_initial_balance(params.value)
        if constructor_parameters is not None:
            transaction.set_constructor_parameters(constructor_parameters)

        transaction_id, receipt = await self._submit(transaction, "deploy_contract", MAX_FEE_DEPLOY)
        contract_id = str(receipt.contract_id)
        logger.info(f"Deployed contract {contract_id} from file {file_receipt.file_id}")
        return ContractResult(
            contract_id=contract_id,
            contract_address=contract_id,
            transaction=self._transaction_result(transaction_id, TransactionState.SUCCESS),
            abi=params.abi,
        )

    @adapter_operation(ErrorCode.CONTRACT_ERROR)
    async def call_contract(self, params: CallContractParams) -> Any:
        """View/pure methods run as a local query; anything else executes a transaction"""
        contract_id = self._entity_id(params.contract_address, ContractId.from_string, "contract", "call_contract")
        entry = next(
            (item for item in params.abi
             if item.get("type", "function") == "function" and item.get("name") == params.method_name),
            None
        )
        if entry is None:
            raise ContractError(
                f"Method {params.method_name} not found in ABI",
                backend=self.backend,
                operation="call_contract",
            )
        call_data = function_abi_to_4byte_selector(entry) + encode(_input_types(entry), list(params.args))
        gas = params.gas or DEFAULT_CONTRACT_GAS

        if entry.get("stateMutability") in ("view", "pure") or entry.get("constant"):
            query = ContractCallQuery()
            query.set_contract_id(contract_id)
            query.set_gas(gas)
            query.set_function_parameters(call_data)

            loop = asyncio.get_event_loop()
            result = await loop.run_in_executor(None, query.execute, self._sdk_client)
            values = decode([output["type"] for output in entry.get("outputs", [])], result.contract_call_result)
            return values[0] if len(values) == 1 else list(values)

        transaction = ContractExecuteTransaction()
        transaction.set_contract_id(contract_id)
        transaction.set_gas(gas)
        transaction.set_function_parameters(call_data)
        if params.value:
            transaction.set_payable_amount(Hbar.from_tinybars(params.value))

        transaction_id, _ = await self._submit(transaction, "call_contract")
        return self._transaction_result(transaction_id, TransactionState.SUCCESS)

    # Signing

    @adapter_operation(ErrorCode.TRANSACTION_FAILED)
    async def sign_transaction(self, transaction: Transaction) -> SignedTransaction:
        """Sign an HBAR transfer without submitting it"""
        receiver = self._entity_id(transaction.to, AccountId.from_string, "account", "sign_transaction")
        transfer = TransferTransaction()
        transfer.add_hbar_transfer(self._operator_id, -transaction.value)
        transfer.add_hbar_transfer(receiver, transaction.value)

        transfer.freeze_with(self._sdk_client)
        body = transfer.build_transaction_body().SerializeToString()
        signature = self._operator_key.sign(body)
        return SignedTransaction(
            raw_transaction=base64.b64encode(body).decode("ascii"),
            transaction_hash=str(transfer.transaction_id),
            signature=signature.hex(),
        )

    # Fees

    @adapter_operation()
    async def get_gas_price(self) -> GasPrice:
        # No priority market on Hedera
        return GasPrice(
            standard=HEDERA_GAS_PRICE,
            fast=HEDERA_GAS_PRICE,
            instant=HEDERA_GAS_PRICE,
            unit=GasUnit.TINYBARS,
        )

    @adapter_operation()
    async def estimate_fees(self, params: EstimateFeeParams) -> FeeEstimate:
        cost = HEDERA_FEES.get(FeeOperation(params.operation), HEDERA_FEES[FeeOperation.TRANSFER])
        return FeeEstimate(
            estimated_cost=cost,
            estimated_cost_usd=float(tinybars_to_hbar(cost)) * HBAR_USD,
            currency="HBAR",
            breakdown={"base_fee": cost, "priority_fee": 0, "network_fee": 0},
        )

    # Status

    @adapter_operation(ErrorCode.NETWORK_ERROR)
    async def get_transaction_status(self, transaction_id: str) -> TransactionStatusInfo:
        data = await self._get_json(f"/api/v1/transactions/{hedera_tx_id_to_mirror(transaction_id)}")
        transactions = (data or {}).get("transactions") or []
        if not transactions:
            # Not yet visible on the mirror node
            return TransactionStatusInfo(status=TransactionState.PENDING)

        entry = transactions[0]
        result = entry.get("result")
        timestamp = None
        if entry.get("consensus_timestamp"):
            timestamp = datetime.fromtimestamp(float(entry["consensus_timestamp"]), tz=timezone.utc)

        if result == "SUCCESS":
            return TransactionStatusInfo(status=TransactionState.SUCCESS, confirmations=1, timestamp=timestamp)
        return TransactionStatusInfo(
            status=TransactionState.FAILED,
            timestamp=timestamp,
            error=result,
        )

    # Consensus and token services

    def _backend_operations(self) -> Dict[str, BackendOperation]:
        return {
            "createTopic": self.create_topic,
            "submitMessage": self.submit_message,
            "getTopicMessages": self.get_topic_messages,
            "getTokenInfo": self.get_token_info,
        }

    @adapter_operation(ErrorCode.TRANSACTION_FAILED)
    async def create_topic(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Create a consensus service topic owned by the operator"""
        self._ensure_capability("has_consensus_service", "createTopic")
        public_key = self._operator_key.public_key()

        transaction = TopicCreateTransaction()
        if params.get("memo"):
            transaction.set_memo(params["memo"])
        if params.get("admin_key") or params.get("adminKey"):
            transaction.set_admin_key(public_key)
        if params.get("submit_key") or params.get("submitKey"):
            transaction.set_submit_key(public_key)

        transaction_id, receipt = await self._submit(transaction, "createTopic")
        topic_id = str(receipt.topic_id)
        logger.info(f"Created consensus topic {topic_id}")
        return {
            "topic_id": topic_id,
            "transaction_hash": transaction_id,
            "explorer_url": self.get_explorer_url(transaction_id),
        }

    @adapter_operation(ErrorCode.TRANSACTION_FAILED)
    async def submit_message(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Submit a message to a consensus service topic"""
        self._ensure_capability("has_consensus_service", "submitMessage")
        topic_id = self._entity_id(
            params.get("topic_id") or params.get("topicId"), TopicId.from_string, "topic", "submitMessage"
        )
        message = params.get("message")
        if message is None:
            raise TransactionFailedError(
                "submitMessage requires a message",
                backend=self.backend,
                operation="submitMessage",
            )

        transaction = TopicMessageSubmitTransaction()
        transaction.set_topic_id(topic_id)
        transaction.set_message(message)

        transaction_id, _ = await self._submit(transaction, "submitMessage")
        return {
            "topic_id": str(topic_id),
            "transaction_hash": transaction_id,
            "explorer_url": self.get_explorer_url(transaction_id),
        }

    @adapter_operation(ErrorCode.NETWORK_ERROR)
    async def get_topic_messages(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Read messages of a consensus service topic"""
        self._ensure_capability("has_consensus_service", "getTopicMessages")
        topic_id = params.get("topic_id") or params.get("topicId")
        if not topic_id or not validate_address(topic_id, self.backend):
            raise InvalidAddressError(
                f"Invalid topic id: {topic_id}",
                backend=self.backend,
                operation="getTopicMessages",
            )

        data = await self._get_json(
            f"/api/v1/topics/{topic_id}/messages",
            params={"limit": int(params.get("limit", 25))},
        )
        messages = []
        for message in (data or {}).get("messages", []):
            messages.append({
                "sequence_number": message.get("sequence_number"),
                "consensus_timestamp": message.get("consensus_timestamp"),
                "message": base64.b64decode(message.get("message", "")).decode("utf-8", errors="replace"),
            })
        return {"topic_id": topic_id, "messages": messages}

    @adapter_operation(ErrorCode.NETWORK_ERROR)
    async def get_token_info(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Token service metadata for a token id"""
        token_id = params.get("token_id") or params.get("tokenId")
        if not token_id or not validate_address(token_id, self.backend):
            raise InvalidAddressError(
                f"Invalid token id: {token_id}",
                backend=self.backend,
                operation="getTokenInfo",
            )
        data = await self._get_json(f"/api/v1/tokens/{token_id}")
        if data is None:
            raise InvalidAddressError(
                f"Hedera token {token_id} not found",
                backend=self.backend,
                operation="getTokenInfo",
            )
        return data


def _input_types(abi_entry: Dict[str, Any]) -> List[str]:
    return [item["type"] for item in abi_entry.get("inputs", [])]
