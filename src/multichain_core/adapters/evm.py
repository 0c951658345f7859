"""
EVM (Ethereum Virtual Machine) adapter for Ethereum-compatible backends.
Supports Ethereum L1 and the Base L2.
"""

import logging
from abc import abstractmethod
from typing import Optional, Dict, Any, List

from web3 import AsyncWeb3, AsyncHTTPProvider, Web3
from web3.exceptions import TransactionNotFound, TimeExhausted, ContractLogicError
from eth_account import Account

from .base import BaseAdapter, adapter_operation
from ..types import (
    BackendId, ErrorCode, FeeOperation, GasUnit, TransactionState,
    InvalidAddressError, InvalidCredentialsError, ContractError, UnsupportedOperationError
)
from ..config import BlockchainConfiguration, resolve_rpc_url
from ..models import (
    CreateTokenParams, TokenResult, TransferParams, TransactionResult,
    BalanceParams, CreateNFTParams, NFTResult, MintNFTParams, TransferNFTParams,
    DeployContractParams, ContractResult, CallContractParams, Transaction,
    SignedTransaction, GasPrice, EstimateFeeParams, FeeEstimate, TransactionStatusInfo,
    to_int_amount
)
from ..utils import (
    validate_address, normalize_address, format_wei, calculate_tx_cost, validate_private_key
)

logger = logging.getLogger(__name__)


ERC20_ABI: List[Dict[str, Any]] = [
    {
        "constant": True,
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [{"name": "to", "type": "address"}, {"name": "amount", "type": "uint256"}],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

ERC721_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [{"name": "to", "type": "address"}, {"name": "uri", "type": "string"}],
        "name": "safeMint",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "from", "type": "address"},
            {"name": "to", "type": "address"},
            {"name": "tokenId", "type": "uint256"},
        ],
        "name": "safeTransferFrom",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

# Gas units per operation used for fee estimates
OPERATION_GAS: Dict[FeeOperation, int] = {
    FeeOperation.TRANSFER: 21_000,
    FeeOperation.MINT: 150_000,
    FeeOperation.BURN: 50_000,
    FeeOperation.DEPLOY: 1_500_000,
    FeeOperation.CUSTOM: 100_000,
}
COMPLEXITY_MULTIPLIER = {"simple": 1, "medium": 2, "complex": 4}
DEPLOY_GAS_PER_BYTE = 200

# Indicative ETH price used for USD estimates
ETH_USD = 2500.0


class EVMAdapter(BaseAdapter):
    """Adapter for EVM-compatible backends; subclasses bind the chain"""

    name = "EVMAdapter"

    @property
    @abstractmethod
    def backend(self) -> BackendId:
        ...

    def __init__(self, settings=None):
        super().__init__(settings)
        self.w3: Optional[AsyncWeb3] = None
        self._account = None
        self._chain_id: Optional[int] = None

    def _default_rpc_url(self, config: BlockchainConfiguration) -> Optional[str]:
        """First default endpoint usable with the configured provider keys"""
        credentials = config.credentials
        for url in self.metadata.rpc_url_candidates(self.network):
            if url.endswith("/v2/"):
                if credentials.alchemy_key:
                    return url + credentials.alchemy_key
            elif url.endswith("/v3/"):
                if credentials.infura_key:
                    return url + credentials.infura_key
            else:
                return url
        return None

    async def _connect(self, config: BlockchainConfiguration) -> None:
        rpc_url = resolve_rpc_url(config, self._default_rpc_url(config))
        if not rpc_url:
            raise InvalidCredentialsError(
                f"{self.metadata.display_name} requires rpc_url, alchemy_key or infura_key",
                backend=self.backend,
                operation="initialize",
            )

        if config.credentials.private_key_evm:
            if not validate_private_key(config.credentials.private_key_evm):
                raise InvalidCredentialsError(
                    "Invalid EVM private key: expected 32 bytes of hex",
                    backend=self.backend,
                    operation="initialize",
                )
            try:
                self._account = Account.from_key(config.credentials.private_key_evm)
            except (ValueError, TypeError) as e:
                raise InvalidCredentialsError(
                    f"Invalid EVM private key: {e}",
                    backend=self.backend,
                    operation="initialize",
                ) from e

        self.w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
        if not await self.w3.is_connected():
            raise ConnectionError(f"Cannot reach {self.metadata.display_name} RPC endpoint")

        self._chain_id = await self.w3.eth.chain_id
        expected = self.metadata.chain_id(self.network)
        if expected is not None and int(expected) != self._chain_id:
            logger.warning(f"Chain ID mismatch: expected {expected}, got {self._chain_id}")

        logger.info(f"Connected to {self.backend.value} at chain id {self._chain_id}")

    async def _close(self) -> None:
        w3, self.w3 = self.w3, None
        self._account = None
        self._chain_id = None
        if w3 is not None and hasattr(w3.provider, "disconnect"):
            await w3.provider.disconnect()

    # Helpers

    def _checksum(self, address: str, operation: str) -> str:
        if not validate_address(address, self.backend):
            raise InvalidAddressError(
                f"Invalid {self.metadata.display_name} address: {address}",
                backend=self.backend,
                operation=operation,
            )
        return normalize_address(address, self.backend)

    def _require_signer(self, operation: str):
        if self._account is None:
            raise InvalidCredentialsError(
                f"{operation} requires private_key_evm in credentials",
                backend=self.backend,
                operation=operation,
            )
        return self._account

    def _session_address(self) -> Optional[str]:
        return self._account.address if self._account is not None else None

    def _artifact(self, custom_config: Dict[str, Any], operation: str):
        merged = dict(self.config.custom_config if self.config else {})
        merged.update(custom_config)
        abi, bytecode = merged.get("abi"), merged.get("bytecode")
        if not abi or not bytecode:
            raise UnsupportedOperationError(
                f"{operation} requires a compiled contract in custom_config['abi'] and custom_config['bytecode']",
                backend=self.backend,
                operation=operation,
            )
        return abi, bytecode

    async def _fill_transaction(self, tx: Dict[str, Any]) -> Dict[str, Any]:
        account = self._require_signer("sign_transaction")
        tx.setdefault("from", account.address)
        tx.setdefault("chainId", self._chain_id)
        if tx.get("nonce") is None:
            tx["nonce"] = await self.w3.eth.get_transaction_count(account.address)
        # build_transaction may already have filled EIP-1559 fee fields
        if tx.get("gasPrice") is None and "maxFeePerGas" not in tx:
            tx["gasPrice"] = await self.w3.eth.gas_price
        if tx.get("gas") is None:
            tx["gas"] = await self.w3.eth.estimate_gas(tx)
        return tx

    async def _send(self, tx: Dict[str, Any]) -> TransactionResult:
        """Sign, broadcast and wait for the receipt"""
        account = self._require_signer("send_transaction")
        tx = await self._fill_transaction(tx)
        signed = account.sign_transaction(tx)
        tx_hash = Web3.to_hex(await self.w3.eth.send_raw_transaction(signed.raw_transaction))

        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.settings.receipt_timeout
            )
        except TimeExhausted:
            logger.warning(f"No receipt for {tx_hash} after {self.settings.receipt_timeout}s")
            return self._transaction_result(tx_hash, TransactionState.PENDING,
                                            gas_price=tx.get("gasPrice") or tx.get("maxFeePerGas"))

        return self._build_transaction_result(receipt)

    def _build_transaction_result(self, receipt) -> TransactionResult:
        """Build TransactionResult from receipt"""
        tx_hash = Web3.to_hex(receipt["transactionHash"])
        gas_used = receipt.get("gasUsed")
        gas_price = receipt.get("effectiveGasPrice")
        cost_usd = None
        if gas_used is not None and gas_price is not None:
            cost_usd = float(format_wei(calculate_tx_cost(gas_used, gas_price))) * ETH_USD

        status = TransactionState.SUCCESS if receipt["status"] == 1 else TransactionState.FAILED
        custom_data = {}
        if receipt.get("contractAddress"):
            custom_data["contract_address"] = receipt["contractAddress"]

        return self._transaction_result(
            tx_hash,
            status,
            block_number=receipt.get("blockNumber"),
            gas_used=gas_used,
            gas_price=gas_price,
            cost_usd=cost_usd,
            custom_data=custom_data,
        )

    def _contract_result_check(self, result: TransactionResult, operation: str) -> str:
        if result.status == TransactionState.FAILED:
            raise ContractError(
                f"{operation} transaction {result.transaction_hash} reverted",
                backend=self.backend,
                operation=operation,
                details={"transaction_hash": result.transaction_hash},
            )
        return result.custom_data.get("contract_address")

    async def _deploy(self, abi, bytecode, args: List[Any], operation: str,
                      gas: Optional[int] = None, gas_price: Optional[int] = None,
                      value: int = 0):
        account = self._require_signer(operation)
        factory = self.w3.eth.contract(abi=abi, bytecode=bytecode)
        tx_params = {"from": account.address, "value": value}
        if gas is not None:
            tx_params["gas"] = gas
        if gas_price is not None:
            tx_params["gasPrice"] = gas_price
        tx = await factory.constructor(*args).build_transaction(tx_params)
        result = await self._send(tx)
        return result, self._contract_result_check(result, operation)

    # Accounts

    @adapter_operation(ErrorCode.NETWORK_ERROR, address_errors=True)
    async def get_balance(self, address: str) -> int:
        """Native balance in wei"""
        return await self.w3.eth.get_balance(self._checksum(address, "get_balance"))

    @adapter_operation(ErrorCode.CONTRACT_ERROR, address_errors=True)
    async def get_token_balance(self, params: BalanceParams) -> int:
        owner = self._checksum(params.address, "get_token_balance")
        if not params.token_id:
            return await self.w3.eth.get_balance(owner)
        token = self.w3.eth.contract(address=self._checksum(params.token_id, "get_token_balance"), abi=ERC20_ABI)
        return await token.functions.balanceOf(owner).call()

    @adapter_operation(ErrorCode.TRANSACTION_FAILED, address_errors=True)
    async def transfer_token(self, params: TransferParams) -> TransactionResult:
        to = self._checksum(params.to, "transfer_token")
        amount = to_int_amount(params.amount)

        if not params.token_id:
            tx = {"to": to, "value": amount}
            if params.memo:
                tx["data"] = Web3.to_hex(text=params.memo)
            return await self._send(tx)

        self._ensure_capability("has_erc20", "transfer_token")
        account = self._require_signer("transfer_token")
        token = self.w3.eth.contract(address=self._checksum(params.token_id, "transfer_token"), abi=ERC20_ABI)
        tx = await token.functions.transfer(to, amount).build_transaction({"from": account.address})
        return await self._send(tx)

    # Tokens and NFTs

    @adapter_operation(ErrorCode.CONTRACT_ERROR)
    async def create_token(self, params: CreateTokenParams) -> TokenResult:
        self._ensure_capability("has_erc20", "create_token")
        abi, bytecode = self._artifact(params.custom_config, "create_token")
        args = params.custom_config.get(
            "constructor_args", [params.name, params.symbol, to_int_amount(params.initial_supply)]
        )
        result, address = await self._deploy(abi, bytecode, args, "create_token")
        return TokenResult(
            token_id=address,
            token_address=address,
            transaction=result,
            metadata=params.metadata,
        )

    @adapter_operation(ErrorCode.CONTRACT_ERROR)
    async def create_nft(self, params: CreateNFTParams) -> NFTResult:
        self._ensure_capability("has_erc721", "create_nft")
        abi, bytecode = self._artifact(params.custom_config, "create_nft")
        args = params.custom_config.get("constructor_args", [params.name, params.symbol])
        result, address = await self._deploy(abi, bytecode, args, "create_nft")
        return NFTResult(
            collection_id=address,
            collection_address=address,
            transaction=result,
            metadata=params.metadata,
        )

    @adapter_operation(ErrorCode.CONTRACT_ERROR, address_errors=True)
    async def mint_nft(self, params: MintNFTParams) -> TransactionResult:
        self._ensure_capability("has_erc721", "mint_nft")
        account = self._require_signer("mint_nft")
        collection = self.w3.eth.contract(
            address=self._checksum(params.collection_id, "mint_nft"), abi=ERC721_ABI
        )
        tx = await collection.functions.safeMint(
            self._checksum(params.to, "mint_nft"), params.metadata.token_uri
        ).build_transaction({"from": account.address})
        return await self._send(tx)

    @adapter_operation(ErrorCode.CONTRACT_ERROR, address_errors=True)
    async def transfer_nft(self, params: TransferNFTParams) -> TransactionResult:
        self._ensure_capability("has_erc721", "transfer_nft")
        account = self._require_signer("transfer_nft")
        collection = self.w3.eth.contract(
            address=self._checksum(params.token_id, "transfer_nft"), abi=ERC721_ABI
        )
        tx = await collection.functions.safeTransferFrom(
            account.address, self._checksum(params.to, "transfer_nft"), int(params.nft_id)
        ).build_transaction({"from": account.address})
        return await self._send(tx)

    # Contracts

    @adapter_operation(ErrorCode.CONTRACT_ERROR)
    async def deploy_contract(self, params: DeployContractParams) -> ContractResult:
        self._ensure_capability("has_smart_contracts", "deploy_contract")
        if not params.abi:
            raise ContractError(
                "deploy_contract requires the contract ABI",
                backend=self.backend,
                operation="deploy_contract",
            )
        result, address = await self._deploy(
            params.abi, params.contract_code, params.constructor_args, "deploy_contract",
            gas=params.gas, gas_price=params.gas_price, value=params.value,
        )
        return ContractResult(
            contract_id=address,
            contract_address=address,
            transaction=result,
            abi=params.abi,
        )

    @adapter_operation(ErrorCode.CONTRACT_ERROR, address_errors=True)
    async def call_contract(self, params: CallContractParams) -> Any:
        """View/pure methods are called; anything else is sent as a transaction"""
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

        contract = self.w3.eth.contract(
            address=self._checksum(params.contract_address, "call_contract"), abi=params.abi
        )
        function = contract.get_function_by_name(params.method_name)(*params.args)

        try:
            if entry.get("stateMutability") in ("view", "pure") or entry.get("constant"):
                return await function.call()

            account = self._require_signer("call_contract")
            tx_params = {"from": account.address, "value": params.value}
            if params.gas is not None:
                tx_params["gas"] = params.gas
            tx = await function.build_transaction(tx_params)
        except ContractLogicError as e:
            raise ContractError(
                f"{params.method_name} reverted: {e}",
                backend=self.backend,
                operation="call_contract",
                details={"original_error": str(e)},
            ) from e
        return await self._send(tx)

    # Signing

    @adapter_operation(ErrorCode.TRANSACTION_FAILED, address_errors=True)
    async def sign_transaction(self, transaction: Transaction) -> SignedTransaction:
        account = self._require_signer("sign_transaction")
        tx = {
            "to": self._checksum(transaction.to, "sign_transaction"),
            "value": transaction.value,
            "nonce": transaction.nonce,
            "gas": transaction.gas,
            "gasPrice": transaction.gas_price,
        }
        if transaction.chain_id is not None:
            tx["chainId"] = int(transaction.chain_id)
        if transaction.data:
            tx["data"] = transaction.data
        tx = await self._fill_transaction(tx)
        tx.pop("from", None)

        signed = account.sign_transaction(tx)
        return SignedTransaction(
            raw_transaction=Web3.to_hex(signed.raw_transaction),
            transaction_hash=Web3.to_hex(signed.hash),
            signature=f"0x{signed.r:064x}{signed.s:064x}{signed.v:02x}",
        )

    # Fees and status

    @adapter_operation(ErrorCode.NETWORK_ERROR)
    async def get_gas_price(self) -> GasPrice:
        gas_price = await self.w3.eth.gas_price
        return GasPrice(
            standard=gas_price,
            fast=int(gas_price * self.settings.evm_gas_multiplier_fast),
            instant=int(gas_price * self.settings.evm_gas_multiplier_instant),
            unit=GasUnit.WEI,
        )

    @adapter_operation(ErrorCode.NETWORK_ERROR)
    async def estimate_fees(self, params: EstimateFeeParams) -> FeeEstimate:
        operation = FeeOperation(params.operation)
        gas_units = OPERATION_GAS[operation]
        if operation == FeeOperation.DEPLOY and params.contract_size:
            gas_units += params.contract_size * DEPLOY_GAS_PER_BYTE
        elif operation == FeeOperation.CUSTOM:
            gas_units *= COMPLEXITY_MULTIPLIER.get(params.complexity, 1)

        gas_price = await self.w3.eth.gas_price
        cost = calculate_tx_cost(gas_units, gas_price)
        return FeeEstimate(
            estimated_cost=cost,
            estimated_cost_usd=float(format_wei(cost)) * ETH_USD,
            currency=self.metadata.native_token,
            breakdown={"gas_units": gas_units, "gas_price": gas_price},
        )

    @adapter_operation(ErrorCode.NETWORK_ERROR)
    async def get_transaction_status(self, transaction_id: str) -> TransactionStatusInfo:
        try:
            receipt = await self.w3.eth.get_transaction_receipt(transaction_id)
        except TransactionNotFound:
            return TransactionStatusInfo(status=TransactionState.PENDING)

        block_number = receipt["blockNumber"]
        if receipt["status"] != 1:
            return TransactionStatusInfo(
                status=TransactionState.FAILED,
                block_number=block_number,
                error="Transaction reverted",
            )

        latest = await self.w3.eth.block_number
        return TransactionStatusInfo(
            status=TransactionState.SUCCESS,
            confirmations=max(latest - block_number + 1, 1),
            block_number=block_number,
        )


class EthereumAdapter(EVMAdapter):
    backend = BackendId.ETHEREUM
    name = "EthereumAdapter"


class BaseL2Adapter(EVMAdapter):
    backend = BackendId.BASE
    name = "BaseAdapter"
