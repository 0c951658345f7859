"""
Solana blockchain adapter implementation.
"""

import base64
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List, Tuple

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TokenAccountOpts
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams as SystemTransferParams, transfer
from solders.transaction import Transaction as SolanaTransaction
from spl.token.async_client import AsyncToken
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import AuthorityType, get_associated_token_address

from .base import BaseAdapter, BackendOperation, adapter_operation
from ..types import (
    BackendId, ErrorCode, FeeOperation, GasUnit, TransactionState,
    InvalidAddressError, InvalidCredentialsError, TransactionFailedError
)
from ..config import BlockchainConfiguration, resolve_rpc_url
from ..models import (
    CreateTokenParams, TokenResult, TransferParams, TransactionResult,
    BalanceParams, CreateNFTParams, NFTResult, MintNFTParams, TransferNFTParams,
    DeployContractParams, ContractResult, CallContractParams, Transaction,
    SignedTransaction, GasPrice, EstimateFeeParams, FeeEstimate, TransactionStatusInfo,
    to_int_amount
)
from ..utils import validate_address, lamports_to_sol

logger = logging.getLogger(__name__)


BASE_FEE_LAMPORTS = 5000
FEE_MULTIPLIERS: Dict[FeeOperation, int] = {
    FeeOperation.TRANSFER: 1,
    FeeOperation.MINT: 5,
    FeeOperation.BURN: 1,
    FeeOperation.DEPLOY: 0,  # not supported
    FeeOperation.CUSTOM: 2,
}
# Rent-exempt minimum for a token account
TOKEN_ACCOUNT_RENT_LAMPORTS = 2_039_280

# Indicative SOL price used for USD estimates
SOL_USD = 150.0


def load_keypair(private_key_solana: Optional[str] = None, keypair_path: Optional[str] = None) -> Keypair:
    """
    Load the session keypair.

    Args:
        private_key_solana: base64-encoded 64-byte secret key
        keypair_path: Solana CLI keypair file (JSON array of 64 ints)
    """
    if private_key_solana:
        secret = base64.b64decode(private_key_solana, validate=True)
    elif keypair_path:
        secret = bytes(json.loads(Path(keypair_path).expanduser().read_text()))
    else:
        raise ValueError("no private_key_solana or keypair_path configured")
    return Keypair.from_bytes(secret)


class SolanaAdapter(BaseAdapter):
    """Solana blockchain adapter"""

    backend = BackendId.SOLANA
    name = "SolanaAdapter"

    def __init__(self, settings=None):
        super().__init__(settings)
        self.client: Optional[AsyncClient] = None
        self._keypair: Optional[Keypair] = None

    async def _connect(self, config: BlockchainConfiguration) -> None:
        credentials = config.credentials
        try:
            self._keypair = load_keypair(credentials.private_key_solana, credentials.keypair_path)
        except (ValueError, TypeError, OSError) as e:
            raise InvalidCredentialsError(
                f"Solana requires private_key_solana (base64 secret key) or keypair_path: {e}",
                backend=self.backend,
                operation="initialize",
            ) from e

        rpc_url = resolve_rpc_url(config, self.metadata.rpc_url_candidates(self.network)[0])
        self.client = AsyncClient(rpc_url, commitment=Confirmed, timeout=self.settings.request_timeout)
        # Test connection
        await self.client.get_slot()
        logger.info(f"Connected to Solana at {rpc_url} with address {self._keypair.pubkey()}")

    async def _close(self) -> None:
        client, self.client = self.client, None
        self._keypair = None
        if client is not None:
            await client.close()

    # Helpers

    def _pubkey(self, address: str, operation: str) -> Pubkey:
        if not validate_address(address, self.backend):
            raise InvalidAddressError(
                f"Invalid Solana address: {address}",
                backend=self.backend,
                operation=operation,
            )
        return Pubkey.from_string(address)

    def _session_address(self) -> Optional[str]:
        return str(self._keypair.pubkey()) if self._keypair is not None else None

    def _session_public_key(self) -> Optional[str]:
        return self._session_address()

    async def _build_signed(self, instructions: List[Instruction]) -> SolanaTransaction:
        blockhash = (await self.client.get_latest_blockhash()).value.blockhash
        message = Message.new_with_blockhash(instructions, self._keypair.pubkey(), blockhash)
        return SolanaTransaction([self._keypair], message, blockhash)

    async def _send(self, instructions: List[Instruction]) -> TransactionResult:
        transaction = await self._build_signed(instructions)
        signature = (await self.client.send_transaction(transaction)).value
        await self.client.confirm_transaction(signature, commitment=Confirmed)
        return self._transaction_result(str(signature), TransactionState.SUCCESS)

    def _token(self, mint: Pubkey) -> AsyncToken:
        return AsyncToken(self.client, mint, TOKEN_PROGRAM_ID, self._keypair)

    async def _ensure_token_account(self, token: AsyncToken, owner: Pubkey) -> Pubkey:
        account = get_associated_token_address(owner, token.pubkey)
        info = await self.client.get_account_info(account)
        if info.value is None:
            account = await token.create_associated_token_account(owner)
        return account

    # Accounts

    @adapter_operation(ErrorCode.NETWORK_ERROR, address_errors=True)
    async def get_balance(self, address: str) -> int:
        """SOL balance in lamports"""
        response = await self.client.get_balance(self._pubkey(address, "get_balance"))
        return response.value

    @adapter_operation(ErrorCode.NETWORK_ERROR, address_errors=True)
    async def get_token_balance(self, params: BalanceParams) -> int:
        """SPL balance summed over the owner's token accounts for the mint"""
        owner = self._pubkey(params.address, "get_token_balance")
        if not params.token_id:
            return (await self.client.get_balance(owner)).value

        mint = self._pubkey(params.token_id, "get_token_balance")
        response = await self.client.get_token_accounts_by_owner_json_parsed(owner, TokenAccountOpts(mint=mint))
        total = 0
        for keyed_account in response.value:
            parsed = keyed_account.account.data.parsed
            total += int(parsed["info"]["tokenAmount"]["amount"])
        return total

    # Tokens

    @adapter_operation(ErrorCode.TRANSACTION_FAILED)
    async def create_token(self, params: CreateTokenParams) -> TokenResult:
        self._ensure_capability("has_native_tokens", "create_token")
        if params.freezable:
            self._ensure_capability("has_token_freeze", "create_token")

        payer = self._keypair
        token = await AsyncToken.create_mint(
            self.client,
            payer,
            payer.pubkey(),
            params.decimals,
            TOKEN_PROGRAM_ID,
            freeze_authority=payer.pubkey() if params.freezable else None,
        )
        mint_address = str(token.pubkey)

        initial_supply = to_int_amount(params.initial_supply)
        transaction_hash = mint_address
        if initial_supply > 0:
            account = await self._ensure_token_account(token, payer.pubkey())
            response = await token.mint_to(account, payer, initial_supply)
            transaction_hash = str(response.value)

        logger.info(f"Created SPL mint {mint_address} ({params.symbol})")
        return TokenResult(
            token_id=mint_address,
            token_address=mint_address,
            transaction=self._transaction_result(transaction_hash, TransactionState.SUCCESS),
            metadata=params.metadata,
        )

    @adapter_operation(ErrorCode.TRANSACTION_FAILED, address_errors=True)
    async def transfer_token(self, params: TransferParams) -> TransactionResult:
        to = self._pubkey(params.to, "transfer_token")
        amount = to_int_amount(params.amount)

        if not params.token_id:
            instruction = transfer(SystemTransferParams(
                from_pubkey=self._keypair.pubkey(), to_pubkey=to, lamports=amount
            ))
            return await self._send([instruction])

        return await self._transfer_spl(self._pubkey(params.token_id, "transfer_token"), to, amount)

    # NFTs: each NFT is a 0-decimal SPL mint with a fixed supply of one

    async def _mint_single(self, owner: Pubkey) -> Tuple[str, str]:
        payer = self._keypair
        token = await AsyncToken.create_mint(self.client, payer, payer.pubkey(), 0, TOKEN_PROGRAM_ID)
        account = await self._ensure_token_account(token, owner)
        response = await token.mint_to(account, payer, 1)
        await token.set_authority(token.pubkey, payer, AuthorityType.MINT_TOKENS)
        return str(token.pubkey), str(response.value)

    async def _transfer_spl(self, mint: Pubkey, to: Pubkey, amount: int) -> TransactionResult:
        token = self._token(mint)
        source = get_associated_token_address(self._keypair.pubkey(), token.pubkey)
        destination = await self._ensure_token_account(token, to)
        response = await token.transfer(source, destination, self._keypair, amount)
        return self._transaction_result(str(response.value), TransactionState.SUCCESS)

    @adapter_operation(ErrorCode.TRANSACTION_FAILED)
    async def create_nft(self, params: CreateNFTParams) -> NFTResult:
        """Collection NFT held by the session key"""
        collection, signature = await self._mint_single(self._keypair.pubkey())

        logger.info(f"Created Solana NFT collection {collection} ({params.symbol})")
        return NFTResult(
            collection_id=collection,
            collection_address=collection,
            transaction=self._transaction_result(signature, TransactionState.SUCCESS),
            metadata=params.metadata,
        )

    @adapter_operation(ErrorCode.TRANSACTION_FAILED, address_errors=True)
    async def mint_nft(self, params: MintNFTParams) -> TransactionResult:
        """Mint params.amount NFTs straight into the recipient's token account"""
        owner = self._pubkey(params.to, "mint_nft")
        mints = []
        signature = None
        for _ in range(params.amount):
            mint, signature = await self._mint_single(owner)
            mints.append(mint)

        if signature is None:
            raise TransactionFailedError(
                "mint_nft requires amount >= 1",
                backend=self.backend,
                operation="mint_nft",
            )
        return self._transaction_result(
            signature,
            TransactionState.SUCCESS,
            custom_data={"collection_id": params.collection_id, "mints": mints},
        )

    @adapter_operation(ErrorCode.TRANSACTION_FAILED, address_errors=True)
    async def transfer_nft(self, params: TransferNFTParams) -> TransactionResult:
        """token_id is the NFT's own mint address"""
        to = self._pubkey(params.to, "transfer_nft")
        return await self._transfer_spl(self._pubkey(params.token_id, "transfer_nft"), to, 1)

    # Programs

    @adapter_operation(ErrorCode.CONTRACT_ERROR)
    async def deploy_contract(self, params: DeployContractParams) -> ContractResult:
        raise self._unsupported(
            "deploy_contract",
            "Solana programs are written in Rust and deployed with `solana program deploy`; "
            "use call_contract to invoke deployed programs"
        )

    @adapter_operation(ErrorCode.CONTRACT_ERROR, address_errors=True)
    async def call_contract(self, params: CallContractParams) -> Any:
        """
        Invoke a deployed program.

        args[0] is a list of account dicts (pubkey, is_signer, is_writable),
        args[1] the raw instruction data.
        """
        program_id = self._pubkey(params.contract_address, "call_contract")
        accounts = params.args[0] if len(params.args) > 0 else []
        data = params.args[1] if len(params.args) > 1 else b""

        metas = [
            AccountMeta(
                self._pubkey(account["pubkey"], "call_contract"),
                bool(account.get("is_signer", False)),
                bool(account.get("is_writable", False)),
            )
            for account in accounts
        ]
        instruction = Instruction(program_id, bytes(data), metas)
        return await self._send([instruction])

    # Signing

    @adapter_operation(ErrorCode.TRANSACTION_FAILED, address_errors=True)
    async def sign_transaction(self, transaction: Transaction) -> SignedTransaction:
        """Sign a SOL transfer without sending it"""
        instruction = transfer(SystemTransferParams(
            from_pubkey=self._keypair.pubkey(),
            to_pubkey=self._pubkey(transaction.to, "sign_transaction"),
            lamports=int(transaction.value),
        ))
        signed = await self._build_signed([instruction])
        signature = str(signed.signatures[0])
        return SignedTransaction(
            raw_transaction=base64.b64encode(bytes(signed)).decode("ascii"),
            transaction_hash=signature,
            signature=signature,
        )

    # Fees and status

    @adapter_operation(ErrorCode.NETWORK_ERROR)
    async def get_gas_price(self) -> GasPrice:
        """Priority-fee tiers from recent prioritization fees"""
        fees = (await self.client.get_recent_prioritization_fees()).value
        average = sum(fee.prioritization_fee for fee in fees) // len(fees) if fees else 0

        standard = max(average, BASE_FEE_LAMPORTS)
        return GasPrice(
            standard=standard,
            fast=int(standard * 1.5),
            instant=standard * 2,
            unit=GasUnit.LAMPORTS,
        )

    @adapter_operation()
    async def estimate_fees(self, params: EstimateFeeParams) -> FeeEstimate:
        operation = FeeOperation(params.operation)
        lamports = BASE_FEE_LAMPORTS * FEE_MULTIPLIERS.get(operation, 1)
        breakdown = {"base_fee": lamports}

        if operation == FeeOperation.MINT:
            breakdown["network_fee"] = TOKEN_ACCOUNT_RENT_LAMPORTS
            lamports += TOKEN_ACCOUNT_RENT_LAMPORTS

        return FeeEstimate(
            estimated_cost=lamports,
            estimated_cost_usd=float(lamports_to_sol(lamports)) * SOL_USD,
            currency="SOL",
            breakdown=breakdown,
        )

    @adapter_operation(ErrorCode.NETWORK_ERROR)
    async def get_transaction_status(self, transaction_id: str) -> TransactionStatusInfo:
        try:
            signature = Signature.from_string(transaction_id)
        except ValueError as e:
            raise InvalidAddressError(
                f"Invalid Solana signature: {transaction_id}",
                backend=self.backend,
                operation="get_transaction_status",
            ) from e

        status = (await self.client.get_signature_statuses([signature])).value[0]
        if status is None:
            return TransactionStatusInfo(status=TransactionState.UNKNOWN)

        if status.err is not None:
            state = TransactionState.FAILED
        elif status.confirmation_status is not None:
            # processed is not yet confirmed
            confirmed = str(status.confirmation_status).lower().endswith(("confirmed", "finalized"))
            state = TransactionState.SUCCESS if confirmed else TransactionState.PENDING
        else:
            state = TransactionState.PENDING

        return TransactionStatusInfo(
            status=state,
            confirmations=status.confirmations or 0,
            block_number=status.slot,
            error=str(status.err) if status.err is not None else None,
        )

    # Backend-specific

    def _backend_operations(self) -> Dict[str, BackendOperation]:
        return {"requestAirdrop": self.request_airdrop}

    @adapter_operation(ErrorCode.TRANSACTION_FAILED)
    async def request_airdrop(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Devnet/testnet faucet"""
        if self.network.value == "mainnet":
            raise TransactionFailedError(
                "Airdrops are not available on mainnet",
                backend=self.backend,
                operation="requestAirdrop",
            )
        address = params.get("address") or self._session_address()
        lamports = int(params.get("lamports", 1_000_000_000))
        response = await self.client.request_airdrop(self._pubkey(address, "requestAirdrop"), lamports)
        signature = str(response.value)
        return {
            "signature": signature,
            "lamports": lamports,
            "explorer_url": self.get_explorer_url(signature),
        }
