"""
Blockchain connector: the narrow slice of a node's JSON-RPC API the deployer
needs (accounts, gas price, genesis block and contract creation), on top of web3.
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Sequence

from eth_abi.exceptions import EncodingError
from eth_typing import ABI, ChecksumAddress
from eth_utils import decode_hex, encode_hex, to_checksum_address
from eth_utils.abi import collapse_if_tuple
from web3 import HTTPProvider, LegacyWebSocketProvider, Web3
from web3.exceptions import BlockNotFound, TimeExhausted, Web3Exception

from vibranium.config import ConnectorConfig
from vibranium.constants import (
    CONFIRMATION_POLL_LATENCY,
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_TX_CONFIRMATIONS,
    RPC_PROTOCOL,
    WS_PROTOCOL,
)
from vibranium.exceptions import InvalidParamTypeError
from vibranium.tokenizer import Token, encode_tokens, parse_param_type
from vibranium.utils import normalize_localhost

TRANSPORT_ERRORS = (Web3Exception, OSError, ValueError)


class ConnectorError(Exception):
    """Raised when the node can't be reached or answers with an error."""


class UnsupportedProtocolError(ConnectorError):
    def __init__(self, protocol: str):
        self.protocol = protocol
        super().__init__(
            f"Couldn't create blockchain connector. The configured protocol '{protocol}' "
            "is not supported"
        )


class MissingConnectorConfigError(ConnectorError):
    def __init__(self):
        super().__init__(
            "Couldn't find configuration for blockchain connector in project configuration."
        )


class TransactionRejectedError(ConnectorError):
    """Raised when a transaction can't be built; nothing was sent to the node."""


class TransactionFailedError(ConnectorError):
    """Raised when a sent transaction failed or wasn't confirmed in time."""


@contextmanager
def _transport_errors(action: str) -> Iterator[None]:
    try:
        yield
    except TRANSPORT_ERRORS as err:
        raise ConnectorError(f"Couldn't {action}: {err}") from err


class DeployedInstance(NamedTuple):
    address: ChecksumAddress
    receipt: Any


class PendingDeployment:
    """A sent contract-creation transaction awaiting its receipt and confirmations."""

    def __init__(
        self,
        w3: Web3,
        tx_hash: bytes,
        confirmations: int,
        timeout: float,
        poll_latency: float = CONFIRMATION_POLL_LATENCY,
    ):
        self.w3 = w3
        self.tx_hash = tx_hash
        self.confirmations = confirmations
        self.timeout = timeout
        self.poll_latency = poll_latency

    def wait(self) -> DeployedInstance:
        """
        Blocks until the transaction is mined and followed by the configured
        number of blocks, or until the timeout is exhausted.
        """
        deadline = time.monotonic() + self.timeout
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                self.tx_hash, timeout=self.timeout, poll_latency=self.poll_latency
            )
        except TimeExhausted as err:
            raise TransactionFailedError(
                f"transaction {encode_hex(self.tx_hash)} not mined within {self.timeout}s"
            ) from err
        except TRANSPORT_ERRORS as err:
            raise TransactionFailedError(str(err)) from err

        if receipt.get("status", 1) == 0:
            raise TransactionFailedError(f"transaction {encode_hex(self.tx_hash)} reverted")
        if not receipt.get("contractAddress"):
            raise TransactionFailedError(
                f"transaction {encode_hex(self.tx_hash)} didn't create a contract"
            )

        target_block = receipt["blockNumber"] + self.confirmations
        try:
            while self.w3.eth.block_number < target_block:
                if time.monotonic() >= deadline:
                    raise TransactionFailedError(
                        f"timed out after {self.timeout}s waiting for "
                        f"{self.confirmations} confirmation(s)"
                    )
                time.sleep(self.poll_latency)
        except TRANSPORT_ERRORS as err:
            raise TransactionFailedError(str(err)) from err

        return DeployedInstance(
            address=to_checksum_address(receipt["contractAddress"]), receipt=receipt
        )


class DeployBuilder:
    """Builds and sends a contract-creation transaction for a given ABI."""

    def __init__(self, w3: Web3, abi: ABI):
        self.w3 = w3
        self.abi = abi
        self._confirmations = DEFAULT_TX_CONFIRMATIONS
        self._timeout = DEFAULT_CONFIRMATION_TIMEOUT
        self._gas_price = None
        self._gas = None

    def confirmations(self, confirmations: int) -> "DeployBuilder":
        self._confirmations = confirmations
        return self

    def options(self, gas_price: Optional[int] = None, gas: Optional[int] = None) -> "DeployBuilder":
        self._gas_price = gas_price
        self._gas = gas
        return self

    def timeout(self, seconds: float) -> "DeployBuilder":
        self._timeout = seconds
        return self

    def _constructor_types(self) -> List[str]:
        for entry in self.abi:
            if entry.get("type") == "constructor":
                inputs = entry.get("inputs", [])
                try:
                    return [parse_param_type(collapse_if_tuple(i)).to_type_str() for i in inputs]
                except InvalidParamTypeError as err:
                    raise TransactionRejectedError(f"unsupported constructor ABI: {err}") from err
        return []

    def _creation_data(self, bytecode: str, tokens: Sequence[Token]) -> str:
        expected_types = self._constructor_types()
        given_types = [token.kind for token in tokens]
        if expected_types != given_types:
            raise TransactionRejectedError(
                f"constructor expects ({','.join(expected_types)}), "
                f"got ({','.join(given_types)})"
            )
        try:
            code = decode_hex(bytecode.strip())
        except ValueError as err:
            raise TransactionRejectedError(f"invalid bytecode: {err}") from err
        try:
            encoded_args = encode_tokens(tokens)
        except EncodingError as err:
            raise TransactionRejectedError(f"couldn't encode constructor arguments: {err}") from err
        return encode_hex(code + encoded_args)

    def execute(
        self, bytecode: str, tokens: Sequence[Token], sender: ChecksumAddress
    ) -> PendingDeployment:
        transaction: Dict[str, Any] = {
            "from": sender,
            "data": self._creation_data(bytecode, tokens),
        }
        if self._gas_price is not None:
            transaction["gasPrice"] = self._gas_price
        if self._gas is not None:
            transaction["gas"] = self._gas

        try:
            tx_hash = self.w3.eth.send_transaction(transaction)
        except TRANSPORT_ERRORS as err:
            raise TransactionFailedError(str(err)) from err

        return PendingDeployment(
            w3=self.w3,
            tx_hash=tx_hash,
            confirmations=self._confirmations,
            timeout=self._timeout,
        )


class BlockchainConnector:
    def __init__(self, w3: Web3):
        self.w3 = w3

    @classmethod
    def from_config(cls, connector_config: Optional[ConnectorConfig]) -> "BlockchainConnector":
        if connector_config is None:
            raise MissingConnectorConfigError()

        host = normalize_localhost(connector_config.host)
        if connector_config.protocol == RPC_PROTOCOL:
            provider = HTTPProvider(f"http://{host}:{connector_config.port}")
        elif connector_config.protocol == WS_PROTOCOL:
            provider = LegacyWebSocketProvider(f"ws://{host}:{connector_config.port}")
        else:
            raise UnsupportedProtocolError(connector_config.protocol)
        return cls(Web3(provider))

    def accounts(self) -> List[ChecksumAddress]:
        with _transport_errors("fetch accounts"):
            return [to_checksum_address(account) for account in self.w3.eth.accounts]

    def gas_price(self) -> int:
        with _transport_errors("fetch gas price"):
            return self.w3.eth.gas_price

    def genesis_block(self) -> Optional[Any]:
        try:
            return self.w3.eth.get_block(0)
        except BlockNotFound:
            return None
        except TRANSPORT_ERRORS as err:
            raise ConnectorError(f"Couldn't fetch genesis block: {err}") from err

    def deploy(self, abi: ABI) -> DeployBuilder:
        return DeployBuilder(self.w3, abi)
