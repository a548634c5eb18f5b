import json
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Tuple

from eth_typing import ABI, ChecksumAddress

from vibranium.config import Config
from vibranium.connector import (
    BlockchainConnector,
    ConnectorError,
    TransactionRejectedError,
)
from vibranium.constants import (
    ARTIFACT_EXTENSION_ABI,
    ARTIFACT_EXTENSION_BYTECODE,
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_GAS_LIMIT,
    DEFAULT_GAS_PRICE,
    DEFAULT_TX_CONFIRMATIONS,
    UNKNOWN_ARTIFACT,
)
from vibranium.exceptions import (
    DeployContractError,
    DeploymentConnectionError,
    DeploymentError,
    InvalidAddressError,
    InvalidConstructorArgsError,
    MissingArtifactError,
    MissingConfigError,
    TrackingError,
)
from vibranium.manifest import ContractSpec, DeployedContract, DeployedContracts, DeploymentManifest
from vibranium.resolver import resolve_deployment_order
from vibranium.tokenizer import Token, describe_tokens, tokenize_args
from vibranium.tracker import DeploymentTracker
from vibranium.utils import parse_address


def _first_set(*values):
    """Returns the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


class ArtifactPair(NamedTuple):
    """Compiled bytecode file plus its companion ABI file."""

    bytecode_path: Path
    abi_path: Path

    def load(self) -> Tuple[str, ABI]:
        for kind, path in (
            (ARTIFACT_EXTENSION_BYTECODE, self.bytecode_path),
            (ARTIFACT_EXTENSION_ABI, self.abi_path),
        ):
            if not path.is_file():
                raise MissingArtifactError(kind, str(path))
        try:
            bytecode = self.bytecode_path.read_text().strip()
            with open(self.abi_path, "r") as file:
                abi = json.load(file)
        except (OSError, json.JSONDecodeError) as err:
            raise DeploymentError(f"Couldn't read artifacts of {self.bytecode_path}: {err}") from err
        return bytecode, abi


def find_artifacts(spec: ContractSpec, artifacts_path: Path, config: Config) -> Optional[ArtifactPair]:
    """
    Returns the artifact pair of a contract. Explicit paths take precedence over
    searching the artifacts directory for files named after the contract
    (or the contract it is an instance of). Returns None if nothing matches.
    """
    if spec.abi_path and spec.bytecode_path:
        return ArtifactPair(
            bytecode_path=config.resolve_path(spec.bytecode_path),
            abi_path=config.resolve_path(spec.abi_path),
        )

    if not artifacts_path.is_dir():
        raise DeploymentError(f"Couldn't read artifacts directory {artifacts_path}")

    extensions = (f".{ARTIFACT_EXTENSION_BYTECODE}", f".{ARTIFACT_EXTENSION_ABI}")
    for filepath in sorted(artifacts_path.iterdir()):
        if filepath.stem != spec.artifact_name or filepath.suffix not in extensions:
            continue

        bytecode_path = filepath.with_suffix(f".{ARTIFACT_EXTENSION_BYTECODE}")
        abi_path = filepath.with_suffix(f".{ARTIFACT_EXTENSION_ABI}")
        if not abi_path.exists():
            raise MissingArtifactError(ARTIFACT_EXTENSION_ABI, str(bytecode_path))
        if not bytecode_path.exists():
            raise MissingArtifactError(ARTIFACT_EXTENSION_BYTECODE, str(abi_path))
        return ArtifactPair(bytecode_path=bytecode_path, abi_path=abi_path)

    return None


class Deployer:
    """
    Deploys the contracts of a project's deployment manifest, in dependency
    order and one at a time, from a single sender account.

    When tracking is enabled, every deployment is recorded per chain and
    contract version, so deploying again without changes sends no transactions.
    A failure aborts the run; contracts deployed before it stay deployed (and tracked).
    """

    def __init__(
        self,
        config: Config,
        connector: BlockchainConnector,
        tracker: DeploymentTracker,
    ):
        self.config = config
        self.connector = connector
        self.tracker = tracker
        self._live_gas_price = None
        self._chain_hash = None

    def deploy(self, tracking_enabled: Optional[bool] = None) -> DeployedContracts:
        project_config = self.config.read()
        manifest = project_config.deployment
        if manifest is None:
            raise MissingConfigError()

        try:
            accounts = self.connector.accounts()
        except ConnectorError as err:
            raise DeploymentConnectionError(str(err)) from err
        sender = self.select_sender(accounts)

        tracking_enabled = _first_set(tracking_enabled, manifest.tracking_enabled, True)
        if tracking_enabled and not self.tracker.database_exists():
            self.tracker.create_database()

        self._live_gas_price = None
        self._chain_hash = None
        self._print_deployment_info(sender, tracking_enabled)

        ordered_specs = resolve_deployment_order(manifest.contracts)

        deployed_contracts: DeployedContracts = dict()
        addresses: Dict[str, ChecksumAddress] = dict()
        for spec in ordered_specs:
            if spec.address:
                address = self._preset_address(spec)
                print(f"(i) Skipping {spec.name}: address preset to {address}")
                addresses[spec.name] = address
                deployed_contracts[address] = DeployedContract(
                    name=spec.name, address=address, artifact_path=UNKNOWN_ARTIFACT, skipped=True
                )
                continue

            artifacts = find_artifacts(spec, project_config.artifacts_path, self.config)
            if artifacts is None:
                print(f"WARNING: No artifacts found for {spec.name}; skipping.")
                continue
            bytecode, abi = artifacts.load()
            artifact_path = str(artifacts.bytecode_path)

            tokens = tokenize_args(spec.args, addresses, contract_name=spec.name)

            if tracking_enabled:
                entry = self.tracker.lookup(self._get_chain_hash(), spec.name, bytecode, tokens)
                if entry is not None:
                    print(f"(i) Skipping {spec.name}: already deployed at {entry.address}")
                    addresses[spec.name] = entry.address
                    deployed_contracts[entry.address] = DeployedContract(
                        name=spec.name,
                        address=entry.address,
                        artifact_path=artifact_path,
                        skipped=True,
                    )
                    continue

            address = self._deploy_contract(spec, manifest, abi, bytecode, tokens, sender)

            if tracking_enabled:
                self.tracker.track(self._get_chain_hash(), spec.name, bytecode, tokens, address)

            addresses[spec.name] = address
            deployed_contracts[address] = DeployedContract(
                name=spec.name, address=address, artifact_path=artifact_path, skipped=False
            )

        return deployed_contracts

    def select_sender(self, accounts: List[ChecksumAddress]) -> ChecksumAddress:
        """Returns the account that sends every transaction of a run: the node's first account."""
        if not accounts:
            raise DeploymentConnectionError("No accounts available on the connected node.")
        return accounts[0]

    def _deploy_contract(
        self,
        spec: ContractSpec,
        manifest: DeploymentManifest,
        abi: ABI,
        bytecode: str,
        tokens: List[Token],
        sender: ChecksumAddress,
    ) -> ChecksumAddress:
        gas_price = _first_set(spec.gas_price, manifest.gas_price)
        if gas_price is None:
            gas_price = self._get_live_gas_price()
        gas_limit = _first_set(spec.gas_limit, manifest.gas_limit, DEFAULT_GAS_LIMIT)
        confirmations = _first_set(manifest.tx_confirmations, DEFAULT_TX_CONFIRMATIONS)
        timeout = _first_set(manifest.confirmation_timeout, DEFAULT_CONFIRMATION_TIMEOUT)

        print(f"Deploying {spec.name} with {describe_tokens(tokens)}...")
        builder = (
            self.connector.deploy(abi)
            .confirmations(confirmations)
            .options(gas_price=gas_price, gas=gas_limit)
            .timeout(timeout)
        )
        try:
            pending_deployment = builder.execute(bytecode, tokens, sender)
        except TransactionRejectedError as err:
            raise InvalidConstructorArgsError(spec.name) from err
        except ConnectorError as err:
            raise DeployContractError(spec.name, str(err)) from err

        try:
            instance = pending_deployment.wait()
        except ConnectorError as err:
            raise DeployContractError(spec.name, str(err)) from err

        print(f"(i) Deployed {spec.name} at {instance.address}")
        return instance.address

    @staticmethod
    def _preset_address(spec: ContractSpec) -> ChecksumAddress:
        try:
            return parse_address(spec.address)
        except ValueError as err:
            raise InvalidAddressError(spec.name, str(err)) from err

    def _get_live_gas_price(self) -> int:
        if self._live_gas_price is None:
            try:
                self._live_gas_price = self.connector.gas_price()
            except ConnectorError as err:
                print(f"WARNING: {err}; using default gas price of {DEFAULT_GAS_PRICE} wei.")
                self._live_gas_price = DEFAULT_GAS_PRICE
        return self._live_gas_price

    def _get_chain_hash(self):
        if self._chain_hash is None:
            try:
                genesis_block = self.connector.genesis_block()
            except ConnectorError as err:
                raise DeploymentConnectionError(str(err)) from err
            if genesis_block is None or not genesis_block["hash"]:
                raise TrackingError("Couldn't find the genesis block of the connected chain.")
            self._chain_hash = genesis_block["hash"]
        return self._chain_hash

    def _print_deployment_info(self, sender: ChecksumAddress, tracking_enabled: bool) -> None:
        print(
            f"Account: {sender}",
            f"Config: {self.config.config_file}",
            f"Tracking: {tracking_enabled}",
            sep="\n",
        )
