"""Deployment manifest: the contracts of a project and how to deploy them."""

import typing
from typing import Any, Dict, List, Optional

from vibranium.constants import ADDRESS_TYPE
from vibranium.exceptions import ManifestError, MissingABIPathError, MissingBytecodePathError
from vibranium.utils import is_variable, variable_name

DEPLOYMENT_CONTRACTS_KEY = "smart_contracts"


class ArgSpec(typing.NamedTuple):
    """A single constructor argument: a raw value plus its ABI type name."""

    value: str
    kind: str

    @property
    def is_reference(self) -> bool:
        """Returns True if the argument is the address of another contract."""
        return self.kind == ADDRESS_TYPE and is_variable(self.value)

    @property
    def reference(self) -> Optional[str]:
        return variable_name(self.value) if self.is_reference else None


class ContractSpec(typing.NamedTuple):
    """One named deployable unit of the manifest."""

    name: str
    address: Optional[str] = None
    instance_of: Optional[str] = None
    args: typing.Tuple[ArgSpec, ...] = ()
    gas_price: Optional[int] = None
    gas_limit: Optional[int] = None
    abi_path: Optional[str] = None
    bytecode_path: Optional[str] = None

    @property
    def artifact_name(self) -> str:
        """Returns the name of the artifact pair this contract is deployed from."""
        return self.instance_of or self.name

    def references(self) -> List[str]:
        """Returns the names of the contracts whose addresses this contract needs."""
        return [arg.reference for arg in self.args if arg.is_reference]


class DeploymentManifest(typing.NamedTuple):
    contracts: typing.Tuple[ContractSpec, ...] = ()
    gas_price: Optional[int] = None
    gas_limit: Optional[int] = None
    tx_confirmations: Optional[int] = None
    confirmation_timeout: Optional[float] = None
    tracking_enabled: Optional[bool] = None


class DeployedContract(typing.NamedTuple):
    """Outcome of a single contract in a deployment run."""

    name: str
    address: str
    artifact_path: str
    skipped: bool


DeployedContracts = Dict[str, DeployedContract]


def _optional_int(data: Dict, key: str, context: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ManifestError(f"'{key}' of {context} must be a non-negative integer, got {value!r}")
    return value


def _base_kind(kind: str) -> str:
    return kind.split("[", 1)[0].rstrip("0123456789x")


def _raw_value_to_str(value: Any, kind: str) -> str:
    """
    Renders a YAML value as the text the tokenizer expects. Only values whose
    text can't have changed while being read as a number or boolean are accepted.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return "[" + ",".join(_raw_value_to_str(item, kind) for item in value) + "]"

    base_kind = _base_kind(kind)
    if isinstance(value, bool):
        if base_kind == "bool":
            return str(value).lower()
    elif isinstance(value, int):
        # YAML reads unquoted 0x-prefixed literals as integers
        if base_kind == ADDRESS_TYPE:
            return f"0x{value:040x}"
        if base_kind in ("int", "uint"):
            return str(value)
    raise ManifestError(
        f"Ambiguous value {value!r} of type '{kind}'; quote it in the configuration."
    )


def keep_verbatim_values(deployment_config: Any, verbatim_config: Any) -> Any:
    """
    Replaces the argument values and preset addresses of a deployment section
    with their verbatim text, as read by a YAML loader that resolves no types.
    """
    try:
        contracts = deployment_config[DEPLOYMENT_CONTRACTS_KEY]
        verbatim_contracts = verbatim_config[DEPLOYMENT_CONTRACTS_KEY]
    except (KeyError, TypeError):
        return deployment_config
    if not isinstance(contracts, list) or not isinstance(verbatim_contracts, list):
        return deployment_config

    for contract, verbatim_contract in zip(contracts, verbatim_contracts):
        if not isinstance(contract, dict) or not isinstance(verbatim_contract, dict):
            continue
        if contract.get("address") is not None:
            contract["address"] = verbatim_contract.get("address", contract["address"])
        args = contract.get("args")
        verbatim_args = verbatim_contract.get("args")
        if not isinstance(args, list) or not isinstance(verbatim_args, list):
            continue
        for arg, verbatim_arg in zip(args, verbatim_args):
            if not isinstance(arg, dict) or not isinstance(verbatim_arg, dict):
                continue
            if arg.get("value") is not None and "value" in verbatim_arg:
                arg["value"] = verbatim_arg["value"]
    return deployment_config


def _parse_arg(raw_arg: Any, contract_name: str) -> ArgSpec:
    if not isinstance(raw_arg, dict) or "value" not in raw_arg or "kind" not in raw_arg:
        raise ManifestError(
            f"Malformed constructor argument for {contract_name}: "
            "expected a mapping with 'value' and 'kind'."
        )
    kind = str(raw_arg["kind"]).strip()
    return ArgSpec(value=_raw_value_to_str(raw_arg["value"], kind), kind=kind)


def parse_contract(raw_contract: Any) -> ContractSpec:
    """Parses a single contract entry of the deployment section."""
    if not isinstance(raw_contract, dict) or not raw_contract.get("name"):
        raise ManifestError(f"Malformed Smart Contract configuration: {raw_contract!r}")

    name = str(raw_contract["name"])
    abi_path = raw_contract.get("abi_path")
    bytecode_path = raw_contract.get("bytecode_path")
    if abi_path and not bytecode_path:
        raise MissingBytecodePathError(name)
    if bytecode_path and not abi_path:
        raise MissingABIPathError(name)

    raw_args = raw_contract.get("args") or []
    if not isinstance(raw_args, list):
        raise ManifestError(f"'args' of {name} must be a list.")

    address = raw_contract.get("address")
    if address is not None:
        address = _raw_value_to_str(address, ADDRESS_TYPE)

    instance_of = raw_contract.get("instance_of")
    return ContractSpec(
        name=name,
        address=address,
        instance_of=str(instance_of) if instance_of else None,
        args=tuple(_parse_arg(raw_arg, name) for raw_arg in raw_args),
        gas_price=_optional_int(raw_contract, "gas_price", name),
        gas_limit=_optional_int(raw_contract, "gas_limit", name),
        abi_path=abi_path,
        bytecode_path=bytecode_path,
    )


def parse_manifest(deployment_config: Any) -> DeploymentManifest:
    """Parses the deployment section of the project configuration."""
    if not isinstance(deployment_config, dict):
        raise ManifestError("Malformed deployment configuration.")

    raw_contracts = deployment_config.get(DEPLOYMENT_CONTRACTS_KEY) or []
    if not isinstance(raw_contracts, list):
        raise ManifestError(f"'{DEPLOYMENT_CONTRACTS_KEY}' must be a list.")

    timeout = deployment_config.get("confirmation_timeout")
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float))):
        raise ManifestError(f"'confirmation_timeout' must be a number, got {timeout!r}")

    tracking_enabled = deployment_config.get("tracking_enabled")
    if tracking_enabled is not None and not isinstance(tracking_enabled, bool):
        raise ManifestError(f"'tracking_enabled' must be a boolean, got {tracking_enabled!r}")

    return DeploymentManifest(
        contracts=tuple(parse_contract(raw_contract) for raw_contract in raw_contracts),
        gas_price=_optional_int(deployment_config, "gas_price", "deployment"),
        gas_limit=_optional_int(deployment_config, "gas_limit", "deployment"),
        tx_confirmations=_optional_int(deployment_config, "tx_confirmations", "deployment"),
        confirmation_timeout=timeout,
        tracking_enabled=tracking_enabled,
    )
