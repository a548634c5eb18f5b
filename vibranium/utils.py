import json
import os
from pathlib import Path
from typing import Any

import yaml
from eth_typing import ChecksumAddress
from eth_utils import is_hex_address, to_checksum_address

from vibranium.constants import (
    LOCALHOST_ADDRESS,
    LOCALHOST_ALIAS,
    STANDARD_TRACKING_JSON_FORMAT,
    VARIABLE_PREFIX,
)


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_yaml_verbatim(filepath: Path) -> dict:
    """Loads a YAML file, keeping every scalar as the text it was written as."""
    with open(filepath, "r") as file:
        return yaml.load(file, Loader=yaml.BaseLoader)


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def _write_json(data: Any, filepath: Path) -> None:
    """Writes a JSON file by replacing it atomically with a fully written sibling."""
    temp_filepath = filepath.with_suffix(filepath.suffix + ".tmp")
    with open(temp_filepath, "w") as file:
        json.dump(data, file, **STANDARD_TRACKING_JSON_FORMAT)
        file.flush()
        os.fsync(file.fileno())
    os.replace(temp_filepath, filepath)


def is_variable(value: Any) -> bool:
    """Returns True if the value references another contract, e.g. '$Token'."""
    return isinstance(value, str) and value.startswith(VARIABLE_PREFIX)


def variable_name(value: str) -> str:
    """Returns the referenced contract name of a variable."""
    return value[len(VARIABLE_PREFIX) :]


def parse_address(value: str) -> ChecksumAddress:
    """Parses a hex address into its checksummed form."""
    if not isinstance(value, str) or not is_hex_address(value):
        raise ValueError(f"'{value}' is not a valid hex address")
    return to_checksum_address(value)


def normalize_localhost(host: str) -> str:
    if host in (LOCALHOST_ADDRESS, LOCALHOST_ALIAS):
        return LOCALHOST_ADDRESS
    return host
