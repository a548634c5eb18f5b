"""
Persistent record of the contracts deployed by a project, so that deploying
an unchanged contract to the same chain again is a no-op.

The tracking document lives in the project's metadata directory:

    {
        <chain fingerprint>: {
            <contract fingerprint>: {"name": ..., "address": ...},
        },
    }

The chain fingerprint is derived from the genesis block hash, the contract
fingerprint from the contract name, bytecode and constructor arguments.
"""

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Union

from eth_typing import ChecksumAddress
from eth_utils import decode_hex, encode_hex, keccak, to_checksum_address
from filelock import FileLock, Timeout

from vibranium.config import Config
from vibranium.constants import TRACKING_FILENAME, TRACKING_LOCK_SUFFIX
from vibranium.exceptions import TrackingError
from vibranium.tokenizer import Token
from vibranium.utils import _load_json, _write_json

LOCK_TIMEOUT = 30  # seconds

TrackingData = Dict[str, Dict[str, Dict[str, str]]]


class TrackingEntry(NamedTuple):
    """Represents a single tracked deployment."""

    name: str
    address: ChecksumAddress


def chain_fingerprint(genesis_hash: Union[bytes, str]) -> str:
    """Returns the fingerprint separating chains that share a tracking document."""
    if isinstance(genesis_hash, str):
        genesis_hash = decode_hex(genesis_hash)
    return encode_hex(keccak(bytes(genesis_hash)))


def contract_fingerprint(name: str, bytecode: str, tokens: Sequence[Token]) -> str:
    """Returns the fingerprint of a specific version of a contract deployment."""
    arguments = "".join(str(token) for token in tokens)
    return encode_hex(keccak(text=f"{name}{bytecode}{arguments}"))


class DeploymentTracker:
    def __init__(self, config: Config):
        self.config = config

    @property
    def filepath(self) -> Path:
        return self.config.metadata_dir / TRACKING_FILENAME

    @property
    def _lock(self) -> FileLock:
        lock_filepath = self.filepath.with_name(self.filepath.name + TRACKING_LOCK_SUFFIX)
        return FileLock(str(lock_filepath), timeout=LOCK_TIMEOUT)

    def database_exists(self) -> bool:
        return self.filepath.exists()

    def create_database(self) -> None:
        """Creates an empty tracking document, unless one exists already."""
        try:
            self.filepath.parent.mkdir(parents=True, exist_ok=True)
            with self._acquire():
                if self.filepath.exists():
                    return
                print(f"Creating tracking database at {self.filepath}.")
                _write_json({}, self.filepath)
        except OSError as err:
            raise TrackingError(f"Couldn't create tracking database: {err}") from err

    def lookup(
        self, chain_hash: Union[bytes, str], name: str, bytecode: str, tokens: Sequence[Token]
    ) -> Optional[TrackingEntry]:
        """Returns the tracked deployment of this exact contract version on this chain, if any."""
        chain_key = chain_fingerprint(chain_hash)
        contract_key = contract_fingerprint(name, bytecode, tokens)
        with self._locked():
            data = self._read()
        entry = self._chain_section(data, chain_key).get(contract_key)
        if entry is None:
            return None
        return self._to_entry(entry)

    def track(
        self,
        chain_hash: Union[bytes, str],
        name: str,
        bytecode: str,
        tokens: Sequence[Token],
        address: str,
    ) -> None:
        """Records a deployment; the whole document is rewritten."""
        chain_key = chain_fingerprint(chain_hash)
        contract_key = contract_fingerprint(name, bytecode, tokens)
        with self._locked():
            data = self._read()
            section = self._chain_section(data, chain_key)
            section[contract_key] = {"name": name, "address": to_checksum_address(address)}
            data[chain_key] = section
            try:
                _write_json(data, self.filepath)
            except OSError as err:
                raise TrackingError(f"Couldn't write tracking data: {err}") from err

    def tracked_deployments(self, chain_hash: Union[bytes, str]) -> List[TrackingEntry]:
        """Returns all deployments tracked for a chain."""
        if not self.database_exists():
            return []
        with self._locked():
            data = self._read()
        entries = self._chain_section(data, chain_fingerprint(chain_hash))
        return [self._to_entry(entry) for entry in entries.values()]

    @contextmanager
    def _acquire(self) -> Iterator[None]:
        lock = self._lock
        try:
            lock.acquire()
        except Timeout as err:
            raise TrackingError(f"Timed out waiting for lock on {self.filepath}") from err
        try:
            yield
        finally:
            lock.release()

    def _locked(self):
        if not self.database_exists():
            raise TrackingError("Couldn't find tracking database")
        return self._acquire()

    def _read(self) -> TrackingData:
        try:
            data = _load_json(self.filepath)
        except FileNotFoundError as err:
            raise TrackingError("Couldn't find tracking database") from err
        except (OSError, json.JSONDecodeError) as err:
            raise TrackingError(f"Couldn't read tracking data: {err}") from err
        if not isinstance(data, dict):
            raise TrackingError(f"Malformed tracking data in {self.filepath}")
        return data

    def _chain_section(self, data: TrackingData, chain_key: str) -> Dict[str, Dict[str, str]]:
        section = data.get(chain_key, {})
        if not isinstance(section, dict):
            raise TrackingError(f"Malformed tracking data for chain {chain_key} in {self.filepath}")
        return section

    @staticmethod
    def _to_entry(entry: Dict[str, str]) -> TrackingEntry:
        try:
            return TrackingEntry(name=entry["name"], address=to_checksum_address(entry["address"]))
        except (KeyError, TypeError, ValueError) as err:
            raise TrackingError(f"Couldn't deserialize tracking data: {entry!r}") from err
