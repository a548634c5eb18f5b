import json
from pathlib import Path

import pytest
import yaml
from eth_utils import keccak, to_checksum_address
from hexbytes import HexBytes

from vibranium.config import Config
from vibranium.connector import BlockchainConnector
from vibranium.project import Project
from vibranium.tracker import DeploymentTracker

# Common constants
DEPLOYER = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
OTHER_ACCOUNT = "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359"
GENESIS_HASH = HexBytes(b"\x01" * 32)
OTHER_GENESIS_HASH = HexBytes(b"\x02" * 32)
LIVE_GAS_PRICE = 1_000_000_000
BYTECODE = "0x6080604052"


class FakeEth:
    """In-memory stand-in for web3's eth module; every transaction creates a contract."""

    def __init__(self):
        self.offline = False
        self.gas_price_available = True
        self.revert = False
        self.genesis_hash = GENESIS_HASH
        self.transactions = []
        self.receipts = {}
        self.block_number = 0
        self._accounts = [DEPLOYER, OTHER_ACCOUNT]

    def _check_online(self):
        if self.offline:
            raise OSError("Connection refused")

    @property
    def accounts(self):
        self._check_online()
        return self._accounts

    @accounts.setter
    def accounts(self, accounts):
        self._accounts = accounts

    @property
    def gas_price(self):
        self._check_online()
        if not self.gas_price_available:
            raise OSError("eth_gasPrice unavailable")
        return LIVE_GAS_PRICE

    def get_block(self, block_identifier):
        self._check_online()
        assert block_identifier == 0
        return {"number": 0, "hash": self.genesis_hash}

    def send_transaction(self, transaction):
        self._check_online()
        self.transactions.append(transaction)
        self.block_number += 1
        nonce = len(self.transactions)
        tx_hash = HexBytes(keccak(text=f"tx-{nonce}"))
        self.receipts[tx_hash] = {
            "transactionHash": tx_hash,
            "blockNumber": self.block_number,
            "status": 0 if self.revert else 1,
            "contractAddress": to_checksum_address(f"0x{nonce:040x}"),
        }
        return tx_hash

    def wait_for_transaction_receipt(self, tx_hash, timeout=None, poll_latency=None):
        self._check_online()
        return self.receipts[tx_hash]


class FakeWeb3:
    def __init__(self):
        self.eth = FakeEth()


# Fixtures
@pytest.fixture
def fake_web3():
    return FakeWeb3()


@pytest.fixture
def connector(fake_web3):
    return BlockchainConnector(fake_web3)


@pytest.fixture
def project_dir(tmp_path) -> Path:
    (tmp_path / "artifacts").mkdir()
    return tmp_path


@pytest.fixture
def config(project_dir):
    return Config(project_dir)


@pytest.fixture
def tracker(config):
    return DeploymentTracker(config)


@pytest.fixture
def project(project_dir, connector):
    return Project(project_dir, connector=connector)


@pytest.fixture
def make_artifact(project_dir):
    """Writes a bytecode/ABI artifact pair for a contract whose constructor takes the given types."""

    def _make_artifact(name, inputs=(), bytecode=BYTECODE, directory="artifacts"):
        artifacts_dir = project_dir / directory
        artifacts_dir.mkdir(parents=True, exist_ok=True)
        abi = [
            {
                "type": "constructor",
                "stateMutability": "nonpayable",
                "inputs": [
                    {"name": f"arg{i}", "type": kind, "internalType": kind}
                    for i, kind in enumerate(inputs)
                ],
            }
        ]
        (artifacts_dir / f"{name}.bin").write_text(bytecode)
        (artifacts_dir / f"{name}.abi").write_text(json.dumps(abi))
        return artifacts_dir / f"{name}.bin"

    return _make_artifact


@pytest.fixture
def make_config(project_dir):
    """Writes vibranium.yaml with the given deployment section (omitted if None)."""

    def _make_config(deployment=None, **extra):
        data = {
            "sources": {"artifacts": "artifacts", "smart_contracts": ["contracts/*.sol"]},
            "blockchain": {"connector": {"protocol": "rpc", "host": "localhost", "port": 8545}},
        }
        if deployment is not None:
            data["deployment"] = deployment
        data.update(extra)
        with open(project_dir / "vibranium.yaml", "w") as file:
            yaml.safe_dump(data, file)
        return project_dir / "vibranium.yaml"

    return _make_config
