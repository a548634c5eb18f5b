#
# Filesystem
#

PROJECT_CONFIG_FILENAME = "vibranium.yaml"
PROJECT_METADATA_DIRNAME = ".vibranium"
TRACKING_FILENAME = "tracking.json"
TRACKING_LOCK_SUFFIX = ".lock"

ARTIFACT_EXTENSION_BYTECODE = "bin"
ARTIFACT_EXTENSION_ABI = "abi"
UNKNOWN_ARTIFACT = "unknown"

STANDARD_TRACKING_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}

#
# Manifest
#

VARIABLE_PREFIX = "$"
ADDRESS_TYPE = "address"

#
# Transactions
#

DEFAULT_GAS_PRICE = 5  # wei
DEFAULT_GAS_LIMIT = 2_000_000
DEFAULT_TX_CONFIRMATIONS = 0
DEFAULT_CONFIRMATION_TIMEOUT = 120  # seconds
CONFIRMATION_POLL_LATENCY = 0.5  # seconds

#
# Connector
#

RPC_PROTOCOL = "rpc"
WS_PROTOCOL = "ws"
SUPPORTED_PROTOCOLS = [RPC_PROTOCOL, WS_PROTOCOL]

DEFAULT_PROTOCOL = RPC_PROTOCOL
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8545

LOCALHOST_ADDRESS = "127.0.0.1"
LOCALHOST_ALIAS = "localhost"
