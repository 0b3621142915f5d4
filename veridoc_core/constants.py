# veridoc_core/constants.py

MANIFEST_FORMAT_VERSION = "1"
CIPHER_VERSION = 1
HKDF_INFO = b"veridoc-content-v1"

# AES-GCM single-call limit enforced by `cryptography`
MAX_PAYLOAD_BYTES = 2**31 - 1

ZERO_PRINCIPAL = "0x" + "0" * 40

DEFAULT_LEDGER_PROVIDER = "memory"
DEFAULT_DB_PATH = "db/ledger_state.db"
DEFAULT_DOCSTORE = "memory"
DEFAULT_IPFS_URL = "http://localhost:5001"
DEFAULT_STORE_TIMEOUT = 10.0
DEFAULT_PUT_RETRIES = 2
DEFAULT_RETRY_BACKOFF = 0.5
DEFAULT_MAX_WORKERS = 4

EVENT_TOPIC_PREFIX = "identity."
