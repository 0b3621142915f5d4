"""
Veridoc Core Package
====================
Identity authorization over encrypted, content-addressed documents.

Provides:
- Identity ledger state machine with pluggable state stores (memory, SQLite)
- Hybrid X25519/AES-GCM content cipher and Ed25519 principal keys
- Encrypted document workflow over content-addressed stores (memory, IPFS)
- Signed ledger transactions and ledger event egress
"""

__version__ = "0.1.0"
