"""
Blood-bag custody ledger

Tracks blood-bag units through a supply chain on an append-only key-value
ledger:
- Blood-bag records with create/read/delete and uniqueness checks
- A `type~id` secondary index kept in lock-step with the records
- Movement and recipient-assignment lifecycle transitions
- Replay of a bag's full write history
- SQLite persistence for world state and history
"""

__version__ = "0.1.0"

from .chaincode import Chaincode, Operation, Response, create_chaincode
from .config import LedgerConfig, load_config

__all__ = ['Chaincode', 'Operation', 'Response', 'create_chaincode', 'LedgerConfig', 'load_config']
