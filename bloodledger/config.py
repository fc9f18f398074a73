import os
import yaml
from dataclasses import dataclass
from typing import Optional

@dataclass
class ChaincodeConfig:
    name: str = "bloodbag"

@dataclass
class IndexConfig:
    name: str = "type~id"

@dataclass
class StorageConfig:
    db_path: Optional[str] = None

@dataclass
class LedgerConfig:
    chaincode: ChaincodeConfig
    index: IndexConfig
    storage: StorageConfig

def load_config(config_path: Optional[str] = None) -> LedgerConfig:
    """Load configuration from file or use defaults."""
    if config_path and os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}

        chaincode_config = ChaincodeConfig(**config_data.get('chaincode', {}))
        index_config = IndexConfig(**config_data.get('index', {}))
        storage_config = StorageConfig(**config_data.get('storage', {}))
    else:
        chaincode_config = ChaincodeConfig()
        index_config = IndexConfig()
        storage_config = StorageConfig()

    if storage_config.db_path is None:
        storage_config.db_path = f"{chaincode_config.name}_ledger.db"

    return LedgerConfig(
        chaincode=chaincode_config,
        index=index_config,
        storage=storage_config,
    )
