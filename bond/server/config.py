"""
Server settings, read from the environment.

A ``.env`` file at the project root is loaded first so local overrides do not
need a manual ``export``. Recognised variables:

    BOND_STORAGE_DIR   directory holding the graph blob (":memory:" keeps it in RAM)
    BOND_STORAGE_KEY   key of the graph blob
    BOND_HOST          bind address for uvicorn
    BOND_PORT          bind port for uvicorn
"""
from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from bond.core.GraphStore import STORAGE_KEY
from bond.core.Storage import FileStorage, KeyValueStorage, MemoryStorage

MEMORY_STORAGE = ":memory:"

_ENV_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "../..", ".env"))


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    storage_dir: str = "~/.bond"
    storage_key: str = Field(STORAGE_KEY, min_length=1)
    host: str = "0.0.0.0"
    port: int = Field(3001, ge=1, le=65535)

    def create_storage(self) -> KeyValueStorage:
        if self.storage_dir == MEMORY_STORAGE:
            return MemoryStorage()
        return FileStorage(self.storage_dir)


def load_settings(env_path: Optional[str] = _ENV_PATH) -> Settings:
    if env_path:
        load_dotenv(env_path)

    values = {}
    for field_name, env_name in (
        ("storage_dir", "BOND_STORAGE_DIR"),
        ("storage_key", "BOND_STORAGE_KEY"),
        ("host", "BOND_HOST"),
        ("port", "BOND_PORT"),
    ):
        if os.environ.get(env_name):
            values[field_name] = os.environ[env_name]
    return Settings(**values)
