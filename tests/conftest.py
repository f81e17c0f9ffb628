"""Pytest configuration — adds src/ to sys.path and provides an in-memory store."""

import os
import sys
from typing import Any

import pytest

# Add src/ to Python path so tests can import from drive_parents
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


class MemoryStore:
    """Dict-backed stand-in for BlobKeyValueStore."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}

    def get(self, key: str) -> Any | None:
        return self.data.get(key)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        return [key for key in self.data if key.startswith(prefix)]


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()
