"""
In-memory key-value storage implementation.

Values are kept as JSON text, the same way browser-local storage keeps
them, so anything that would not survive a real backend fails here too.
Data is lost on restart.
"""

import json
import logging
from typing import Any, Dict, List, Mapping

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore:
    """In-memory implementation of the KeyValueStore protocol."""

    def __init__(self):
        self._data: Dict[str, str] = {}

        logger.info("InMemoryKeyValueStore initialized")

    async def get(self, keys: List[str]) -> Dict[str, Any]:
        return {key: json.loads(self._data[key]) for key in keys if key in self._data}

    async def set(self, values: Mapping[str, Any]) -> None:
        # Serialize everything before touching the dict so a bad value writes nothing
        encoded = {key: json.dumps(value) for key, value in values.items()}
        self._data.update(encoded)
        logger.debug(f"Stored keys: {sorted(encoded)}")

    async def clear(self) -> None:
        count = len(self._data)
        self._data.clear()
        logger.info(f"Cleared {count} keys")
