"""
Selector bindings: which interaction a DOM-selector-like string on a slide
points to, as chosen in the slide inspection tool.
"""

import json
import logging
from typing import Dict, Optional

from backend.cache import KeyValueStore, MemoryStore

logger = logging.getLogger(__name__)


class SelectorBindingStore:
    """
    One JSON-encoded selector -> interaction map per slide, stored under
    `mapping:{module_id}:{submodule_id}:{slide_id}`. Reads never raise.
    """

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store if store is not None else MemoryStore()

    @staticmethod
    def storage_key(module_id: str, submodule_id: str, slide_id: str) -> str:
        return f"mapping:{module_id}:{submodule_id}:{slide_id}"

    def get_mappings(self, module_id: str, submodule_id: str, slide_id: str) -> Dict[str, str]:
        key = self.storage_key(module_id, submodule_id, slide_id)
        try:
            raw = self.store.get(key)
        except Exception as e:
            logger.warning(f"Could not read bindings {key}: {e}")
            return {}
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Malformed bindings JSON under {key}, treating as empty")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get(self, module_id: str, submodule_id: str, slide_id: str, selector: str) -> Optional[str]:
        return self.get_mappings(module_id, submodule_id, slide_id).get(selector) or None

    def set(self, module_id: str, submodule_id: str, slide_id: str, selector: str, interaction_id: str) -> None:
        mappings = self.get_mappings(module_id, submodule_id, slide_id)
        mappings[selector] = interaction_id
        key = self.storage_key(module_id, submodule_id, slide_id)
        self.store.set(key, json.dumps(mappings))
        logger.info(f"Bound {selector!r} -> {interaction_id} ({key})")
