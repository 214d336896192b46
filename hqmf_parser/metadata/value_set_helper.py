"""
Value set mapping service.

For templates whose code list or result lives somewhere other than the
criteria element's own ``code``, gives the element paths to read instead.
Paths are ElementTree paths relative to the criteria element.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Union, Any

from .template_registry import DATA_DIR

logger = logging.getLogger(__name__)

DEFAULT_VALUE_SET_MAP = DATA_DIR / "value_set_templates.json"


class ValueSetHelper:
    def __init__(self, mapping: Optional[Dict[str, Dict[str, Optional[str]]]] = None):
        self._mapping = {
            oid: {"valueset_path": entry.get("valueset_path"), "result_path": entry.get("result_path")}
            for oid, entry in (mapping or {}).items()
        }

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "ValueSetHelper":
        with open(path, "r", encoding="utf-8") as handle:
            mapping = json.load(handle)
        logger.debug(f"Loaded {len(mapping)} value set template mappings from {path}")
        return cls(mapping)

    @classmethod
    def default(cls) -> "ValueSetHelper":
        return _default_helper()

    def mapping_for_template(self, template_id: str) -> Optional[Dict[str, Any]]:
        mapping = self._mapping.get(template_id)
        return dict(mapping) if mapping is not None else None


@lru_cache(maxsize=1)
def _default_helper() -> ValueSetHelper:
    return ValueSetHelper.from_json(DEFAULT_VALUE_SET_MAP)
