"""
Template registry.

Maps HQMF template OIDs onto a QDM definition and status, and recognises the
sentinel templates that mark variables and satisfies-any/all groupings.
The bundled table lives in ``data/hqmf_template_oid_map.json``.
"""

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Union, Any

from .definitions import Definition, DefinitionKind, DerivationOperator, parse_definition

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_TEMPLATE_MAP = DATA_DIR / "hqmf_template_oid_map.json"

VARIABLE_TEMPLATE = "0.1.2.3.4.5.6.7.8.9.1"
SATISFIES_ANY_TEMPLATE = "2.16.840.1.113883.10.20.28.3.108"
SATISFIES_ALL_TEMPLATE = "2.16.840.1.113883.10.20.28.3.109"


@dataclass(frozen=True)
class TemplateDefinition:
    definition: DefinitionKind
    status: Optional[str] = None


@dataclass(frozen=True)
class KnownTemplate:
    """
    Effect of a sentinel template on a criterion.

    forced_operator: INTERSECT forces the operator outright; for the variable
        template it only replaces an existing XPRODUCT (see only_replaces).
    negation_override: value negation is reset to.
    marks_variable: the criterion becomes a variable.
    default_definition: applied only when no definition is set yet.
    """
    definition: Optional[DefinitionKind]
    forced_operator: Optional[DerivationOperator] = None
    only_replaces: Optional[DerivationOperator] = None
    negation_override: Optional[bool] = False
    marks_variable: bool = False
    default_definition: Optional[DefinitionKind] = None


KNOWN_TEMPLATES: Dict[str, KnownTemplate] = {
    VARIABLE_TEMPLATE: KnownTemplate(
        definition=None,
        forced_operator=DerivationOperator.INTERSECT,
        only_replaces=DerivationOperator.XPRODUCT,
        marks_variable=True,
        default_definition=Definition.DERIVED,
    ),
    SATISFIES_ANY_TEMPLATE: KnownTemplate(definition=Definition.SATISFIES_ANY),
    SATISFIES_ALL_TEMPLATE: KnownTemplate(
        definition=Definition.SATISFIES_ALL,
        forced_operator=DerivationOperator.INTERSECT,
    ),
}


class TemplateRegistry:
    """Lookup of template OID -> {definition, status}, keyed by HQMF revision."""

    def __init__(self, mapping: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None):
        self._mapping: Dict[str, Dict[str, TemplateDefinition]] = {}
        for revision, templates in (mapping or {}).items():
            self._mapping[revision] = {
                oid: self._build_definition(oid, entry) for oid, entry in templates.items()
            }

    @staticmethod
    def _build_definition(oid: str, entry: Dict[str, Any]) -> TemplateDefinition:
        definition = parse_definition(entry.get("definition"))
        if definition is None:
            raise ValueError(f"Template {oid} has no definition")
        status = entry.get("status") or None
        return TemplateDefinition(definition=definition, status=status)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "TemplateRegistry":
        with open(path, "r", encoding="utf-8") as handle:
            mapping = json.load(handle)
        registry = cls(mapping)
        logger.debug(f"Loaded {len(registry)} template definitions from {path}")
        return registry

    @classmethod
    def default(cls) -> "TemplateRegistry":
        return _default_registry()

    def lookup(self, template_id: str, revision: str = "r2") -> Optional[TemplateDefinition]:
        return self._mapping.get(revision, {}).get(template_id)

    def lookup_known_template(self, template_id: str) -> Optional[KnownTemplate]:
        return KNOWN_TEMPLATES.get(template_id)

    def __len__(self) -> int:
        return sum(len(templates) for templates in self._mapping.values())


@lru_cache(maxsize=1)
def _default_registry() -> TemplateRegistry:
    return TemplateRegistry.from_json(DEFAULT_TEMPLATE_MAP)
