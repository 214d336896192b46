"""
Document-scoped extraction state.

One ExtractionContext is created per document and threaded through every
extraction call. Nothing here is shared between documents.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Iterable, Iterator

from ..metadata.models import DataCriterion
from ..metadata.template_registry import TemplateRegistry
from ..metadata.value_set_helper import ValueSetHelper
from ..system.error_handling import DiagnosticWarning
from .namespace_utils import MEASURE_PERIOD_ID

logger = logging.getLogger(__name__)

DEFAULT_OCCURRENCE = "A"


class CriteriaRegistry:
    """CriterionId -> DataCriterion with an explicit merge rule."""

    def __init__(self):
        self._criteria: Dict[str, DataCriterion] = {}

    def insert_if_more_specific(self, criterion: DataCriterion) -> bool:
        """
        Register ``criterion`` unless an entry with the same id already carries
        a code list id and this one does not. Returns True when stored.
        """
        existing = self._criteria.get(criterion.id)
        if existing is not None and existing.code_list_id and not criterion.code_list_id:
            logger.debug(f"Keeping code list bearing {criterion.id} over later entry without one")
            return False
        self._criteria[criterion.id] = criterion
        return True

    def put(self, criterion: DataCriterion) -> None:
        self._criteria[criterion.id] = criterion

    def get(self, criterion_id: Optional[str]) -> Optional[DataCriterion]:
        if criterion_id is None:
            return None
        return self._criteria.get(criterion_id)

    def __contains__(self, criterion_id: object) -> bool:
        return criterion_id in self._criteria

    def __len__(self) -> int:
        return len(self._criteria)

    def __iter__(self) -> Iterator[str]:
        return iter(self._criteria)


class OccurrenceMap:
    """Normalised source id -> occurrence letter; the first writer wins."""

    def __init__(self):
        self._letters: Dict[str, str] = {}

    def seed(self, source_id: str, letter: str) -> str:
        return self._letters.setdefault(source_id, letter)

    def get(self, source_id: Optional[str]) -> Optional[str]:
        if source_id is None:
            return None
        return self._letters.get(source_id)

    def as_dict(self) -> Dict[str, str]:
        return dict(self._letters)

    def __len__(self) -> int:
        return len(self._letters)


class ReferenceIdSet:
    """Append-only record of every referenced criterion id."""

    def __init__(self):
        self._ids: List[str] = []

    def add(self, criterion_id: Optional[str]) -> None:
        if criterion_id and criterion_id != MEASURE_PERIOD_ID:
            self._ids.append(criterion_id)

    def extend(self, criterion_ids: Iterable[Optional[str]]) -> None:
        for criterion_id in criterion_ids:
            self.add(criterion_id)

    def unique(self) -> List[str]:
        return list(dict.fromkeys(self._ids))

    def __contains__(self, criterion_id: object) -> bool:
        return criterion_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)


@dataclass
class ExtractionContext:
    template_registry: TemplateRegistry
    value_set_helper: ValueSetHelper
    registry: CriteriaRegistry = field(default_factory=CriteriaRegistry)
    occurrences: OccurrenceMap = field(default_factory=OccurrenceMap)
    reference_ids: ReferenceIdSet = field(default_factory=ReferenceIdSet)
    diagnostics: List[DiagnosticWarning] = field(default_factory=list)
    # Template ids declared by each entry, keyed by normalised id, for
    # occurrences that inherit their source's templates
    template_ids_by_source: Dict[str, List[str]] = field(default_factory=dict)
    source_name: Optional[str] = None
    quiet: bool = False

    @classmethod
    def create(
        cls,
        template_registry: Optional[TemplateRegistry] = None,
        value_set_helper: Optional[ValueSetHelper] = None,
        source_name: Optional[str] = None,
        quiet: bool = False,
    ) -> "ExtractionContext":
        return cls(
            template_registry=template_registry or TemplateRegistry.default(),
            value_set_helper=value_set_helper or ValueSetHelper.default(),
            source_name=source_name,
            quiet=quiet,
        )

    def warn(self, criterion_id: str, message: str, reference_id: Optional[str] = None) -> None:
        if self.quiet:
            return
        self.diagnostics.append(DiagnosticWarning(criterion_id=criterion_id, message=message, reference_id=reference_id))
        logger.warning(f"{message} (criterion {criterion_id})")
