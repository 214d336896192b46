"""HQMF document loading and data criteria resolution."""

from .pipeline import HQMFDocument, parse_hqmf
from .document_resolver import DocumentResolver, resolve_entries
from .extraction_context import ExtractionContext, CriteriaRegistry, OccurrenceMap, ReferenceIdSet
from .redundancy import prune_redundant_criteria
from .source_data_criteria import derive_source_list

__all__ = [
    "HQMFDocument",
    "parse_hqmf",
    "DocumentResolver",
    "resolve_entries",
    "ExtractionContext",
    "CriteriaRegistry",
    "OccurrenceMap",
    "ReferenceIdSet",
    "prune_redundant_criteria",
    "derive_source_list",
]
