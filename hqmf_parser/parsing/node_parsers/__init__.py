"""Per-entry and per-section parsers used by the document resolver."""

from .entry_preprocessor import PreparedEntry, preprocess_entry
from .definition_resolver import resolve_definition
from .occurrence_resolver import obtain_occurrence_identifier, resolve_specific_or_source
from .value_parser import parse_value
from .field_value_parser import extract_field_values
from .variable_grouper import synthesize_grouper, mark_do_not_group
from .data_criteria_parser import parse_data_criterion
from .measure_parser import parse_measure_metadata
from .population_references import collect_population_reference_ids

__all__ = [
    "PreparedEntry",
    "preprocess_entry",
    "resolve_definition",
    "obtain_occurrence_identifier",
    "resolve_specific_or_source",
    "parse_value",
    "extract_field_values",
    "synthesize_grouper",
    "mark_do_not_group",
    "parse_data_criterion",
    "parse_measure_metadata",
    "collect_population_reference_ids",
]
