"""
Parsing pipeline entrypoints.
Produces an HQMFDocument: measure metadata plus the resolved, pruned data
criteria graph of one HQMF R2 document.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Union

from ..metadata.models import DataCriterion, ExtractionResult, MeasureMetadata
from ..metadata.serialisers import criterion_to_dict
from ..metadata.template_registry import TemplateRegistry
from ..metadata.value_set_helper import ValueSetHelper
from ..system.debug_logger import get_debug_logger
from ..system.error_handling import DiagnosticWarning, ErrorHandler, HQMFParserError
from .document_loader import load_document
from .document_resolver import DocumentResolver
from .encoding import ensure_text
from .extraction_context import ExtractionContext
from .namespace_utils import ElementQuery
from .node_parsers.measure_parser import parse_measure_metadata
from .node_parsers.population_references import collect_population_reference_ids
from .source_data_criteria import derive_source_list

logger = logging.getLogger(__name__)

DATA_CRITERIA_ENTRIES = "cda:component/cda:dataCriteriaSection/cda:entry"


@dataclass
class HQMFDocument:
    metadata: MeasureMetadata
    result: ExtractionResult
    namespaces: Dict[str, str] = field(default_factory=dict)

    @property
    def data_criteria(self) -> List[DataCriterion]:
        return self.result.data_criteria

    @property
    def source_data_criteria(self) -> List[DataCriterion]:
        return self.result.source_data_criteria

    @property
    def occurrences(self) -> Dict[str, str]:
        return self.result.occurrences

    @property
    def reference_ids(self) -> List[str]:
        return self.result.reference_ids

    @property
    def diagnostics(self) -> List[DiagnosticWarning]:
        return self.result.diagnostics

    def find_criterion(self, criterion_id: str) -> Optional[DataCriterion]:
        return next((dc for dc in self.data_criteria if dc.id == criterion_id), None)

    def find_criterion_by_local_variable_name(self, name: str) -> Optional[DataCriterion]:
        return next((dc for dc in self.data_criteria if dc.local_variable_name == name), None)

    def to_dict(self) -> Dict[str, Any]:
        data = self.metadata.to_dict()
        data["data_criteria"] = {dc.id: criterion_to_dict(dc) for dc in self.data_criteria}
        data["source_data_criteria"] = {dc.id: criterion_to_dict(dc) for dc in self.source_data_criteria}
        data["occurrences"] = dict(self.occurrences)
        data["diagnostics"] = [d.to_dict() for d in self.diagnostics]
        return data


def parse_hqmf(
    content: Union[str, bytes],
    source_name: Optional[str] = None,
    template_registry: Optional[TemplateRegistry] = None,
    value_set_helper: Optional[ValueSetHelper] = None,
    use_default_measure_period: bool = True,
) -> HQMFDocument:
    """
    Parse an HQMF R2 document into its measure metadata and data criteria.

    Every call starts from fresh state. Fatal data errors propagate; nothing
    partial is returned.
    """
    template_registry = template_registry or TemplateRegistry.default()
    value_set_helper = value_set_helper or ValueSetHelper.default()
    debug_logger = get_debug_logger()

    try:
        xml_content = ensure_text(content)
        root, namespaces = load_document(xml_content, source_name=source_name)
        metadata = parse_measure_metadata(root, source_name, use_default_measure_period)

        entries = ElementQuery(root).find_all(DATA_CRITERIA_ENTRIES)
        source_list, collapse_map = derive_source_list(entries, template_registry, value_set_helper)

        context = ExtractionContext.create(template_registry, value_set_helper, source_name=source_name)
        resolver = DocumentResolver(context, collapse_map, source_list, debug_logger=debug_logger)
        resolver.process_entries(entries)
        resolver.add_reference_ids(collect_population_reference_ids(root))
        result = resolver.finalise()
    except HQMFParserError as exc:
        # Log for tracking, then let the caller see the original error
        ErrorHandler().handle_error(exc)
        debug_logger.log_error(exc, source_name or "parse_hqmf")
        raise

    logger.info(
        f"Extracted {len(result.data_criteria)} data criteria from {source_name or metadata.id} "
        f"({len(result.pruned_ids)} pruned, {len(result.diagnostics)} warnings)"
    )
    return HQMFDocument(metadata=metadata, result=result, namespaces=namespaces)
