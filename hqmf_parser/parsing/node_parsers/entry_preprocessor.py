"""
Entry preprocessor.

Locates the criteria element of a dataCriteriaSection entry and pulls out the
per-entry basics (id, status, comments, template ids, lookup paths) plus the
straightforward structural extractions used by the later components.
"""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ...metadata.definitions import DerivationOperator, CONJUNCTION_CODE_TO_DERIVATION_OP
from ...metadata.models import TemporalReference, SubsetOperator, EffectiveTime
from ...metadata.value_fields import NEGATION_REASON_CODE
from ...system.error_handling import FatalDataError, ConflictingDerivationError
from ..namespace_utils import ElementQuery, local_name, normalise_id, raw_id, reference_id
from .value_parser import parse_range, parse_value, parse_effective_time

VARIABLE_MARKER = "qdm_var_"
EXCLUDED_SUBSET_CODES = ("UNION", "XPRODUCT")
DEFAULT_CODE_LIST_PATH = "cda:code"

_VARIABLE_PREFIX = re.compile(r"^qdm_var_")
_OCCURRENCE_LABEL = re.compile(r"Occurrence[A-Z]of")
_TRAILING_TOKEN = re.compile(r"_[^_]+$")
_GROUPING_NAME = re.compile(r"^(SATISFIES ALL|SATISFIES ANY|UNION|INTERSECTION)")
_LOCAL_VAR_PREFIX = re.compile(r"^localVar_")


@dataclass
class PreparedEntry:
    """An entry with its criteria element located and its basic fields read."""
    entry: ET.Element
    criteria: ET.Element
    criteria_type: str
    raw_id: str
    id: str
    status: Optional[str]
    comments: List[str] = field(default_factory=list)
    template_ids: List[str] = field(default_factory=list)
    local_variable_name: Optional[str] = None
    code_list_path: str = DEFAULT_CODE_LIST_PATH

    @property
    def entry_query(self) -> ElementQuery:
        return ElementQuery(self.entry)

    @property
    def query(self) -> ElementQuery:
        return ElementQuery(self.criteria)

    @property
    def is_variable(self) -> bool:
        return is_variable_entry(self.local_variable_name, self.raw_id)


def find_criteria_element(entry: ET.Element) -> Optional[ET.Element]:
    for child in entry:
        if isinstance(child.tag, str) and local_name(child.tag).endswith("Criteria"):
            return child
    return None


def preprocess_entry(entry: ET.Element) -> PreparedEntry:
    criteria = find_criteria_element(entry)
    if criteria is None:
        raise FatalDataError("Data criteria entry has no criteria element")

    q = ElementQuery(criteria)
    identifier = raw_id(q.find_one("cda:id"))
    if identifier is None:
        raise FatalDataError(f"{local_name(criteria.tag)} entry has no id")

    comments = [
        item.text for item in q.find_all("cda:text/cda:xml/cda:qdmUserComments/cda:item")
        if item.text
    ]
    template_ids = [
        item.get("root") for item in q.find_all("cda:templateId/cda:item")
        if item.get("root")
    ]

    return PreparedEntry(
        entry=entry,
        criteria=criteria,
        criteria_type=local_name(criteria.tag),
        raw_id=identifier,
        id=normalise_id(identifier),
        status=q.attribute("cda:statusCode/@code"),
        comments=comments,
        template_ids=template_ids,
        local_variable_name=ElementQuery(entry).attribute("cda:localVariableName/@value"),
    )


def is_variable_entry(local_variable_name: Optional[str], identifier: Optional[str]) -> bool:
    if local_variable_name and VARIABLE_MARKER in local_variable_name:
        return True
    return bool(identifier) and VARIABLE_MARKER in identifier


def description_for_variable(encoded_name: str) -> Optional[str]:
    """Decode the variable name hint authoring tools put in localVariableName."""
    if _VARIABLE_PREFIX.match(encoded_name):
        name = _VARIABLE_PREFIX.sub("", encoded_name)
        name = _OCCURRENCE_LABEL.sub("", name)
        # Older measures carry no trailing identifier on grouping names
        if not _GROUPING_NAME.match(name):
            name = _TRAILING_TOKEN.sub("", name)
        return name
    if _LOCAL_VAR_PREFIX.match(encoded_name):
        return _LOCAL_VAR_PREFIX.sub("", encoded_name)
    return None


def extract_description(prepared: PreparedEntry) -> Optional[str]:
    q = prepared.query
    if prepared.is_variable:
        encoded_name = prepared.local_variable_name
        if encoded_name:
            decoded = description_for_variable(encoded_name)
            if decoded:
                return decoded
        return q.attribute("cda:id/@extension")
    return (
        q.attribute("cda:text/@value")
        or q.attribute("cda:title/@value")
        or q.attribute("cda:id/@extension")
    )


def extract_negation(prepared: PreparedEntry) -> Tuple[bool, Optional[str]]:
    negation = prepared.criteria.get("actionNegationInd") == "true"
    if not negation:
        return False, None
    for relationship in prepared.query.find_all("cda:outboundRelationship"):
        for target in relationship:
            rq = ElementQuery(target)
            if rq.attribute("cda:code/@code") == NEGATION_REASON_CODE:
                value_set = rq.attribute("cda:value/@valueSet")
                if value_set:
                    return True, value_set
    return True, None


def extract_child_criteria(prepared: PreparedEntry) -> List[str]:
    ids = [
        reference_id(node)
        for node in prepared.query.find_all("cda:outboundRelationship[@typeCode='COMP']/cda:criteriaReference/cda:id")
    ]
    return [criterion_id for criterion_id in ids if criterion_id is not None]


def extract_derivation_operator(prepared: PreparedEntry) -> Optional[DerivationOperator]:
    operator: Optional[DerivationOperator] = None
    codes = [
        node.get("code")
        for node in prepared.query.find_all("cda:outboundRelationship[@typeCode='COMP']/cda:conjunctionCode")
    ]
    for code in codes:
        mapped = CONJUNCTION_CODE_TO_DERIVATION_OP.get(code)
        if operator is not None and operator != mapped:
            raise ConflictingDerivationError([c for c in dict.fromkeys(codes) if c], criterion_id=prepared.id)
        operator = mapped
    return operator


def extract_temporal_references(prepared: PreparedEntry) -> List[TemporalReference]:
    references: List[TemporalReference] = []
    for node in prepared.query.find_all("cda:temporallyRelatedInformation"):
        q = ElementQuery(node)
        delta = q.find_one("qdm:temporalInformation/qdm:delta")
        references.append(
            TemporalReference(
                type=node.get("typeCode"),
                reference_id=reference_id(q.find_one("*/cda:id")),
                range=parse_range(delta, "IVL_PQ") if delta is not None else None,
            )
        )
    return references


def extract_subset_operators(prepared: PreparedEntry) -> List[SubsetOperator]:
    operators: List[SubsetOperator] = []
    for node in prepared.query.find_all("cda:excerpt"):
        q = ElementQuery(node)
        subset_type = q.attribute("cda:subsetCode/@code")
        if subset_type in EXCLUDED_SUBSET_CODES:
            continue
        repeat_number = q.find_one("*/cda:repeatNumber")
        if repeat_number is not None:
            value = parse_range(repeat_number, "IVL_INT")
        else:
            value = parse_value(node, "*/cda:value")
        operators.append(SubsetOperator(type=subset_type, value=value))
    return operators


def extract_effective_time(prepared: PreparedEntry) -> Optional[EffectiveTime]:
    return parse_effective_time(prepared.query.find_one("cda:effectiveTime"))
