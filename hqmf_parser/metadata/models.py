"""
Canonical metadata models for the data criteria extraction pipeline.
These are shared across parsing, serialisation, and export layers.
"""

import copy
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any, Union

from .definitions import DefinitionKind, DerivationOperator, definition_name


@dataclass
class SimpleValue:
    """Scalar value: physical quantity (PQ) or timestamp (TS)."""
    type: str
    value: Optional[str] = None
    unit: Optional[str] = None
    inclusive: bool = False
    expression: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.type, "value": self.value, "unit": self.unit, "inclusive?": self.inclusive}
        if self.expression is not None:
            data["expression"] = self.expression
        return data


@dataclass
class RangeValue:
    """Interval value (IVL_PQ, IVL_INT, IVL_TS) with optional bounds and width."""
    type: str
    low: Optional[SimpleValue] = None
    high: Optional[SimpleValue] = None
    width: Optional[SimpleValue] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type}
        if self.low is not None:
            data["low"] = self.low.to_dict()
        if self.high is not None:
            data["high"] = self.high.to_dict()
        if self.width is not None:
            data["width"] = self.width.to_dict()
        return data


@dataclass
class CodedValue:
    """Coded value (CD) bound either to a single code or to a value set."""
    type: str = "CD"
    system: Optional[str] = None
    code: Optional[str] = None
    code_list_id: Optional[str] = None
    title: Optional[str] = None
    null_flavor: Optional[str] = None
    original_text: Optional[str] = None

    @classmethod
    def for_code_list(cls, code_list_id: Optional[str], title: Optional[str] = None) -> "CodedValue":
        return cls(type="CD", code_list_id=code_list_id, title=title)

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.type}
        for key in ("system", "code", "code_list_id", "title", "null_flavor", "original_text"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class AnyValue:
    """Matches any non-null value."""
    type: str = "ANYNonNull"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type}


@dataclass
class TypedReference:
    """Reference to another criterion carried as a field value (FLFS)."""
    reference_id: str
    type: Optional[str] = None
    mood: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "mood": self.mood, "reference": self.reference_id}


CriterionValue = Union[SimpleValue, RangeValue, CodedValue, AnyValue]
FieldValue = Union[SimpleValue, RangeValue, CodedValue, AnyValue, TypedReference]


@dataclass
class EffectiveTime:
    low: Optional[SimpleValue] = None
    high: Optional[SimpleValue] = None
    width: Optional[SimpleValue] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.low is not None:
            data["low"] = self.low.to_dict()
        if self.high is not None:
            data["high"] = self.high.to_dict()
        if self.width is not None:
            data["width"] = self.width.to_dict()
        return data


@dataclass
class TemporalReference:
    """Temporal relation (SBS, EAE, ...) to another criterion or the measure period."""
    type: Optional[str]
    reference_id: Optional[str]
    range: Optional[RangeValue] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type, "reference": self.reference_id}
        if self.range is not None:
            data["range"] = self.range.to_dict()
        return data


@dataclass
class SubsetOperator:
    """Subset operator (FIRST, MOST RECENT, COUNT, ...) with optional value."""
    type: Optional[str]
    value: Optional[CriterionValue] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type}
        if self.value is not None:
            data["value"] = self.value.to_dict()
        return data


def _value_dict(value: Any) -> Optional[Dict[str, Any]]:
    return value.to_dict() if value is not None else None


@dataclass
class DataCriterion:
    """
    A single typed clinical data requirement.

    Children and source references are weak links by id; they are resolved
    against the document registry, never owned.
    """
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    definition: Optional[DefinitionKind] = None
    status: Optional[str] = None
    value: Optional[CriterionValue] = None
    field_values: Dict[str, FieldValue] = field(default_factory=dict)
    effective_time: Optional[EffectiveTime] = None
    temporal_references: List[TemporalReference] = field(default_factory=list)
    subset_operators: List[SubsetOperator] = field(default_factory=list)
    derivation_operator: Optional[DerivationOperator] = None
    children_criteria: List[str] = field(default_factory=list)
    negation: bool = False
    negation_code_list_id: Optional[str] = None
    specific_occurrence: Optional[str] = None
    specific_occurrence_const: Optional[str] = None
    source_data_criteria: Optional[str] = None
    is_variable: bool = False
    comments: List[str] = field(default_factory=list)
    code_list_id: Optional[str] = None
    local_variable_name: Optional[str] = None
    template_ids: List[str] = field(default_factory=list)
    inline_code_list: Optional[Dict[str, List[str]]] = None
    # Set when the criterion is a pass-through to a single referenced criterion
    do_not_group: bool = False

    @property
    def definition_name(self) -> Optional[str]:
        return definition_name(self.definition)

    def clone(self) -> "DataCriterion":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "definition": self.definition_name,
            "status": self.status,
            "value": _value_dict(self.value),
            "field_values": {name: fv.to_dict() for name, fv in self.field_values.items()},
            "effective_time": _value_dict(self.effective_time),
            "temporal_references": [tr.to_dict() for tr in self.temporal_references],
            "subset_operators": [so.to_dict() for so in self.subset_operators],
            "derivation_operator": self.derivation_operator.value if self.derivation_operator else None,
            "children_criteria": list(self.children_criteria),
            "negation": self.negation,
            "negation_code_list_id": self.negation_code_list_id,
            "specific_occurrence": self.specific_occurrence,
            "specific_occurrence_const": self.specific_occurrence_const,
            "source_data_criteria": self.source_data_criteria,
            "variable": self.is_variable,
            "comments": list(self.comments),
            "code_list_id": self.code_list_id,
            "local_variable_name": self.local_variable_name,
            "template_ids": list(self.template_ids),
            "inline_code_list": self.inline_code_list,
        }


@dataclass
class Identifier:
    type: Optional[str]
    root: Optional[str]
    extension: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "root": self.root, "extension": self.extension}


@dataclass
class EncapsulatedData:
    """ED typed attribute value (free text with a media type)."""
    type: str
    value: Optional[str]
    media_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "value": self.value, "media_type": self.media_type}


@dataclass
class GenericValue:
    type: Optional[str]
    value: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "value": self.value}


AttributeValue = Union[Identifier, EncapsulatedData, CodedValue, GenericValue, AnyValue]


@dataclass
class MeasureAttribute:
    """A measureAttribute from the document's subjectOf section."""
    id: Optional[str] = None
    code: Optional[str] = None
    value: Optional[str] = None
    name: Optional[str] = None
    identifier: Optional[Identifier] = None
    coded: Optional[CodedValue] = None
    typed_value: Optional[AttributeValue] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "value": self.value,
            "name": self.name,
            "id_obj": _value_dict(self.identifier),
            "code_obj": _value_dict(self.coded),
            "value_obj": _value_dict(self.typed_value),
        }


@dataclass
class MeasureMetadata:
    id: str
    set_id: Optional[str] = None
    version_number: int = 0
    title: Optional[str] = None
    description: str = ""
    cms_id: Optional[str] = None
    measure_period: Optional[EffectiveTime] = None
    attributes: List[MeasureAttribute] = field(default_factory=list)
    source_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "hqmf_set_id": self.set_id,
            "hqmf_version_number": self.version_number,
            "title": self.title,
            "description": self.description,
            "cms_id": self.cms_id,
            "measure_period": _value_dict(self.measure_period),
            "attributes": [a.to_dict() for a in self.attributes],
        }


@dataclass
class ExtractionResult:
    """Output of one document extraction pass."""
    data_criteria: List[DataCriterion] = field(default_factory=list)
    source_data_criteria: List[DataCriterion] = field(default_factory=list)
    occurrences: Dict[str, str] = field(default_factory=dict)
    reference_ids: List[str] = field(default_factory=list)
    diagnostics: List[Any] = field(default_factory=list)
    pruned_ids: List[str] = field(default_factory=list)

    def summary(self) -> Dict[str, Any]:
        return {
            "data_criteria": len(self.data_criteria),
            "source_data_criteria": len(self.source_data_criteria),
            "variables": sum(1 for dc in self.data_criteria if dc.is_variable),
            "occurrences": len(self.occurrences),
            "reference_ids": len(self.reference_ids),
            "diagnostics": len(self.diagnostics),
            "pruned": len(self.pruned_ids),
        }
