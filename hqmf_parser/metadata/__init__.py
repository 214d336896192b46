"""Data criteria models, definition taxonomy and lookup tables."""

from .definitions import Definition, DerivationOperator, UnknownDefinition, parse_definition
from .models import (
    SimpleValue,
    RangeValue,
    CodedValue,
    AnyValue,
    TypedReference,
    EffectiveTime,
    TemporalReference,
    SubsetOperator,
    DataCriterion,
    MeasureAttribute,
    MeasureMetadata,
    ExtractionResult,
)
from .template_registry import TemplateRegistry
from .value_set_helper import ValueSetHelper

__all__ = [
    "Definition",
    "DerivationOperator",
    "UnknownDefinition",
    "parse_definition",
    "SimpleValue",
    "RangeValue",
    "CodedValue",
    "AnyValue",
    "TypedReference",
    "EffectiveTime",
    "TemporalReference",
    "SubsetOperator",
    "DataCriterion",
    "MeasureAttribute",
    "MeasureMetadata",
    "ExtractionResult",
    "TemplateRegistry",
    "ValueSetHelper",
]
