"""Export handlers for parsed HQMF documents."""

from .criteria_json import export_criteria_json, generate_criteria_json
from .criteria_table import criteria_to_dataframe, field_values_to_dataframe, occurrences_to_dataframe, criteria_to_csv
from .criteria_excel import generate_criteria_excel

__all__ = [
    "export_criteria_json",
    "generate_criteria_json",
    "criteria_to_dataframe",
    "field_values_to_dataframe",
    "occurrences_to_dataframe",
    "criteria_to_csv",
    "generate_criteria_excel",
]
