"""
Tabular views of extracted data criteria.
"""

from typing import List

import pandas as pd

from ..metadata.models import DataCriterion, ExtractionResult
from ..metadata.serialisers import (
    CRITERIA_COLUMNS,
    FIELD_VALUE_COLUMNS,
    OCCURRENCE_COLUMNS,
    serialise_criteria_rows,
    serialise_field_value_rows,
    serialise_occurrence_rows,
)


def criteria_to_dataframe(criteria: List[DataCriterion]) -> pd.DataFrame:
    return pd.DataFrame(serialise_criteria_rows(criteria), columns=CRITERIA_COLUMNS)


def field_values_to_dataframe(criteria: List[DataCriterion]) -> pd.DataFrame:
    return pd.DataFrame(serialise_field_value_rows(criteria), columns=FIELD_VALUE_COLUMNS)


def occurrences_to_dataframe(result: ExtractionResult) -> pd.DataFrame:
    return pd.DataFrame(serialise_occurrence_rows(result), columns=OCCURRENCE_COLUMNS)


def criteria_to_csv(criteria: List[DataCriterion]) -> str:
    """CSV text of the Data Criteria table, one row per criterion."""
    return criteria_to_dataframe(criteria).to_csv(index=False)
