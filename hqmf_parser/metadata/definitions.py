"""
Data criteria definition taxonomy.

Known QDM categories form a closed enum; anything a template table supplies
outside that set is carried as an UnknownDefinition with its raw code.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union


class DerivationOperator(str, Enum):
    UNION = "UNION"
    XPRODUCT = "XPRODUCT"
    INTERSECT = "INTERSECT"


CONJUNCTION_CODE_TO_DERIVATION_OP: Dict[str, DerivationOperator] = {
    "OR": DerivationOperator.UNION,
    "AND": DerivationOperator.XPRODUCT,
}


class Definition(str, Enum):
    ADVERSE_EFFECT = "adverse_effect"
    ALLERGY = "allergy"
    ASSESSMENT = "assessment"
    CARE_GOAL = "care_goal"
    COMMUNICATION_FROM_PATIENT_TO_PROVIDER = "communication_from_patient_to_provider"
    COMMUNICATION_FROM_PROVIDER_TO_PATIENT = "communication_from_provider_to_patient"
    COMMUNICATION_FROM_PROVIDER_TO_PROVIDER = "communication_from_provider_to_provider"
    DEVICE = "device"
    DIAGNOSIS = "diagnosis"
    DIAGNOSTIC_STUDY = "diagnostic_study"
    ENCOUNTER = "encounter"
    FAMILY_HISTORY = "family_history"
    FUNCTIONAL_STATUS = "functional_status"
    INTERVENTION = "intervention"
    INTOLERANCE = "intolerance"
    LABORATORY_TEST = "laboratory_test"
    MEDICATION = "medication"
    PATIENT_CARE_EXPERIENCE = "patient_care_experience"
    PATIENT_CHARACTERISTIC = "patient_characteristic"
    PATIENT_CHARACTERISTIC_AGE = "patient_characteristic_age"
    PATIENT_CHARACTERISTIC_BIRTHDATE = "patient_characteristic_birthdate"
    PATIENT_CHARACTERISTIC_CLINICAL_TRIAL_PARTICIPANT = "patient_characteristic_clinical_trial_participant"
    PATIENT_CHARACTERISTIC_ETHNICITY = "patient_characteristic_ethnicity"
    PATIENT_CHARACTERISTIC_EXPIRED = "patient_characteristic_expired"
    PATIENT_CHARACTERISTIC_GENDER = "patient_characteristic_gender"
    PATIENT_CHARACTERISTIC_LANGUAGES = "patient_characteristic_languages"
    PATIENT_CHARACTERISTIC_MARITAL_STATUS = "patient_characteristic_marital_status"
    PATIENT_CHARACTERISTIC_PAYER = "patient_characteristic_payer"
    PATIENT_CHARACTERISTIC_RACE = "patient_characteristic_race"
    PHYSICAL_EXAM = "physical_exam"
    PREFERENCE = "preference"
    PROCEDURE = "procedure"
    PROVIDER_CARE_EXPERIENCE = "provider_care_experience"
    PROVIDER_CHARACTERISTIC = "provider_characteristic"
    RISK_CATEGORY_ASSESSMENT = "risk_category_assessment"
    SUBSTANCE = "substance"
    SYMPTOM = "symptom"
    SYSTEM_CHARACTERISTIC = "system_characteristic"
    TRANSFER_FROM = "transfer_from"
    TRANSFER_TO = "transfer_to"
    DERIVED = "derived"
    SATISFIES_ANY = "satisfies_any"
    SATISFIES_ALL = "satisfies_all"
    # Placeholder for pointer entries whose target could not be resolved
    VARIABLE = "variable"


@dataclass(frozen=True)
class UnknownDefinition:
    """Definition code outside the known taxonomy, kept verbatim."""
    raw_code: str

    @property
    def value(self) -> str:
        return self.raw_code

    def startswith(self, prefix: str) -> bool:
        return self.raw_code.startswith(prefix)


DefinitionKind = Union[Definition, UnknownDefinition]

_DEFINITIONS_BY_VALUE: Dict[str, Definition] = {d.value: d for d in Definition}


def parse_definition(text: Optional[str]) -> Optional[DefinitionKind]:
    """Map a definition string onto the taxonomy, falling back to UnknownDefinition."""
    if text is None or text == "":
        return None
    known = _DEFINITIONS_BY_VALUE.get(text)
    if known is not None:
        return known
    return UnknownDefinition(text)


def is_known_definition(text: Optional[str]) -> bool:
    return bool(text) and text in _DEFINITIONS_BY_VALUE


def definition_name(definition: Optional[DefinitionKind]) -> Optional[str]:
    return definition.value if definition is not None else None


# Demographic kinds retained even when nothing references them
PROTECTED_DEFINITIONS: Tuple[Definition, ...] = (
    Definition.PATIENT_CHARACTERISTIC_ETHNICITY,
    Definition.PATIENT_CHARACTERISTIC_GENDER,
    Definition.PATIENT_CHARACTERISTIC_PAYER,
    Definition.PATIENT_CHARACTERISTIC_RACE,
)

# observationCriteria/code/@code for "Demographics" entries
DEMOGRAPHIC_CODE_DEFINITIONS: Dict[str, Definition] = {
    "21112-8": Definition.PATIENT_CHARACTERISTIC_BIRTHDATE,
    "424144002": Definition.PATIENT_CHARACTERISTIC_AGE,
    "263495000": Definition.PATIENT_CHARACTERISTIC_GENDER,
    "102902016": Definition.PATIENT_CHARACTERISTIC_LANGUAGES,
    "125680007": Definition.PATIENT_CHARACTERISTIC_MARITAL_STATUS,
    "103579009": Definition.PATIENT_CHARACTERISTIC_RACE,
}

# definition/*/id/@extension values understood when no template matched
ENTRY_TYPE_DEFINITIONS: Dict[str, Definition] = {
    "Problem": Definition.DIAGNOSIS,
    "Problems": Definition.DIAGNOSIS,
    "Encounter": Definition.ENCOUNTER,
    "Encounters": Definition.ENCOUNTER,
    "LabResults": Definition.LABORATORY_TEST,
    "Results": Definition.LABORATORY_TEST,
    "Procedure": Definition.PROCEDURE,
    "Procedures": Definition.PROCEDURE,
    "Derived": Definition.DERIVED,
}

# Entry types mapping to medication, with the status applied when none is set
MEDICATION_ENTRY_TYPES: Dict[str, str] = {
    "Medication": "active",
    "Medications": "active",
    "RX": "dispensed",
}

DEMOGRAPHICS_ENTRY_TYPE = "Demographics"
