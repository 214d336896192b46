"""
Field value code tables.

Outbound relationships carry a code (SNOMED/LOINC or an HQMF token) naming
which QDM attribute they describe; VALUE_FIELDS maps that code to the
canonical field name.
"""

from typing import Dict

FIELDS: Dict[str, Dict[str, str]] = {
    "ABATEMENT_DATETIME": {"title": "Abatement Datetime", "code": "263679003", "field_type": "timestamp"},
    "ADMISSION_DATETIME": {"title": "Admission Date/Time", "code": "399423000", "field_type": "timestamp"},
    "ANATOMICAL_APPROACH_SITE": {"title": "Anatomical Approach Site", "code": "103379005", "field_type": "value"},
    "ANATOMICAL_LOCATION_SITE": {"title": "Anatomical Location Site", "code": "91723000", "field_type": "value"},
    "CAUSE": {"title": "Cause", "code": "42752001", "field_type": "value"},
    "CUMULATIVE_MEDICATION_DURATION": {"title": "Cumulative Medication Duration", "code": "363819003", "field_type": "value"},
    "DISCHARGE_DATETIME": {"title": "Discharge Date/Time", "code": "442864001", "field_type": "timestamp"},
    "DISCHARGE_STATUS": {"title": "Discharge Status", "code": "309039003", "field_type": "value"},
    "DOSE": {"title": "Dose", "code": "398232005", "field_type": "value"},
    "FACILITY_LOCATION": {"title": "Facility Location", "code": "SDLOC", "field_type": "value"},
    "FACILITY_LOCATION_ARRIVAL_DATETIME": {"title": "Facility Location Arrival Date/Time", "code": "SDLOC_ARRIVAL", "field_type": "timestamp"},
    "FACILITY_LOCATION_DEPARTURE_DATETIME": {"title": "Facility Location Departure Date/Time", "code": "SDLOC_DEPARTURE", "field_type": "timestamp"},
    "FREQUENCY": {"title": "Frequency", "code": "307430002", "field_type": "value"},
    "HEALTH_RECORD_FIELD": {"title": "Health Record Field", "code": "395676008", "field_type": "value"},
    "INCISION_DATETIME": {"title": "Incision Date/Time", "code": "34896006", "field_type": "timestamp"},
    "LATERALITY": {"title": "Laterality", "code": "272741003", "field_type": "value"},
    "LENGTH_OF_STAY": {"title": "Length of Stay", "code": "183797002", "field_type": "value"},
    "METHOD": {"title": "Method", "code": "414679005", "field_type": "value"},
    "ONSET_AGE": {"title": "Onset Age", "code": "445518008", "field_type": "value"},
    "ONSET_DATETIME": {"title": "Onset Date/Time", "code": "298059007", "field_type": "timestamp"},
    "ORDINAL": {"title": "Ordinality", "code": "117363000", "field_type": "value"},
    "PATIENT_PREFERENCE": {"title": "Patient Preference", "code": "PAT_PREF", "field_type": "value"},
    "PRINCIPAL_DIAGNOSIS": {"title": "Principal Diagnosis", "code": "8319008", "field_type": "value"},
    "PROVIDER_PREFERENCE": {"title": "Provider Preference", "code": "PROV_PREF", "field_type": "value"},
    "REASON": {"title": "Reason", "code": "410666004", "field_type": "value"},
    "REFILLS": {"title": "Refills", "code": "209060005", "field_type": "value"},
    "RESULT": {"title": "Result", "code": "385676005", "field_type": "value"},
    "ROUTE": {"title": "Route", "code": "263513008", "field_type": "value"},
    "SEVERITY": {"title": "Severity", "code": "SEV", "field_type": "value"},
    "START_DATETIME": {"title": "Start Datetime", "code": "398201009", "field_type": "timestamp"},
    "STATUS": {"title": "Status", "code": "33999-4", "field_type": "value"},
    "STOP_DATETIME": {"title": "Stop Datetime", "code": "397898000", "field_type": "timestamp"},
    "TRANSFER_FROM": {"title": "Transfer From", "code": "TRANSFER_FROM", "field_type": "value"},
    "TRANSFER_TO": {"title": "Transfer To", "code": "TRANSFER_TO", "field_type": "value"},
}

VALUE_FIELDS: Dict[str, str] = {entry["code"]: name for name, entry in FIELDS.items()}

REASON_FIELD = "REASON"
FULFILLS_FIELD = "FLFS"

# Reason code carried by negation rationale relationships
NEGATION_REASON_CODE = FIELDS[REASON_FIELD]["code"]

# Fields read from direct children of the criteria element rather than
# from outbound relationships
DIRECT_FIELD_ELEMENTS: Dict[str, str] = {
    "lengthOfStayQuantity": "LENGTH_OF_STAY",
    "dischargeDispositionCode": "DISCHARGE_STATUS",
    "routeCode": "ROUTE",
    "methodCode": "METHOD",
    "targetSiteCode": "ANATOMICAL_LOCATION_SITE",
}


def field_title(field_name: str) -> str:
    return FIELDS.get(field_name, {}).get("title", field_name.replace("_", " ").title())
