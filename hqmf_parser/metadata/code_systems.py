"""
Code system OID to name mapping used for inline code lists.
"""

from typing import Optional

CODE_SYSTEM_NAMES = {
    "2.16.840.1.113883.6.1": "LOINC",
    "2.16.840.1.113883.6.96": "SNOMED-CT",
    "2.16.840.1.113883.6.88": "RxNorm",
    "2.16.840.1.113883.6.103": "ICD-9-CM",
    "2.16.840.1.113883.6.104": "ICD-9-PCS",
    "2.16.840.1.113883.6.90": "ICD-10-CM",
    "2.16.840.1.113883.6.4": "ICD-10-PCS",
    "2.16.840.1.113883.6.12": "CPT",
    "2.16.840.1.113883.6.285": "HCPCS",
    "2.16.840.1.113883.6.238": "CDC Race",
    "2.16.840.1.113883.5.1": "AdministrativeGender",
    "2.16.840.1.113883.3.221.5": "SOP",
    "2.16.840.1.113883.6.101": "NUCC Provider Taxonomy",
    "2.16.840.1.113883.12.292": "CVX",
    "2.16.840.1.113883.6.13": "CDT",
    "2.16.840.1.113883.6.14": "HCP",
    "2.16.840.1.113883.5.4": "HL7 ActCode",
    "2.16.840.1.113883.5.2": "HL7 Marital Status",
}


def code_system_for(oid: Optional[str]) -> Optional[str]:
    """Return the human readable code system name for an OID, or None when unknown."""
    if not oid:
        return None
    return CODE_SYSTEM_NAMES.get(oid.strip())
