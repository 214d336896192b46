"""
Builders for small HQMF R2 documents shared by the test suites.
"""

import re
import xml.etree.ElementTree as ET
from typing import List, Optional, Sequence, Tuple

from hqmf_parser.metadata.models import DataCriterion
from hqmf_parser.parsing.extraction_context import ExtractionContext
from hqmf_parser.parsing.node_parsers.data_criteria_parser import parse_data_criterion, index_template_ids

NS_ATTRS = (
    'xmlns="urn:hl7-org:v3" '
    'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" '
    'xmlns:qdm="urn:hhs-qdm:hqmf-r2-extensions:v1"'
)

ENCOUNTER_PERFORMED = "2.16.840.1.113883.10.20.28.3.5"
LAB_TEST_PERFORMED = "2.16.840.1.113883.10.20.28.3.42"
DIAGNOSIS = "2.16.840.1.113883.10.20.28.3.110"
GENDER = "2.16.840.1.113883.10.20.28.3.55"
TRANSFER_FROM = "2.16.840.1.113883.10.20.28.3.81"
VARIABLE = "0.1.2.3.4.5.6.7.8.9.1"
SATISFIES_ANY = "2.16.840.1.113883.10.20.28.3.108"
SATISFIES_ALL = "2.16.840.1.113883.10.20.28.3.109"


def template_ids(*roots: str) -> str:
    if not roots:
        return ""
    items = "".join(f'<item root="{root}"/>' for root in roots)
    return f"<templateId>{items}</templateId>"


def criteria_reference(extension: str, root: str, class_code: str = "OBS") -> str:
    return (
        f'<criteriaReference classCode="{class_code}" moodCode="EVN">'
        f'<id root="{root}" extension="{extension}"/>'
        f"</criteriaReference>"
    )


def entry(body: str, local_variable_name: Optional[str] = None) -> str:
    lvn = f'<localVariableName value="{local_variable_name}"/>' if local_variable_name else ""
    return f'<entry typeCode="DRIV">{lvn}{body}</entry>'


def encounter_entry(
    extension: str,
    root: str = "d1",
    value_set: Optional[str] = "VS.1",
    templates: Sequence[str] = (ENCOUNTER_PERFORMED,),
    display_name: str = "Office Visit Grouping Value Set",
    title: str = "Encounter, Performed",
    extra: str = "",
    negated: bool = False,
    local_variable_name: Optional[str] = None,
) -> str:
    negation = ' actionNegationInd="true"' if negated else ""
    code = f'<code valueSet="{value_set}"><displayName value="{display_name}"/></code>' if value_set else ""
    return entry(
        f'<encounterCriteria classCode="ENC" moodCode="EVN"{negation}>'
        f"{template_ids(*templates)}"
        f'<id root="{root}" extension="{extension}"/>'
        f"{code}"
        f'<title value="{title}"/>'
        f'<statusCode code="completed"/>'
        f"{extra}"
        f"</encounterCriteria>",
        local_variable_name,
    )


def observation_entry(
    extension: str,
    root: str,
    templates: Sequence[str] = (),
    body: str = "",
    local_variable_name: Optional[str] = None,
    negated: bool = False,
) -> str:
    negation = ' actionNegationInd="true"' if negated else ""
    return entry(
        f'<observationCriteria classCode="OBS" moodCode="EVN"{negation}>'
        f"{template_ids(*templates)}"
        f'<id root="{root}" extension="{extension}"/>'
        f"{body}"
        f"</observationCriteria>",
        local_variable_name,
    )


def grouper_entry(
    extension: str,
    root: str,
    children: Sequence[Tuple[str, str]] = (),
    conjunction: Optional[str] = "OR",
    templates: Sequence[str] = (),
    local_variable_name: Optional[str] = None,
    extra: str = "",
) -> str:
    conjunction_code = f'<conjunctionCode code="{conjunction}"/>' if conjunction else ""
    relationships = "".join(
        f'<outboundRelationship typeCode="COMP">{conjunction_code}{criteria_reference(ext, rt)}</outboundRelationship>'
        for ext, rt in children
    )
    return entry(
        f'<grouperCriteria classCode="GROUPER" moodCode="EVN">'
        f"{template_ids(*templates)}"
        f'<id root="{root}" extension="{extension}"/>'
        f"{relationships}"
        f"{extra}"
        f"</grouperCriteria>",
        local_variable_name,
    )


def occurrence_relationship(source_extension: str, source_root: str) -> str:
    return f'<outboundRelationship typeCode="OCCR">{criteria_reference(source_extension, source_root, "ENC")}</outboundRelationship>'


def population_section(*references: Tuple[str, str], component: Tuple[str, str] = ("IPP", "ipp-root")) -> str:
    preconditions = "".join(
        f'<precondition typeCode="PRCN">{criteria_reference(ext, rt)}</precondition>'
        for ext, rt in references
    )
    return (
        "<component><populationCriteriaSection>"
        '<component typeCode="COMP"><initialPopulationCriteria>'
        f'<id root="{component[1]}" extension="{component[0]}"/>'
        f'<precondition typeCode="PRCN"><allTrue>{preconditions}</allTrue></precondition>'
        "</initialPopulationCriteria></component>"
        "</populationCriteriaSection></component>"
    )


def document(entries: Sequence[str], population: str = "", header_extra: str = "") -> str:
    return (
        f"<QualityMeasureDocument {NS_ATTRS}>"
        '<id root="2.16.840.1.113883.4.738" extension="40280381-TEST"/>'
        '<setId root="2.16.840.1.113883.4.738" extension="SET-TEST"/>'
        '<versionNumber value="2"/>'
        '<title value="Test Measure"/>'
        '<text value="Measure used by the test suites"/>'
        "<subjectOf><measureAttribute>"
        '<code code="OTH" codeSystem="2.16.840.1.113883.5.4"><displayName value="eMeasure Identifier"/></code>'
        '<value xsi:type="ED" mediaType="text/plain" value="130"/>'
        "</measureAttribute></subjectOf>"
        f"{header_extra}"
        f"<component><dataCriteriaSection>{''.join(entries)}</dataCriteriaSection></component>"
        f"{population}"
        "</QualityMeasureDocument>"
    )


def element(xml: str) -> ET.Element:
    """Parse a fragment written without namespace declarations."""
    xml = xml.strip()
    tag_end = re.match(r"<[^\s/>]+", xml).end()
    return ET.fromstring(f"{xml[:tag_end]} {NS_ATTRS}{xml[tag_end:]}")


def resolve(*entry_xmls: str, context: Optional[ExtractionContext] = None) -> Tuple[List[DataCriterion], ExtractionContext]:
    """Run the per-entry parser over entries in order, registering each result."""
    context = context or ExtractionContext.create()
    elements = [element(xml) for xml in entry_xmls]
    index_template_ids(elements, context)
    criteria: List[DataCriterion] = []
    for entry_element in elements:
        criterion = parse_data_criterion(entry_element, context)
        context.registry.insert_if_more_specific(criterion)
        criteria.append(criterion)
    return criteria, context
