"""
Population precondition references.

Collects the data criteria ids that population and measure observation
preconditions point at, so pruning never removes a criterion a population
depends on. References to population components themselves are skipped.
"""

import xml.etree.ElementTree as ET
from typing import List, Set, Tuple

from ..namespace_utils import ElementQuery, reference_id

PRECONDITION_SECTIONS = (
    "cda:component/cda:populationCriteriaSection",
    "cda:component/cda:measureObservationSection",
)


def _population_component_ids(root: ET.Element) -> Set[Tuple[str, str]]:
    ids: Set[Tuple[str, str]] = set()
    for section in ElementQuery(root).find_all("cda:component/cda:populationCriteriaSection"):
        for node in ElementQuery(section).find_all("cda:component[@typeCode='COMP']/*/cda:id"):
            ids.add((node.get("extension"), node.get("root")))
    return ids


def collect_population_reference_ids(root: ET.Element) -> List[str]:
    excluded = _population_component_ids(root)
    references: List[str] = []
    q = ElementQuery(root)
    for section_path in PRECONDITION_SECTIONS:
        for section in q.find_all(section_path):
            for node in ElementQuery(section).find_all(".//cda:precondition/cda:criteriaReference/cda:id"):
                if (node.get("extension"), node.get("root")) in excluded:
                    continue
                criterion_id = reference_id(node)
                if criterion_id is not None:
                    references.append(criterion_id)
    return list(dict.fromkeys(references))
