import unittest

from hqmf_parser.parsing.document_loader import load_document
from hqmf_parser.parsing.node_parsers.measure_parser import parse_measure_metadata
from hqmf_parser.parsing.node_parsers.population_references import collect_population_reference_ids

from hqmf_fixtures import document, population_section

MEASURE_PERIOD = (
    "<controlVariable><measurePeriod>"
    '<value xsi:type="IVL_TS"><low value="20150101"/><high value="20151231"/></value>'
    "</measurePeriod></controlVariable>"
)


def _root(xml):
    root, _namespaces = load_document(xml)
    return root


class TestMeasureMetadata(unittest.TestCase):
    def test_header_fields(self):
        metadata = parse_measure_metadata(_root(document([])), source_name="cms130.xml")
        self.assertEqual(metadata.id, "40280381-TEST")
        self.assertEqual(metadata.set_id, "SET-TEST")
        self.assertEqual(metadata.version_number, 2)
        self.assertEqual(metadata.title, "Test Measure")
        self.assertEqual(metadata.description, "Measure used by the test suites")
        self.assertEqual(metadata.source_name, "cms130.xml")

    def test_cms_id_built_from_identifier_attribute(self):
        metadata = parse_measure_metadata(_root(document([])))
        self.assertEqual(metadata.cms_id, "CMS130v2")
        self.assertEqual(len(metadata.attributes), 1)
        attribute = metadata.attributes[0]
        self.assertEqual(attribute.name, "eMeasure Identifier")
        self.assertEqual(attribute.code, "OTH")
        self.assertEqual(attribute.typed_value.type, "ED")
        self.assertEqual(attribute.typed_value.media_type, "text/plain")

    def test_default_measure_period(self):
        metadata = parse_measure_metadata(_root(document([], header_extra=MEASURE_PERIOD)))
        self.assertEqual(metadata.measure_period.low.value, "201201010000")
        self.assertEqual(metadata.measure_period.high.value, "201212312359")
        self.assertEqual(metadata.measure_period.width.unit, "a")

    def test_document_measure_period(self):
        metadata = parse_measure_metadata(
            _root(document([], header_extra=MEASURE_PERIOD)), use_default_measure_period=False
        )
        self.assertEqual(metadata.measure_period.low.value, "20150101")
        self.assertEqual(metadata.measure_period.high.value, "20151231")

    def test_to_dict_keys(self):
        data = parse_measure_metadata(_root(document([]))).to_dict()
        self.assertEqual(data["hqmf_set_id"], "SET-TEST")
        self.assertEqual(data["hqmf_version_number"], 2)
        self.assertEqual(data["cms_id"], "CMS130v2")


class TestPopulationReferences(unittest.TestCase):
    def test_preconditions_collected_once_in_order(self):
        root = _root(document([], population=population_section(("B", "r"), ("A", "r"), ("B", "r"))))
        self.assertEqual(collect_population_reference_ids(root), ["B_r", "A_r"])

    def test_population_components_are_skipped(self):
        root = _root(document([], population=population_section(("A", "r"), ("IPP", "ipp-root"))))
        self.assertEqual(collect_population_reference_ids(root), ["A_r"])

    def test_no_population_section(self):
        self.assertEqual(collect_population_reference_ids(_root(document([]))), [])


if __name__ == "__main__":
    unittest.main()
