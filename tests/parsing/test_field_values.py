import unittest

from hqmf_parser.metadata.models import AnyValue, CodedValue, RangeValue, SimpleValue, TypedReference
from hqmf_parser.parsing.node_parsers.entry_preprocessor import preprocess_entry
from hqmf_parser.parsing.node_parsers.field_value_parser import extract_field_values

from hqmf_fixtures import criteria_reference, element, encounter_entry, observation_entry


def _coded_relationship(code: str, value: str) -> str:
    return (
        '<outboundRelationship typeCode="REFR"><observationCriteria classCode="OBS" moodCode="EVN">'
        f'<code code="{code}" codeSystem="2.16.840.1.113883.6.96"/>{value}'
        "</observationCriteria></outboundRelationship>"
    )


FACILITY_LOCATION = (
    '<outboundRelationship typeCode="REFR"><encounterCriteria classCode="ENC" moodCode="EVN">'
    '<participation typeCode="LOC"><role classCode="SDLOC">'
    '<code valueSet="VS.LOC"><displayName value="ICU"/></code>'
    "</role></participation>"
    "</encounterCriteria></outboundRelationship>"
)


def _fields(xml: str, negation: bool = False):
    return extract_field_values(preprocess_entry(element(xml)), negation)


class TestFieldValues(unittest.TestCase):
    def test_coded_relationship_maps_to_field_name(self):
        xml = encounter_entry("Enc", extra=_coded_relationship("8319008", '<value xsi:type="CD" valueSet="VS.PD"/>'))
        fields = _fields(xml)
        self.assertIsInstance(fields["PRINCIPAL_DIAGNOSIS"], CodedValue)
        self.assertEqual(fields["PRINCIPAL_DIAGNOSIS"].code_list_id, "VS.PD")

    def test_effective_time_is_used_when_no_value(self):
        relationship = _coded_relationship("398201009", '<effectiveTime xsi:type="TS" value="201201010000"/>')
        fields = _fields(encounter_entry("Enc", extra=relationship))
        self.assertIsInstance(fields["START_DATETIME"], SimpleValue)
        self.assertEqual(fields["START_DATETIME"].value, "201201010000")

    def test_interval_timestamp_field_is_any_value(self):
        relationship = _coded_relationship("442864001", '<effectiveTime xsi:type="IVL_TS"/>')
        fields = _fields(encounter_entry("Enc", extra=relationship))
        self.assertIsInstance(fields["DISCHARGE_DATETIME"], AnyValue)

    def test_reason_is_suppressed_for_negated_criteria(self):
        relationship = _coded_relationship("410666004", '<value xsi:type="CD" valueSet="VS.REASON"/>')
        self.assertIn("REASON", _fields(encounter_entry("Enc", extra=relationship)))
        self.assertNotIn("REASON", _fields(encounter_entry("Enc", extra=relationship, negated=True), negation=True))

    def test_unknown_codes_and_valueless_fields_are_dropped(self):
        unknown = _coded_relationship("999999", '<value xsi:type="CD" valueSet="VS.X"/>')
        valueless = _coded_relationship("8319008", "")
        self.assertEqual(_fields(encounter_entry("Enc", extra=unknown + valueless)), {})

    def test_facility_location_participation(self):
        fields = _fields(encounter_entry("Enc", extra=FACILITY_LOCATION))
        location = fields["FACILITY_LOCATION"]
        self.assertIsInstance(location, CodedValue)
        self.assertEqual(location.code_list_id, "VS.LOC")
        self.assertEqual(location.title, "ICU")

    def test_direct_length_of_stay_and_route(self):
        extra = (
            '<lengthOfStayQuantity xsi:type="IVL_PQ"><low value="0" unit="days"/><high value="120" unit="days"/></lengthOfStayQuantity>'
            '<routeCode valueSet="VS.ROUTE"/>'
        )
        fields = _fields(encounter_entry("Enc", extra=extra))
        length_of_stay = fields["LENGTH_OF_STAY"]
        self.assertIsInstance(length_of_stay, RangeValue)
        self.assertIsNone(length_of_stay.low)
        self.assertEqual((length_of_stay.high.value, length_of_stay.high.unit), ("120", "d"))
        self.assertEqual(fields["ROUTE"].code_list_id, "VS.ROUTE")

    def test_scalar_length_of_stay(self):
        fields = _fields(encounter_entry("Enc", extra='<lengthOfStayQuantity value="3" unit="days"/>'))
        self.assertEqual(fields["LENGTH_OF_STAY"].to_dict(), {"type": "PQ", "value": "3", "unit": "d", "inclusive?": False})

    def test_fulfills_is_a_typed_reference(self):
        extra = f'<outboundRelationship typeCode="FLFS">{criteria_reference("Order", "o1", "ACT")}</outboundRelationship>'
        fields = _fields(observation_entry("Obs", "r", body=extra))
        fulfills = fields["FLFS"]
        self.assertIsInstance(fulfills, TypedReference)
        self.assertEqual(fulfills.to_dict(), {"type": "ACT", "mood": "EVN", "reference": "Order_o1"})


if __name__ == "__main__":
    unittest.main()
