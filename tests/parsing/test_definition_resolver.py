import unittest

from hqmf_parser import parse_hqmf
from hqmf_parser.metadata.definitions import Definition, DerivationOperator, UnknownDefinition
from hqmf_parser.metadata.template_registry import TemplateRegistry
from hqmf_parser.metadata.value_set_helper import ValueSetHelper
from hqmf_parser.parsing.extraction_context import ExtractionContext
from hqmf_parser.system.error_handling import FatalDataError, UnknownDefinitionError

from hqmf_fixtures import (
    ENCOUNTER_PERFORMED,
    LAB_TEST_PERFORMED,
    SATISFIES_ALL,
    SATISFIES_ANY,
    VARIABLE,
    criteria_reference,
    document,
    encounter_entry,
    grouper_entry,
    observation_entry,
    resolve,
)


def _definition_element(extension: str) -> str:
    return f'<definition><observation><id root="r" extension="{extension}"/></observation></definition>'


class TestTemplateTiers(unittest.TestCase):
    def test_registry_template_sets_definition_and_status(self):
        (criterion,), _ = resolve(encounter_entry("Enc", root="d1"))
        self.assertEqual(criterion.definition, Definition.ENCOUNTER)
        self.assertEqual(criterion.status, "performed")

    def test_last_matching_template_wins(self):
        (criterion,), _ = resolve(encounter_entry("Enc", root="d1", templates=(ENCOUNTER_PERFORMED, LAB_TEST_PERFORMED)))
        self.assertEqual(criterion.definition, Definition.LABORATORY_TEST)

    def test_template_with_empty_status_clears_status(self):
        (criterion,), _ = resolve(observation_entry("Dx", "r", templates=("2.16.840.1.113883.10.20.28.3.110",),
                                                    body='<statusCode code="active"/>'))
        self.assertEqual(criterion.definition, Definition.DIAGNOSIS)
        self.assertIsNone(criterion.status)

    def test_unknown_definition_from_custom_registry_is_kept_verbatim(self):
        registry = TemplateRegistry({"r2": {"1.2.3": {"definition": "future_kind", "status": "planned"}}})
        context = ExtractionContext.create(registry, ValueSetHelper({}))
        (criterion,), _ = resolve(observation_entry("Obs", "r", templates=("1.2.3",)), context=context)
        self.assertEqual(criterion.definition, UnknownDefinition("future_kind"))
        self.assertEqual(criterion.definition_name, "future_kind")
        self.assertEqual(criterion.status, "planned")

    def test_satisfies_all_forces_intersect_and_clears_negation(self):
        xml = grouper_entry("Both", "g", [("A", "r1"), ("B", "r2")], conjunction="OR", templates=(SATISFIES_ALL,))
        xml = xml.replace("<grouperCriteria ", '<grouperCriteria actionNegationInd="true" ')
        (criterion,), _ = resolve(xml)
        self.assertEqual(criterion.definition, Definition.SATISFIES_ALL)
        self.assertEqual(criterion.derivation_operator, DerivationOperator.INTERSECT)
        self.assertFalse(criterion.negation)

    def test_satisfies_any_keeps_operator(self):
        (criterion,), _ = resolve(grouper_entry("Either", "g", [("A", "r1"), ("B", "r2")], templates=(SATISFIES_ANY,)))
        self.assertEqual(criterion.definition, Definition.SATISFIES_ANY)
        self.assertEqual(criterion.derivation_operator, DerivationOperator.UNION)

    def test_variable_template_only_replaces_cross_product(self):
        (crossed,), _ = resolve(grouper_entry("qdm_var_A_1", "v", [("A", "r1"), ("B", "r2")], conjunction="AND",
                                              templates=(VARIABLE,)))
        (unioned,), _ = resolve(grouper_entry("qdm_var_B_1", "v", [("A", "r1"), ("B", "r2")], conjunction="OR",
                                              templates=(VARIABLE,)))
        self.assertEqual(crossed.derivation_operator, DerivationOperator.INTERSECT)
        self.assertEqual(unioned.derivation_operator, DerivationOperator.UNION)
        self.assertTrue(crossed.is_variable)
        self.assertEqual(crossed.definition, Definition.DERIVED)

    def test_sentinel_after_registry_match_is_ignored(self):
        entry = encounter_entry("Enc", root="d1", templates=(ENCOUNTER_PERFORMED, VARIABLE), negated=True)
        (criterion,), _ = resolve(entry)
        self.assertEqual(criterion.definition, Definition.ENCOUNTER)
        self.assertEqual(criterion.status, "performed")
        self.assertFalse(criterion.is_variable)
        self.assertTrue(criterion.negation)

    def test_satisfies_all_after_registry_match_is_ignored(self):
        entry = encounter_entry("Enc", root="d1", templates=(ENCOUNTER_PERFORMED, SATISFIES_ALL), negated=True)
        (criterion,), _ = resolve(entry)
        self.assertEqual(criterion.definition, Definition.ENCOUNTER)
        self.assertIsNone(criterion.derivation_operator)
        self.assertTrue(criterion.negation)

    def test_registry_match_after_sentinel_still_applies(self):
        (criterion,), _ = resolve(encounter_entry("Enc", root="d1", templates=(VARIABLE, ENCOUNTER_PERFORMED)))
        self.assertEqual(criterion.definition, Definition.ENCOUNTER)
        self.assertTrue(criterion.is_variable)

    def test_registry_match_with_trailing_sentinel_gets_no_grouper(self):
        doc = parse_hqmf(document([encounter_entry("Enc", root="d1", templates=(ENCOUNTER_PERFORMED, VARIABLE))]))
        self.assertEqual([c.id for c in doc.data_criteria], ["Enc_d1"])
        self.assertFalse(doc.data_criteria[0].is_variable)


class TestDefinitionCodeFallback(unittest.TestCase):
    def test_medication_codes_default_status(self):
        (medications,), _ = resolve(observation_entry("Med", "r", body=_definition_element("Medications")))
        (dispensed,), _ = resolve(observation_entry("Rx", "r", body=_definition_element("RX")))
        (ordered,), _ = resolve(observation_entry("Rx", "r", body=_definition_element("RX") + '<statusCode code="ordered"/>'))
        self.assertEqual((medications.definition, medications.status), (Definition.MEDICATION, "active"))
        self.assertEqual((dispensed.definition, dispensed.status), (Definition.MEDICATION, "dispensed"))
        self.assertEqual(ordered.status, "ordered")

    def test_known_definition_name_and_entry_type_table(self):
        (known,), _ = resolve(observation_entry("Obs", "r", body=_definition_element("diagnostic_study")))
        (problem,), _ = resolve(observation_entry("Obs", "r", body=_definition_element("Problem")))
        self.assertEqual(known.definition, Definition.DIAGNOSTIC_STUDY)
        self.assertEqual(problem.definition, Definition.DIAGNOSIS)

    def test_demographics_map_through_observation_code(self):
        body = _definition_element("Demographics") + '<code code="263495000" codeSystem="2.16.840.1.113883.6.96"/>'
        (criterion,), _ = resolve(observation_entry("Gender", "r", body=body))
        self.assertEqual(criterion.definition, Definition.PATIENT_CHARACTERISTIC_GENDER)

    def test_unknown_demographic_code_is_fatal(self):
        body = _definition_element("Demographics") + '<code code="000"/>'
        with self.assertRaises(UnknownDefinitionError):
            resolve(observation_entry("Odd", "r", body=body))

    def test_unknown_definition_code_is_fatal(self):
        with self.assertRaises(FatalDataError) as ctx:
            resolve(observation_entry("Odd", "r", body=_definition_element("Bogus")))
        self.assertIn("Bogus", str(ctx.exception))

    def test_grouper_defaults_to_derived(self):
        (criterion,), _ = resolve(grouper_entry("Group", "g", [("A", "r1"), ("B", "r2")]))
        self.assertEqual(criterion.definition, Definition.DERIVED)


class TestReferenceFallback(unittest.TestCase):
    def test_pointer_copies_definition_and_status(self):
        pointer = observation_entry(
            "Pointer", "p", body=f'<outboundRelationship typeCode="SUBJ">{criteria_reference("Enc", "d1")}</outboundRelationship>'
        )
        (source, criterion), context = resolve(encounter_entry("Enc", root="d1"), pointer)
        self.assertEqual(criterion.definition, Definition.ENCOUNTER)
        self.assertEqual(criterion.status, "performed")
        self.assertIsNone(criterion.code_list_id)
        self.assertEqual(context.diagnostics, [])

    def test_unresolvable_pointer_becomes_variable_placeholder_with_warning(self):
        pointer = observation_entry(
            "Pointer", "p", body=f'<outboundRelationship typeCode="SUBJ">{criteria_reference("Nowhere", "x")}</outboundRelationship>'
        )
        with self.assertLogs("hqmf_parser.parsing.extraction_context", level="WARNING"):
            (criterion,), context = resolve(pointer)
        self.assertEqual(criterion.definition, Definition.VARIABLE)
        self.assertEqual(criterion.definition_name, "variable")
        self.assertEqual(len(context.diagnostics), 1)
        self.assertEqual(context.diagnostics[0].criterion_id, "Pointer_p")
        self.assertEqual(context.diagnostics[0].reference_id, "Nowhere_x")
        self.assertIn("MISSING_DC_REF", context.diagnostics[0].message)

    def test_unresolvable_variable_pointer_is_silent(self):
        variable = observation_entry(
            "Pointer", "p", local_variable_name="qdm_var_Pointer_1",
            body=f'<outboundRelationship typeCode="SUBJ">{criteria_reference("Nowhere", "x")}</outboundRelationship>',
        )
        (criterion,), context = resolve(variable)
        self.assertEqual(criterion.definition, Definition.VARIABLE)
        self.assertEqual(context.diagnostics, [])

    def test_quiet_context_records_nothing(self):
        pointer = observation_entry(
            "Pointer", "p", body=f'<outboundRelationship typeCode="SUBJ">{criteria_reference("Nowhere", "x")}</outboundRelationship>'
        )
        (criterion,), context = resolve(pointer, context=ExtractionContext.create(quiet=True))
        self.assertEqual(criterion.definition, Definition.VARIABLE)
        self.assertEqual(context.diagnostics, [])


if __name__ == "__main__":
    unittest.main()
