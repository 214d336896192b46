import unittest

from hqmf_parser.parsing.node_parsers.occurrence_resolver import obtain_occurrence_identifier
from hqmf_parser.system.error_handling import MissingOccurrenceError

from hqmf_fixtures import encounter_entry, grouper_entry, occurrence_relationship, resolve


class TestObtainOccurrenceIdentifier(unittest.TestCase):
    """(stripped id, stripped local variable name, stripped source, is variable) -> letter"""

    CASES = [
        # variable family, letter at offset 3
        (("occAof_qdm_var_Visits_1", "", "", True), "A"),
        (("Visits_1", "occBof_qdm_var_Visits", "", True), "B"),
        (("occCof_qdm_var_Visits_1", "occDof_qdm_var_Visits", "", True), "C"),
        (("qdm_var_Visits_1", "qdm_var_Visits", "", True), None),
        (("occaof_qdm_var_Visits_1", "", "", True), None),
        # ordinary family, letter at offset 10
        (("OccurrenceA_Encounter_r1", "", "Encounter", False), "A"),
        (("Visit_r1", "OccurrenceBofEncounter", "Encounter", False), "B"),
        (("Visit_r1", "", "OccurrenceC_Encounter", False), "C"),
        (("Visit_r1", "", "OccurrenceDofEncounter", False), None),
        (("OccurrenceA_Other_r1", "", "Encounter", False), None),
        (("Visit_r1", "", "Encounter", False), None),
        # the source id is matched literally
        (("OccurrenceA_EncXPerf_r1", "", "Enc.Perf", False), None),
        (("OccurrenceE_Enc.Perf_r1", "", "Enc.Perf", False), "E"),
        # families do not cross over
        (("occAof_qdm_var_Visits_1", "", "Visits", False), None),
        (("OccurrenceA_Encounter_r1", "", "Encounter", True), None),
    ]

    def test_table(self):
        for args, expected in self.CASES:
            with self.subTest(args=args):
                self.assertEqual(obtain_occurrence_identifier(*args), expected)


SOURCE = encounter_entry("EncounterPerformed", root="d1")


class TestSpecificOccurrences(unittest.TestCase):
    def test_labelled_occurrence_sets_letter_and_const(self):
        occurrence = encounter_entry(
            "OccurrenceB_EncounterPerformed", root="d2", templates=(), value_set=None,
            extra=occurrence_relationship("EncounterPerformed", "d1"),
        )
        (source, criterion), context = resolve(SOURCE, occurrence)
        self.assertEqual(criterion.specific_occurrence, "B")
        self.assertEqual(criterion.specific_occurrence_const, "ENCOUNTERPERFORMED_D1")
        self.assertEqual(criterion.source_data_criteria, source.id)
        self.assertEqual(context.occurrences.as_dict(), {source.id: "B"})

    def test_first_occurrence_in_document_order_fixes_the_letter(self):
        first = encounter_entry(
            "OccurrenceB_EncounterPerformed", root="d2", templates=(), value_set=None,
            extra=occurrence_relationship("EncounterPerformed", "d1"),
        )
        second = encounter_entry(
            "FollowUp", root="d3", templates=(), value_set=None,
            extra=occurrence_relationship("EncounterPerformed", "d1"),
        )
        (_, first_criterion, second_criterion), context = resolve(SOURCE, first, second)
        self.assertEqual(first_criterion.specific_occurrence, "B")
        self.assertEqual(second_criterion.specific_occurrence, "B")

    def test_later_label_does_not_rewrite_the_map(self):
        first = encounter_entry(
            "OccurrenceA_EncounterPerformed", root="d2", templates=(), value_set=None,
            extra=occurrence_relationship("EncounterPerformed", "d1"),
        )
        second = encounter_entry(
            "OccurrenceC_EncounterPerformed", root="d3", templates=(), value_set=None,
            extra=occurrence_relationship("EncounterPerformed", "d1"),
        )
        (_, _, second_criterion), context = resolve(SOURCE, first, second)
        self.assertEqual(second_criterion.specific_occurrence, "C")
        self.assertEqual(context.occurrences.get("EncounterPerformed_d1"), "A")

    def test_unlabelled_occurrence_without_mapping_is_fatal(self):
        occurrence = encounter_entry(
            "FollowUp", root="d3", templates=(), value_set=None,
            extra=occurrence_relationship("EncounterPerformed", "d1"),
        )
        with self.assertRaises(MissingOccurrenceError):
            resolve(SOURCE, occurrence)

    def test_unlabelled_variable_occurrence_seeds_default_letter(self):
        variable = grouper_entry(
            "qdm_var_Visits_1", "v1", [("EncounterPerformed", "d1")],
            extra=occurrence_relationship("EncounterPerformed", "d1"),
        )
        (source, criterion), context = resolve(SOURCE, variable)
        self.assertEqual(criterion.specific_occurrence, "A")
        self.assertEqual(context.occurrences.get(source.id), "A")

    def test_occurrence_of_unregistered_source_is_ignored(self):
        occurrence = encounter_entry(
            "FollowUp", root="d3", templates=(), value_set=None,
            extra=occurrence_relationship("Missing", "m1"),
        )
        (criterion,), context = resolve(occurrence)
        self.assertIsNone(criterion.specific_occurrence)
        self.assertEqual(len(context.occurrences), 0)

    def test_source_relationship_records_source_only(self):
        extra = (
            '<outboundRelationship typeCode="SUBJ"><subsetCode code="SOURCE"/>'
            '<criteriaReference classCode="ENC" moodCode="EVN"><id root="d1" extension="EncounterPerformed"/></criteriaReference>'
            "</outboundRelationship>"
        )
        derived = encounter_entry("Derived", root="d4", extra=extra)
        (_, criterion), context = resolve(SOURCE, derived)
        self.assertEqual(criterion.source_data_criteria, "EncounterPerformed_d1")
        self.assertIsNone(criterion.specific_occurrence)
        self.assertEqual(len(context.occurrences), 0)


if __name__ == "__main__":
    unittest.main()
