import unittest

from recommendations import STRUCTURE_CATALOG, find_structure, get_purification_recommendations


class TestStructureCatalog(unittest.TestCase):
    def test_exact_match_is_case_insensitive(self):
        self.assertEqual("Recharge pit", find_structure("  RECHARGE PIT ")["name"])

    def test_exact_match_wins_over_substring(self):
        self.assertEqual("Soak pit", find_structure("soak pit")["name"])
        self.assertEqual("Recharge pit", find_structure("pit")["name"])

    def test_substring_match(self):
        self.assertEqual("Infiltration gallery", find_structure("gallery")["name"])

    def test_no_match(self):
        self.assertIsNone(find_structure("pyramid"))
        self.assertIsNone(find_structure(""))
        self.assertIsNone(find_structure(None))

    def test_every_entry_is_complete(self):
        keys = {"name", "description", "suitability", "typical_dims", "materials", "est_cost", "maintenance"}
        for structure in STRUCTURE_CATALOG:
            with self.subTest(structure=structure["name"]):
                self.assertEqual(keys, set(structure))


class TestPurificationRecommendations(unittest.TestCase):
    def test_drinking_water_gets_disinfection(self):
        plan = get_purification_recommendations("Drinking", "concrete")

        self.assertIn("UV disinfection or chlorination", plan["treatment_sequence"])
        self.assertEqual("Potable", plan["water_quality_expected"])

    def test_gardening_gets_basic_treatment(self):
        plan = get_purification_recommendations("gardening", "metal")

        self.assertIn("Simple sand-gravel filter", plan["treatment_sequence"])
        self.assertEqual("Non-potable suitable", plan["water_quality_expected"])

    def test_general_use_default(self):
        plan = get_purification_recommendations(None, "tile")

        self.assertEqual("Bi-monthly cleaning", plan["maintenance_schedule"])
        self.assertEqual(4, len(plan["treatment_sequence"]))

    def test_asphalt_roof_adds_carbon_prefilter(self):
        asphalt = get_purification_recommendations("general", "asphalt")
        concrete = get_purification_recommendations("general", "concrete")

        self.assertEqual(len(concrete["treatment_sequence"]) + 1, len(asphalt["treatment_sequence"]))


if __name__ == "__main__":
    unittest.main()
