import unittest

from sheet_rapi.column_detector import (
    classify_cell,
    infer_column_type,
    infer_column_types,
    profile_column,
    profile_columns,
)
from sheet_rapi.table import Table


class ClassifyCellTests(unittest.TestCase):
    def test_each_cell_kind(self):
        cases = {
            "budi@contoh.co.id": "email",
            "3201011505990001": "nik",
            "01.234.567.8-901.234": "npwp",
            "Rp 1.500.000": "currency",
            "081234567890": "phone",
            "+62 812-3456-7890": "phone",
            "12,5%": "percentage",
            "0.25": "percentage",
            "15/01/2024": "date",
            "15 Januari 2024": "date",
            "1.000.000": "number",
            500000: "number",
            "ya": "boolean",
            "Budi Santoso": "string",
        }
        for value, expected in cases.items():
            with self.subTest(value=value):
                self.assertEqual(classify_cell(value), expected)


class InferColumnTypeTests(unittest.TestCase):
    def test_majority_vote_and_confidence(self):
        info = infer_column_type(["2024-01-15", "15/01/2024", "15-Jan-2024", "TBD"])
        self.assertEqual(info.type, "date")
        self.assertEqual(info.confidence, 0.75)
        self.assertEqual(info.sample_size, 4)
        self.assertEqual(info.distribution, {"date": 3, "string": 1})

    def test_blank_cells_do_not_vote(self):
        info = infer_column_type(["Rp 10.000", "", None, "  "])
        self.assertEqual(info.type, "currency")
        self.assertEqual(info.confidence, 1.0)
        self.assertEqual(info.sample_size, 1)

    def test_empty_column(self):
        info = infer_column_type(["", None])
        self.assertEqual(info.type, "empty")
        self.assertEqual(info.confidence, 1.0)
        self.assertEqual(info.sample_size, 0)

    def test_ties_go_to_the_earlier_type(self):
        self.assertEqual(infer_column_type(["a@b.com", "Budi"]).type, "email")
        self.assertEqual(infer_column_type(["Budi", "12"]).type, "number")

    def test_infer_column_types_per_header(self):
        table = Table.from_records(
            ["Nama", "Email", "Total"],
            [
                {"Nama": "Budi", "Email": "budi@contoh.com", "Total": "Rp 10.000"},
                {"Nama": "Siti", "Email": "siti@contoh.com", "Total": "Rp 20.000"},
            ],
        )
        types = infer_column_types(table.headers, table.rows)
        self.assertEqual({header: info.type for header, info in types.items()}, {
            "Nama": "string",
            "Email": "email",
            "Total": "currency",
        })
        self.assertEqual(types["Email"].to_dict()["confidence"], 1.0)


class ProfileTests(unittest.TestCase):
    def test_numeric_profile(self):
        profile = profile_column([10, 20, 30, ""], "number")
        self.assertEqual(profile.total_count, 4)
        self.assertEqual(profile.non_empty_count, 3)
        self.assertEqual(profile.empty_count, 1)
        self.assertEqual(profile.empty_percentage, 25.0)
        self.assertEqual(profile.unique_count, 3)
        self.assertEqual(profile.numeric["average"], 20.0)

    def test_percentage_profile_strips_percent_sign(self):
        profile = profile_column(["10%", "20%"], "percentage")
        self.assertEqual(profile.numeric["sum"], 30.0)

    def test_text_profile_has_no_numeric_block(self):
        profile = profile_column(["a", "a", "b"], "string")
        self.assertIsNone(profile.numeric)
        self.assertEqual(profile.most_common[0], ("a", 2))
        self.assertIsNone(profile.to_dict()["numeric"])

    def test_profile_columns_covers_every_header(self):
        table = Table.from_rows(["A", "B"], [["x", 1], ["y", 2]])
        profiles = profile_columns(table, infer_column_types(table.headers, table.rows))
        self.assertEqual(set(profiles), {"A", "B"})
        self.assertEqual(profiles["B"].numeric["max"], 2.0)


if __name__ == "__main__":
    unittest.main()
