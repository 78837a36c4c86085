from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from openpyxl import Workbook

from sheet_rapi.errors import ParseFailure
from sheet_rapi.loader import load_file, load_table
from sheet_rapi.ocr import OcrResult, table_from_text_lines


class LoaderTextTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmpdir = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, name: str, content: str, encoding: str = "utf-8") -> Path:
        path = self.tmpdir / name
        path.write_bytes(content.encode(encoding))
        return path

    def test_csv_with_numbers_coerced(self):
        path = self.write("sales.csv", "Qty,Price,Total\n2,250000,400000\n1,1.5,-3\n")
        result = load_file(path)
        table = result["table"]
        self.assertEqual(result["detected_format"], "csv")
        self.assertEqual(result["delimiter"], ",")
        self.assertEqual(table.headers, ("Qty", "Price", "Total"))
        self.assertEqual(table.rows[0].to_dict(), {"Qty": 2, "Price": 250000, "Total": 400000})
        self.assertEqual(table.rows[1].to_dict(), {"Qty": 1, "Price": 1.5, "Total": -3})
        self.assertEqual([row.source_line for row in table.rows], [2, 3])
        self.assertEqual(result["original_rows"], 3)

    def test_identifiers_keep_leading_zeros(self):
        path = self.write(
            "warga.csv",
            "NIK,Telepon,Kode\n3201011505990001,081234567890,007\n3201011505990002,081298765432,012\n",
        )
        row = load_table(path).rows[0]
        self.assertEqual(row["NIK"], "3201011505990001")
        self.assertEqual(row["Telepon"], "081234567890")
        self.assertEqual(row["Kode"], "007")

    def test_semicolon_delimiter(self):
        path = self.write("kota.csv", "Nama;Kota\nBudi;Jakarta\nSiti;Bandung\n")
        result = load_file(path)
        self.assertEqual(result["delimiter"], ";")
        self.assertEqual(result["table"].column("Kota"), ["Jakarta", "Bandung"])

    def test_tsv(self):
        path = self.write("kota.tsv", "Nama\tKota\nBudi\tJakarta\nSiti\tBandung\n")
        result = load_file(path)
        self.assertEqual(result["delimiter"], "\t")
        self.assertEqual(result["table"].headers, ("Nama", "Kota"))

    def test_delimited_txt(self):
        path = self.write("kota.txt", "Nama|Kota\nBudi|Jakarta\nSiti|Bandung\n")
        self.assertEqual(load_table(path).column("Nama"), ["Budi", "Siti"])

    def test_plain_txt_is_rejected(self):
        path = self.write("notes.txt", "This is a text file.\nNothing tabular lives here.\n")
        with self.assertRaisesRegex(ParseFailure, "does not appear to contain delimited/tabular data"):
            load_file(path)

    def test_blank_header_becomes_generated_name(self):
        path = self.write("gap.csv", "Nama,,Kota\nBudi,x,Jakarta\nSiti,y,Bandung\n")
        self.assertEqual(load_table(path).headers, ("Nama", "Column_2", "Kota"))

    def test_utf8_bom_is_stripped(self):
        path = self.write("bom.csv", "Nama,Kota\nBudi,Jakarta\nSiti,Bandung\n", encoding="utf-8-sig")
        result = load_file(path)
        self.assertEqual(result["table"].headers, ("Nama", "Kota"))
        self.assertTrue(result["encoding_info"]["is_utf8"])

    def test_empty_file(self):
        path = self.write("empty.csv", "")
        with self.assertRaisesRegex(ParseFailure, "is empty"):
            load_file(path)

    def test_unsupported_format(self):
        path = self.write("data.json", "[]")
        with self.assertRaisesRegex(ParseFailure, "Unsupported format '.json'"):
            load_file(path)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_file(self.tmpdir / "missing.csv")


class LoaderWorkbookTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "book.xlsx"
        wb = Workbook()
        first = wb.active
        first.title = "Penjualan"
        first.append(["Produk", "Qty"])
        first.append(["Kopi", 3])
        first.append(["Teh", 5])
        second = wb.create_sheet("Stok")
        second.append(["Produk", "Stok"])
        second.append(["Kopi", 10])
        wb.save(self.path)

    def tearDown(self):
        self._tmp.cleanup()

    def test_first_sheet_is_read_with_warning(self):
        with self.assertLogs("sheet_rapi.loader", level="WARNING"):
            result = load_file(self.path)
        self.assertEqual(result["sheet_name"], "Penjualan")
        self.assertEqual(result["sheet_names"], ["Penjualan", "Stok"])
        self.assertEqual(result["table"].column("Qty"), [3, 5])
        self.assertIn("Multiple sheets found", result["warnings"][0])

    def test_named_sheet(self):
        result = load_file(self.path, sheet_name="Stok")
        self.assertEqual(result["table"].headers, ("Produk", "Stok"))
        self.assertEqual(result["warnings"], [])

    def test_unknown_sheet(self):
        with self.assertRaisesRegex(ParseFailure, "Sheet 'Gudang' not found"):
            load_file(self.path, sheet_name="Gudang")

    def test_corrupt_workbook(self):
        corrupt = Path(self._tmp.name) / "corrupt.xlsx"
        corrupt.write_bytes(b"not-a-real-workbook")
        with self.assertRaisesRegex(ParseFailure, "Could not read workbook"):
            load_file(corrupt)


class LoaderImageTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "nota.png"
        self.path.write_bytes(b"\x89PNG\r\n\x1a\n")

    def tearDown(self):
        self._tmp.cleanup()

    def test_scanned_table_is_loaded(self):
        table, detected, warnings = table_from_text_lines("Produk\tQty\tHarga\nKopi\t3\t9750\nTeh\t2\t8250\n")
        scanned = OcrResult(success=True, table=table, table_detected=detected, confidence=65.0, warnings=warnings)
        with mock.patch("sheet_rapi.ocr.extract_table", return_value=scanned):
            result = load_file(self.path)

        self.assertEqual(result["detected_format"], "png")
        self.assertEqual(result["table"].headers, ("Produk", "Qty", "Harga"))
        self.assertEqual(result["table"].rows[0].to_dict(), {"Produk": "Kopi", "Qty": 3, "Harga": 9750})
        self.assertEqual(result["table"].rows[1].source_line, 3)
        self.assertEqual(len(result["warnings"]), 1)
        self.assertIn("OCR confidence is low", result["warnings"][0])

    def test_prose_image_warns_about_missing_layout(self):
        table, detected, _ = table_from_text_lines("Terima kasih\nSampai jumpa\n")
        scanned = OcrResult(success=True, table=table, table_detected=detected, confidence=95.0)
        with mock.patch("sheet_rapi.ocr.extract_table", return_value=scanned):
            result = load_file(self.path)
        self.assertEqual(result["table"].headers, ("No", "Content"))
        self.assertEqual(result["warnings"], ["No table layout found; each line of text became a row"])

    def test_missing_ocr_stack_is_a_parse_failure(self):
        with mock.patch("sheet_rapi.ocr.is_available", return_value=False):
            with self.assertRaisesRegex(ParseFailure, r"sheet-rapi\[ocr\]"):
                load_file(self.path)

    def test_blank_image_is_a_parse_failure(self):
        empty = OcrResult(success=True, table=table_from_text_lines("")[0], confidence=0.0)
        with mock.patch("sheet_rapi.ocr.extract_table", return_value=empty):
            with self.assertRaisesRegex(ParseFailure, "No text found"):
                load_file(self.path)


if __name__ == "__main__":
    unittest.main()
