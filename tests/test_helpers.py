import unittest
from datetime import date, datetime

from sheet_rapi.helpers import (
    apply_text_case,
    calculate_stats,
    detect_case_style,
    detect_date_pattern,
    fix_email,
    format_currency,
    format_date,
    format_nik,
    format_npwp,
    format_number,
    format_phone,
    index_quartiles,
    is_formatted_npwp,
    is_valid_email,
    is_valid_npwp,
    is_valid_phone,
    parse_date,
    parse_number,
    round_half_up,
    string_similarity,
    to_sentence_case,
    to_title_case,
    validate_nik,
)


class NumberParsingTests(unittest.TestCase):
    def test_rupiah_with_dot_thousands(self):
        self.assertEqual(parse_number("Rp 1.500.000"), 1500000.0)
        self.assertEqual(parse_number("IDR 2.000"), 2000.0)

    def test_indonesian_and_us_decimal_styles(self):
        self.assertAlmostEqual(parse_number("1.234.567,89"), 1234567.89)
        self.assertAlmostEqual(parse_number("1,234,567.89"), 1234567.89)
        self.assertAlmostEqual(parse_number("12,5"), 12.5)

    def test_single_dot_group_is_decimal_without_currency_marker(self):
        self.assertEqual(parse_number("1.500"), 1.5)
        self.assertEqual(parse_number("Rp 1.500"), 1500.0)

    def test_negative_amounts(self):
        self.assertEqual(parse_number("-Rp 2.000"), -2000.0)
        self.assertEqual(parse_number("-15"), -15.0)

    def test_non_numbers_return_none(self):
        for value in ("abc", "", "   ", None, True, "12abc"):
            with self.subTest(value=value):
                self.assertIsNone(parse_number(value))

    def test_native_numbers_pass_through(self):
        self.assertEqual(parse_number(42), 42.0)
        self.assertIsNone(parse_number(float("nan")))


class FormattingTests(unittest.TestCase):
    def test_round_half_up_differs_from_bankers_rounding(self):
        self.assertEqual(round_half_up(2.5), 3.0)
        self.assertEqual(round_half_up(1.005, 2), 1.01)

    def test_format_number_uses_indonesian_grouping(self):
        self.assertEqual(format_number(1234567), "1.234.567")
        self.assertEqual(format_number(1234567.891, 2), "1.234.567,89")
        self.assertEqual(format_number(-1500), "-1.500")

    def test_format_currency(self):
        self.assertEqual(format_currency(1500000), "Rp 1.500.000")
        self.assertEqual(format_currency("1500000"), "Rp 1.500.000")
        self.assertEqual(format_currency("Rp 1.500.000"), "Rp 1.500.000")
        self.assertEqual(format_currency(1234.5), "Rp 1.235")
        self.assertEqual(format_currency(1500, with_symbol=False), "1.500")

    def test_format_currency_leaves_text_alone(self):
        self.assertEqual(format_currency("gratis"), "gratis")


class DateTests(unittest.TestCase):
    def test_supported_spellings_parse_to_the_same_day(self):
        expected = datetime(2024, 1, 15)
        for value in ("2024-01-15", "15/01/2024", "15-01-2024", "15-01-24", "15 Januari 2024", "15-Jan-2024", "2024/01/15"):
            with self.subTest(value=value):
                self.assertEqual(parse_date(value), expected)

    def test_two_digit_year_pivot(self):
        self.assertEqual(parse_date("15-01-99").year, 1999)
        self.assertEqual(parse_date("15-01-49").year, 2049)

    def test_digit_strings_and_impossible_dates_are_not_dates(self):
        self.assertIsNone(parse_date("20240115"))
        self.assertIsNone(parse_date("31/02/2024"))
        self.assertIsNone(parse_date("not a date"))

    def test_spreadsheet_serial_numbers(self):
        self.assertEqual(parse_date(45306), datetime(2024, 1, 15))

    def test_native_dates(self):
        self.assertEqual(parse_date(date(2024, 1, 15)), datetime(2024, 1, 15))

    def test_format_date_targets(self):
        self.assertEqual(format_date("2024-01-15"), "15-Jan-2024")
        self.assertEqual(format_date("15/01/2024", "YYYY-MM-DD"), "2024-01-15")
        self.assertEqual(format_date("2024-01-15", "DD/MM/YYYY"), "15/01/2024")
        self.assertEqual(format_date("2024-01-15", "DD MMMM YYYY"), "15 January 2024")
        self.assertEqual(format_date("someday"), "someday")

    def test_detect_date_pattern(self):
        self.assertEqual(detect_date_pattern("2024-01-15"), "YYYY-MM-DD")
        self.assertEqual(detect_date_pattern("15/01/2024"), "DD/MM/YYYY")
        self.assertEqual(detect_date_pattern("15-01-2024"), "DD-MM-YYYY")
        self.assertEqual(detect_date_pattern("15-Jan-2024"), "DD-MMM-YYYY")
        self.assertEqual(detect_date_pattern("15 Januari 2024"), "DD MMM YYYY")
        self.assertEqual(detect_date_pattern("Jan 15, 2024"), "OTHER")


class ContactTests(unittest.TestCase):
    def test_email_validation(self):
        self.assertTrue(is_valid_email("budi@contoh.co.id"))
        self.assertFalse(is_valid_email("budi@contoh..com"))
        self.assertFalse(is_valid_email("budi"))

    def test_fix_email(self):
        self.assertEqual(fix_email(" Foo@@Bar..com "), "foo@bar.com")
        self.assertEqual(fix_email("budi@contoh.com."), "budi@contoh.com")

    def test_phone_validation(self):
        self.assertTrue(is_valid_phone("081234567890"))
        self.assertTrue(is_valid_phone("+62 812-3456-7890"))
        self.assertFalse(is_valid_phone("12345"))
        self.assertFalse(is_valid_phone("0212345"))
        self.assertTrue(is_valid_phone("0812345678901"))
        self.assertFalse(is_valid_phone("08123456789012"))

    def test_format_phone(self):
        self.assertEqual(format_phone("081234567890"), "+62 812-3456-7890")
        self.assertEqual(format_phone("6281234567890"), "+62 812-3456-7890")
        self.assertEqual(format_phone("+62 812-3456-7890"), "+62 812-3456-7890")
        self.assertEqual(format_phone("12345"), "12345")
        self.assertEqual(format_phone("0812345678901"), "+62 812-3456-78901")

    def test_formatted_phones_stay_valid(self):
        for raw in ("8123456789", "081234567890", "0812345678901", "6281234567890", "+62 812 3456 7890"):
            with self.subTest(phone=raw):
                self.assertTrue(is_valid_phone(raw))
                formatted = format_phone(raw)
                self.assertTrue(is_valid_phone(formatted))
                self.assertEqual(format_phone(formatted), formatted)


class IdentityDocumentTests(unittest.TestCase):
    def test_valid_male_nik_is_decoded(self):
        result = validate_nik("3201011505990001")
        self.assertTrue(result.is_valid)
        self.assertEqual(result.errors, ())
        self.assertEqual(result.province, "Jawa Barat")
        self.assertEqual(result.province_code, "32")
        self.assertEqual(result.gender, "Male")
        self.assertEqual(result.birth_date, date(1999, 5, 15))
        self.assertEqual(result.sequence, "0001")

    def test_female_nik_has_forty_added_to_the_day(self):
        result = validate_nik("3201015505990001")
        self.assertTrue(result.is_valid)
        self.assertEqual(result.gender, "Female")
        self.assertEqual(result.birth_date, date(1999, 5, 15))

    def test_invalid_niks(self):
        self.assertEqual(validate_nik("12345").errors, ("Invalid length: 5 (should be 16)",))
        self.assertIn("Invalid province code: 99", validate_nik("9901011505990001").errors)
        self.assertIn("Invalid birth date in NIK", validate_nik("3201013102990001").errors)

    def test_format_nik(self):
        self.assertEqual(format_nik("3201011505990001"), "320101.150599.0001")
        self.assertEqual(format_nik("123"), "123")

    def test_formatted_nik_survives_reformatting(self):
        for nik in ("3201011505990001", "3201015505990001", "3173047112850123", "5171020101000002"):
            with self.subTest(nik=nik):
                self.assertTrue(validate_nik(nik).is_valid)
                formatted = format_nik(nik)
                self.assertEqual(format_nik(formatted.replace(".", "")), formatted)
                self.assertEqual(format_nik(formatted), formatted)

    def test_npwp(self):
        self.assertTrue(is_valid_npwp("012345678901234"))
        self.assertFalse(is_valid_npwp("1234"))
        self.assertEqual(format_npwp("012345678901234"), "01.234.567.8-901.234")
        self.assertTrue(is_formatted_npwp("01.234.567.8-901.234"))
        self.assertFalse(is_formatted_npwp("012345678901234"))


class TextCaseTests(unittest.TestCase):
    def test_case_conversions(self):
        self.assertEqual(to_title_case("budi SANTOSO"), "Budi Santoso")
        self.assertEqual(to_sentence_case("hELLO world"), "Hello world")
        self.assertEqual(apply_text_case("Budi", "upper"), "BUDI")
        with self.assertRaises(ValueError):
            apply_text_case("Budi", "shouting")

    def test_detect_case_style(self):
        self.assertEqual(detect_case_style("JAKARTA"), "upper")
        self.assertEqual(detect_case_style("jakarta"), "lower")
        self.assertEqual(detect_case_style("Jakarta Selatan"), "title")
        self.assertEqual(detect_case_style("jaKarta"), "mixed")
        self.assertIsNone(detect_case_style("123"))


class SimilarityAndStatsTests(unittest.TestCase):
    def test_string_similarity(self):
        self.assertEqual(string_similarity("Budi ", "budi"), 1.0)
        self.assertEqual(string_similarity("abc", "xyz"), 0.0)
        self.assertAlmostEqual(string_similarity("kitten", "sitting"), 1 - 3 / 7)

    def test_calculate_stats_uses_population_std_dev(self):
        stats = calculate_stats([1, 2, 3, "4"])
        self.assertEqual(stats["count"], 4)
        self.assertEqual(stats["sum"], 10.0)
        self.assertEqual(stats["average"], 2.5)
        self.assertEqual(stats["median"], 2.5)
        self.assertAlmostEqual(stats["std_dev"], 1.25 ** 0.5)

    def test_calculate_stats_without_numbers(self):
        self.assertEqual(calculate_stats(["a", ""])["count"], 0)

    def test_index_quartiles(self):
        self.assertEqual(index_quartiles([8, 7, 6, 5, 4, 3, 2, 1]), (3, 7))


if __name__ == "__main__":
    unittest.main()
