import codecs
import json
import tempfile
import unittest
from pathlib import Path

from sheet_mapper.config import DEFAULT_CONFIG, ParseOptions
from sheet_mapper.models import DataType
from sheet_mapper.parser import UnsupportedFileType, load_table, parse_bytes, parse_path


def field_types(outcome):
    return {field.name: field.data_type for field in outcome.fields}


class DelimitedParseTests(unittest.TestCase):
    def test_small_file_with_header(self):
        outcome = parse_bytes(b"id,Name\n1,John\n2,Jane\n", "people.csv")

        self.assertTrue(outcome.success, outcome.error)
        self.assertEqual(outcome.detected_delimiter, ",")
        self.assertTrue(outcome.has_header)
        self.assertEqual(outcome.row_count, 2)
        self.assertEqual(outcome.columns, ["id", "Name"])
        by_name = {field.name: field for field in outcome.fields}
        self.assertEqual(by_name["id"].data_type, DataType.NUMBER)
        self.assertEqual(by_name["id"].confidence, 1.0)
        self.assertEqual(by_name["Name"].data_type, DataType.TEXT)
        self.assertEqual(by_name["Name"].confidence, 1.0)
        self.assertEqual(outcome.preview_rows[0], ("id", "Name"))
        self.assertEqual(len(outcome.preview_rows), 3)
        self.assertIn(
            "Header row detection was automatic. Verify this is correct for your file.",
            outcome.warnings,
        )

    def test_header_only_file_succeeds_with_zero_rows(self):
        outcome = parse_bytes(b"name,email\n", "empty.csv")
        self.assertTrue(outcome.success, outcome.error)
        self.assertEqual(outcome.row_count, 0)
        self.assertTrue(any("No sample data found for: name, email" in w for w in outcome.warnings))
        self.assertFalse(any(w.startswith("Low confidence") for w in outcome.warnings))

    def test_semicolon_file_with_crlf(self):
        content = b"date;amount;currency\r\n2024-01-05;$12.50;USD\r\n2024-01-06;$3.00;USD\r\n"
        outcome = parse_bytes(content, "bank.txt")
        self.assertEqual(outcome.detected_delimiter, ";")
        self.assertEqual(
            field_types(outcome),
            {"date": DataType.DATE, "amount": DataType.CURRENCY, "currency": DataType.TEXT},
        )

    def test_no_header_gets_synthetic_names(self):
        outcome = parse_bytes(b"1,2\n3,4\n", "numbers.csv")
        self.assertFalse(outcome.has_header)
        self.assertEqual(outcome.columns, ["Column_1", "Column_2"])
        self.assertEqual(outcome.row_count, 2)
        self.assertEqual(outcome.preview_rows[0], ("1", "2"))

    def test_forced_options_skip_detection(self):
        options = ParseOptions(delimiter="|", has_header=False)
        outcome = parse_bytes(b"name|city\nAnn|Oslo\n", "forced.csv", options)
        self.assertEqual(outcome.detected_delimiter, "|")
        self.assertFalse(outcome.has_header)
        self.assertEqual(outcome.row_count, 2)
        self.assertNotIn(
            "Header row detection was automatic. Verify this is correct for your file.",
            outcome.warnings,
        )

    def test_quoted_multiline_cells(self):
        content = b'id,note\n1,"first line\nsecond line"\n2,"said ""hi"""\n'
        outcome = parse_bytes(content, "notes.csv")
        self.assertTrue(outcome.has_quoted_fields)
        self.assertEqual(outcome.row_count, 2)
        self.assertEqual(outcome.preview_rows[1], ("1", "first line\nsecond line"))
        self.assertEqual(outcome.preview_rows[2], ("2", 'said "hi"'))

    def test_sample_and_preview_limits(self):
        lines = ["id,name"] + [f"{index},user{index}" for index in range(30)]
        content = ("\n".join(lines) + "\n").encode("utf-8")
        outcome = parse_bytes(content, "big.csv", ParseOptions(max_rows=10, max_preview_rows=5))
        self.assertEqual(outcome.row_count, 30)
        self.assertEqual(len(outcome.preview_rows), 6)
        self.assertTrue(any(w.startswith("Analysis based on 10 sample rows of 30") for w in outcome.warnings))

    def test_misaligned_rows_are_skipped_with_warning(self):
        outcome = parse_bytes(b"id,name\n1,Ann\n2\n3,Bob,extra\n4,Cy\n", "ragged.csv")
        self.assertEqual(outcome.row_count, 4)
        self.assertEqual(len(outcome.preview_rows), 3)
        self.assertTrue(any(w.startswith("2 rows skipped") for w in outcome.warnings))

    def test_low_confidence_warning(self):
        outcome = parse_bytes(b"id,when\n1,2024-01-05\n2,later\n3,someday\n", "dates.csv")
        self.assertEqual(field_types(outcome)["when"], DataType.DATE)
        self.assertTrue(any(w == "Low confidence in data type detection for: when" for w in outcome.warnings))

    def test_bom_is_reported(self):
        outcome = parse_bytes(codecs.BOM_UTF8 + b"id,name\n1,Ann\n", "bom.csv")
        self.assertTrue(outcome.has_bom)
        self.assertEqual(outcome.detected_encoding, "utf-8")
        self.assertEqual(outcome.columns, ["id", "name"])

    def test_space_aligned_text_file(self):
        content = b"Date        Description        Amount\n2024-01-02  Coffee shop        4.50\n"
        outcome = parse_bytes(content, "statement.txt")
        self.assertTrue(outcome.success, outcome.error)
        self.assertEqual(outcome.detected_delimiter, "  ")
        self.assertEqual(outcome.columns, ["Date", "Description", "Amount"])
        self.assertEqual(outcome.preview_rows[1], ("2024-01-02", "Coffee shop", "4.50"))
        self.assertEqual(field_types(outcome)["Date"], DataType.DATE)
        self.assertEqual(field_types(outcome)["Amount"], DataType.NUMBER)

    def test_space_aligned_csv_stays_one_column(self):
        outcome = parse_bytes(b"Date        Amount\n2024-01-02  4.50\n", "statement.csv")
        self.assertEqual(outcome.detected_delimiter, ",")
        self.assertEqual(len(outcome.columns), 1)


class ParseFailureTests(unittest.TestCase):
    def test_empty_file(self):
        outcome = parse_bytes(b"", "empty.csv")
        self.assertFalse(outcome.success)
        self.assertEqual(outcome.error, "File is empty")
        self.assertEqual(outcome.fields, ())

    def test_unsupported_extension(self):
        outcome = parse_bytes(b"a,b", "book.xlsx")
        self.assertFalse(outcome.success)
        self.assertEqual(outcome.error, "Unsupported file type: xlsx")

    def test_missing_extension(self):
        outcome = parse_bytes(b"a,b", "README")
        self.assertEqual(outcome.error, "Unsupported file type: [missing extension]")

    def test_oversized_upload(self):
        config = DEFAULT_CONFIG.replace(max_upload_bytes=4)
        outcome = parse_bytes(b"a,b\n1,2\n", "big.csv", config=config)
        self.assertFalse(outcome.success)
        self.assertIn("exceeds limit of 4 bytes", outcome.error)

    def test_decode_failure_is_an_outcome(self):
        outcome = parse_bytes(b"a,b\n\xff,1\n", "bad.csv", ParseOptions(encoding="utf-8"))
        self.assertFalse(outcome.success)
        self.assertTrue(outcome.error.startswith("Failed to decode file:"))

    def test_malformed_json(self):
        outcome = parse_bytes(b"{not json", "broken.json")
        self.assertFalse(outcome.success)
        self.assertTrue(outcome.error.startswith("JSON parsing error:"))
        self.assertEqual(outcome.detected_encoding, "utf-8")

    def test_empty_json_array(self):
        outcome = parse_bytes(b"[]", "empty.json")
        self.assertEqual(outcome.error, "JSON array is empty")

    def test_json_without_columns(self):
        outcome = parse_bytes(b"[1, 2, 3]", "scalars.json")
        self.assertEqual(outcome.error, "No columns found in JSON records")

    def test_deeply_nested_json_array(self):
        outcome = parse_bytes(b"[" * 100000 + b"]" * 100000, "deep.json")
        self.assertFalse(outcome.success)
        self.assertEqual(outcome.error, "JSON nesting too deep")

    def test_deeply_nested_json_object(self):
        outcome = parse_bytes(b"{\"a\":" * 3000 + b"1" + b"}" * 3000, "deep.json")
        self.assertFalse(outcome.success)
        self.assertEqual(outcome.error, "JSON nesting too deep")

    def test_scalar_json_document(self):
        outcome = parse_bytes(b'"text"', "scalar.json")
        self.assertFalse(outcome.success)


class JsonParseTests(unittest.TestCase):
    def test_top_level_records(self):
        payload = [
            {"id": 1, "name": "Ann", "active": True},
            {"id": 2, "name": "Bob", "active": False, "tags": ["a", "b", "c", "d"]},
        ]
        outcome = parse_bytes(json.dumps(payload).encode("utf-8"), "people.json")
        self.assertTrue(outcome.success, outcome.error)
        self.assertIsNone(outcome.detected_delimiter)
        self.assertIsNone(outcome.has_header)
        self.assertEqual(outcome.columns, ["id", "name", "active", "tags"])
        self.assertEqual(field_types(outcome)["active"], DataType.BOOLEAN)
        self.assertEqual(outcome.preview_rows[0], ("id", "name", "active", "tags"))
        self.assertEqual(outcome.preview_rows[2][3], "a, b, c...")

    def test_nested_record_array(self):
        payload = {"status": "ok", "data": {"transactions": [{"amount": "$5"}, {"amount": "$7"}]}}
        outcome = parse_bytes(json.dumps(payload).encode("utf-8"), "api.json")
        self.assertEqual(outcome.row_count, 2)
        self.assertEqual(outcome.columns, ["amount"])
        self.assertTrue(outcome.warnings[0].startswith('Found nested array at path: "data.transactions"'))

    def test_single_object(self):
        outcome = parse_bytes(b'{"name": "Ann", "city": "Oslo"}', "one.json")
        self.assertEqual(outcome.row_count, 1)
        self.assertEqual(outcome.columns, ["name", "city"])

    def test_row_count_reports_every_record(self):
        payload = [{"n": index} for index in range(150)]
        outcome = parse_bytes(json.dumps(payload).encode("utf-8"), "many.json")
        self.assertEqual(outcome.row_count, 150)
        self.assertEqual(len(outcome.preview_rows), 51)


class ParsePathTests(unittest.TestCase):
    def test_reads_from_disk(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "people.csv"
            path.write_text("id,name\n1,Ann\n", encoding="utf-8")
            outcome = parse_path(path)
        self.assertTrue(outcome.success)

    def test_missing_file_raises(self):
        with self.assertRaises(FileNotFoundError):
            parse_path("/nonexistent/people.csv")


class LoadTableTests(unittest.TestCase):
    def test_delimited_table_keeps_every_row(self):
        lines = ["id,name"] + [f"{index},user{index}" for index in range(200)] + ["201"]
        table = load_table(("\n".join(lines)).encode("utf-8"), "all.csv")
        self.assertEqual(table.columns, ["id", "name"])
        self.assertEqual(len(table.dataframe), 201)
        self.assertEqual(table.records[-1], {"id": "201", "name": ""})
        self.assertEqual(table.detected_delimiter, ",")

    def test_json_table_uses_key_union(self):
        payload = [{"a": 1}] * 12 + [{"a": 2, "late": "x"}]
        table = load_table(json.dumps(payload).encode("utf-8"), "rows.json")
        self.assertEqual(table.columns, ["a", "late"])
        self.assertEqual(table.records[-1], {"a": "2", "late": "x"})

    def test_invalid_json_gives_empty_table(self):
        table = load_table(b"{oops", "bad.json")
        self.assertEqual(table.columns, [])
        self.assertTrue(table.dataframe.empty)

    def test_deeply_nested_json_gives_empty_table(self):
        table = load_table(b"{\"a\":" * 3000 + b"1" + b"}" * 3000, "deep.json")
        self.assertEqual(table.columns, [])
        self.assertTrue(table.dataframe.empty)

    def test_space_aligned_text_table(self):
        content = b"Date        Description        Amount\n2024-01-02  Coffee shop        4.50\n"
        table = load_table(content, "statement.txt")
        self.assertEqual(table.columns, ["Date", "Description", "Amount"])
        self.assertEqual(table.records, [{"Date": "2024-01-02", "Description": "Coffee shop", "Amount": "4.50"}])

    def test_unsupported_extension_raises(self):
        with self.assertRaises(UnsupportedFileType):
            load_table(b"x", "file.pdf")


if __name__ == "__main__":
    unittest.main()
