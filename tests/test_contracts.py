import re
import unittest
from pathlib import Path

from sheet_mapper.contracts import CONTRACT_VERSIONS, build_envelope, contract_header, utc_now_iso


class ContractTests(unittest.TestCase):
    def test_every_command_is_versioned(self):
        for command in ("parse", "suggest"):
            self.assertEqual(
                contract_header(command),
                {"name": f"sheet_mapper.{command}", "version": CONTRACT_VERSIONS[command]},
            )

    def test_unknown_command_raises(self):
        with self.assertRaises(KeyError):
            contract_header("version")

    def test_timestamp_is_utc_without_microseconds(self):
        self.assertRegex(utc_now_iso(), re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$"))


class EnvelopeTests(unittest.TestCase):
    def test_run_summary_counts_warnings(self):
        envelope = build_envelope(
            "parse",
            Path("people.csv"),
            warnings=["one", "two"],
            metrics={"row_count": 3},
        )
        summary = envelope["run_summary"]
        self.assertEqual(summary["tool"], "sheet-mapper")
        self.assertEqual(summary["command"], "parse")
        self.assertEqual(summary["status"], "ok")
        self.assertEqual(summary["input_file"], "people.csv")
        self.assertEqual(summary["warnings_count"], 2)
        self.assertEqual(summary["metrics"], {"row_count": 3})

    def test_body_keys_sit_beside_the_header(self):
        envelope = build_envelope("suggest", Path("a.csv"), status="no_match", suggestion=None, columns=["a"])
        self.assertEqual(envelope["contract"]["name"], "sheet_mapper.suggest")
        self.assertEqual(envelope["run_summary"]["status"], "no_match")
        self.assertIsNone(envelope["suggestion"])
        self.assertEqual(envelope["columns"], ["a"])

    def test_body_cannot_replace_the_header(self):
        with self.assertRaises(ValueError):
            build_envelope("parse", Path("a.csv"), contract={"name": "other"})


if __name__ == "__main__":
    unittest.main()
