import unittest

from sheet_mapper.combination import CombinationValidationError, FieldCombination, SourceField
from sheet_mapper.editor import CombinationEditor


def saved_combination(combination_id, target, *names):
    return FieldCombination(
        id=combination_id,
        target_field=target,
        source_fields=[SourceField(str(index), name, index) for index, name in enumerate(names, start=1)],
    )


class DraftTests(unittest.TestCase):
    def test_new_draft_is_seeded_and_completed(self):
        editor = CombinationEditor()
        draft = editor.begin_new(["first_name", "last_name"])
        self.assertEqual(draft.member_names, ["first_name"])
        draft.target_field = "Full Name"
        draft.add_member(["first_name", "last_name"])

        result = editor.complete()
        self.assertTrue(result.completed)
        self.assertIsNone(editor.draft)
        self.assertEqual(len(editor.combinations), 1)
        self.assertEqual(editor.combinations[0].id, result.combination.id)

    def test_invalid_draft_leaves_list_unchanged(self):
        editor = CombinationEditor()
        editor.begin_new(["first_name"])
        with self.assertRaises(CombinationValidationError):
            editor.complete()
        self.assertEqual(editor.combinations, [])
        self.assertIsNotNone(editor.draft)

    def test_cancel_discards_edits(self):
        editor = CombinationEditor([saved_combination("c1", "Full Name", "first", "last")])
        draft = editor.begin_edit("c1")
        draft.target_field = "Changed"
        result = editor.cancel()
        self.assertTrue(result.cancelled)
        self.assertIsNone(result.combination)
        self.assertEqual(editor.get("c1").target_field, "Full Name")

    def test_completed_edit_replaces_in_place(self):
        editor = CombinationEditor(
            [saved_combination("c1", "Full Name", "first", "last"), saved_combination("c2", "Address", "street", "city")]
        )
        draft = editor.begin_edit("c1")
        draft.target_field = "Name"
        editor.complete()
        self.assertEqual([item.target_field for item in editor.combinations], ["Name", "Address"])

    def test_complete_without_draft(self):
        with self.assertRaises(RuntimeError):
            CombinationEditor().complete()


class SuppressionTests(unittest.TestCase):
    def test_stale_sync_cannot_resurrect_deleted_combination(self):
        original = [saved_combination("c1", "Full Name", "first", "last"), saved_combination("c2", "Address", "street", "city")]
        editor = CombinationEditor(original)
        editor.delete("c1")

        refreshed = editor.sync(original)
        self.assertEqual([item.id for item in refreshed], ["c2"])
        self.assertEqual(editor.suppressed_ids, frozenset({"c1"}))

    def test_confirmed_removal_clears_suppression(self):
        original = [saved_combination("c1", "Full Name", "first", "last"), saved_combination("c2", "Address", "street", "city")]
        editor = CombinationEditor(original)
        editor.delete("c1")
        editor.sync(original[1:])
        self.assertEqual(editor.suppressed_ids, frozenset())

        restored = editor.sync(original)
        self.assertEqual([item.id for item in restored], ["c1", "c2"])

    def test_returned_lists_are_copies(self):
        editor = CombinationEditor([saved_combination("c1", "Full Name", "first", "last")])
        editor.combinations[0].target_field = "mutated"
        self.assertEqual(editor.get("c1").target_field, "Full Name")


if __name__ == "__main__":
    unittest.main()
