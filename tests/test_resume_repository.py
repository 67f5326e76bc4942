import sys
import tempfile
import unittest
from datetime import timedelta
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.schemas.resume import ResumeRecord  # noqa: E402
from app.storage.resume_repository import ResumeRepository  # noqa: E402
from resume_fixtures import NOW, sample_records  # noqa: E402


def _ids(records):
    return sorted(record.id for record in records)


class ResumeRepositoryTests(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.repo = ResumeRepository(str(Path(self.tmp_dir.name) / "nested" / "resumes.db"))
        for record in sample_records():
            self.repo.save(record)

    def tearDown(self):
        self.repo.close()
        self.tmp_dir.cleanup()

    def test_round_trip_preserves_profile_and_payload(self):
        original = sample_records()[0]
        loaded = self.repo.find_by_id("r1")
        self.assertIsNotNone(loaded)
        self.assertEqual(loaded.original_file_data, original.original_file_data)
        self.assertEqual(loaded.uploaded_at, original.uploaded_at)
        self.assertEqual(loaded.skills.programming_languages, ["Python", "Go"])
        self.assertEqual(loaded.experience[0].company_name, "Acme Corp")
        self.assertEqual(loaded.education[0].institution, "UT Austin")

    def test_missing_id_returns_none(self):
        self.assertIsNone(self.repo.find_by_id("missing"))
        self.assertFalse(self.repo.delete_by_id("missing"))

    def test_save_keeps_original_upload_timestamp(self):
        original = self.repo.find_by_id("r1")
        updated = original.model_copy(update={"city": "Dallas", "uploaded_at": NOW})
        saved = self.repo.save(updated)
        self.assertEqual(saved.city, "Dallas")
        self.assertEqual(saved.uploaded_at, original.uploaded_at)
        self.assertEqual(self.repo.count(), 5)

    def test_equality_lookups_ignore_case(self):
        self.assertEqual(_ids(self.repo.find_by_city("AUSTIN")), ["r1", "r2"])
        self.assertEqual(_ids(self.repo.find_by_state("tx")), ["r1", "r2"])
        self.assertEqual(_ids(self.repo.find_by_first_name("alice")), ["r1"])
        self.assertEqual(_ids(self.repo.find_by_last_name("SMITH")), ["r1", "r4"])
        self.assertEqual(_ids(self.repo.find_by_first_or_last_name("smith")), ["r1", "r4"])
        self.assertEqual(_ids(self.repo.find_by_email("BOB@example.org")), ["r2"])
        self.assertEqual(self.repo.find_by_city("Aus"), [])

    def test_skill_intersection(self):
        self.assertEqual(_ids(self.repo.find_by_skills("programming_languages", ["Python"])), ["r1", "r3"])
        self.assertEqual(_ids(self.repo.find_by_skills("programming_languages", ["Java", "R"])), ["r2", "r3"])
        self.assertEqual(_ids(self.repo.find_by_skills("tools", ["Terraform", "Webpack"])), ["r4", "r5"])
        self.assertEqual(self.repo.find_by_skills("frameworks", []), [])
        with self.assertRaises(ValueError):
            self.repo.find_by_skills("hobbies", ["chess"])

    def test_substring_lookups(self):
        self.assertEqual(_ids(self.repo.find_by_experience_field("company_name", "acme")), ["r1"])
        self.assertEqual(_ids(self.repo.find_by_experience_field("job_title", "engineer")), ["r1", "r4"])
        self.assertEqual(_ids(self.repo.find_by_education_field("degree", "sc")), ["r1", "r3"])
        self.assertEqual(_ids(self.repo.find_by_education_field("institution", "washington")), ["r3"])
        self.assertEqual(_ids(self.repo.find_by_education_field("major", "computer")), ["r1"])
        self.assertEqual(_ids(self.repo.find_by_text_content("PYTHON")), ["r1"])

    def test_substring_input_is_literal(self):
        self.assertEqual(self.repo.find_by_text_content(".*"), [])
        self.assertEqual(_ids(self.repo.find_by_text_content("512-555")), ["r1"])

    def test_uploaded_between(self):
        results = self.repo.find_by_uploaded_between(NOW - timedelta(days=50), NOW)
        self.assertEqual(_ids(results), ["r1", "r2", "r5"])

    def test_delete_older_than(self):
        self.assertEqual(self.repo.delete_older_than(180), 1)
        self.assertIsNone(self.repo.find_by_id("r4"))
        self.assertEqual(self.repo.count(), 4)

    def test_delete_by_id(self):
        self.assertTrue(self.repo.delete_by_id("r2"))
        self.assertEqual(_ids(self.repo.find_all()), ["r1", "r3", "r4", "r5"])

    def test_negative_file_size_is_rejected(self):
        with self.assertRaises(ValueError):
            ResumeRecord(original_file_name="bad.txt", original_file_size=-1)


if __name__ == "__main__":
    unittest.main()
