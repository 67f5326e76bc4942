import csv
import io
import tempfile
import unittest
from pathlib import Path

from app.parsing.convert import DocumentTooLargeError, UnsupportedDocumentError
from app.schemas.resume import ResumeRecord, SearchCriteria
from app.services.resume_service import NO_CONTENT_HTML, ResumeService, format_file_size
from app.storage.resume_repository import ResumeRepository
from resume_fixtures import make_record, sample_records

RESUME_TEXT = (
    "Jane Roe\n"
    "jane.roe@example.com\n"
    "+1 512 555 0142\n"
    "\n"
    "Summary\n"
    "Backend engineer who ships Python services.\n"
    "\n"
    "Experience\n"
    "Engineer at Acme Corp\n"
)


class ResumeServiceTests(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.repo = ResumeRepository(str(Path(self.tmp_dir.name) / "resumes.db"))
        self.service = ResumeService(self.repo, max_upload_bytes=1024)

    def tearDown(self):
        self.repo.close()
        self.tmp_dir.cleanup()

    def _upload(self, **overrides):
        kwargs = {"filename": "jane.txt", "content_type": "text/plain"}
        kwargs.update(overrides)
        return self.service.upload_and_convert(RESUME_TEXT.encode("utf-8"), **kwargs)

    def test_upload_extracts_contact_and_renders_html(self):
        record = self._upload()
        self.assertEqual(record.first_name, "Jane")
        self.assertEqual(record.last_name, "Roe")
        self.assertEqual(record.email, "jane.roe@example.com")
        self.assertEqual(record.phone, "+1 512 555 0142")
        self.assertEqual(record.professional_summary, "Backend engineer who ships Python services.")
        self.assertEqual(record.original_file_size, len(RESUME_TEXT.encode("utf-8")))
        self.assertIn("<pre>Jane Roe", record.html_content)
        self.assertEqual(self.repo.count(), 1)

    def test_submitted_names_override_extracted_ones(self):
        record = self._upload(first_name="Janet", last_name="  ")
        self.assertEqual(record.first_name, "Janet")
        self.assertEqual(record.last_name, "Roe")

    def test_upload_rejects_large_and_unsupported_files(self):
        with self.assertRaises(DocumentTooLargeError):
            self.service.upload_and_convert(b"x" * 2048, filename="big.txt", content_type="text/plain")
        with self.assertRaises(UnsupportedDocumentError):
            self.service.upload_and_convert(b"GIF89a", filename="cv.gif", content_type="image/gif")
        self.assertEqual(self.repo.count(), 0)

    def test_html_content_masking(self):
        record = self._upload()
        raw = self.service.get_html_content(record.id, masked=False)
        masked = self.service.get_html_content(record.id, masked=True)
        self.assertIn("jane.roe@example.com", raw)
        self.assertNotIn("jane.roe@example.com", masked)
        self.assertIn("jan***@mail", masked)
        self.assertIn("******0142", masked)
        self.assertIsNone(self.service.get_html_content("missing", masked=True))

    def test_missing_html_falls_back_to_placeholder(self):
        self.repo.save(ResumeRecord(id="blank", original_file_name="blank.txt"))
        self.assertEqual(self.service.get_html_content("blank", masked=True), NO_CONTENT_HTML)

    def test_search_and_delete(self):
        for record in sample_records():
            self.repo.save(record)
        results = self.service.search(SearchCriteria(state="TX"))
        self.assertEqual(sorted(record.id for record in results), ["r1", "r2"])
        self.assertTrue(self.service.delete_resume("r1"))
        self.assertFalse(self.service.delete_resume("r1"))
        self.assertEqual(len(self.service.list_resumes()), 4)

    def test_purge_expired_resumes(self):
        for record in sample_records():
            self.repo.save(record)
        self.assertEqual(self.service.purge_expired_resumes(90), 2)
        self.assertEqual(sorted(record.id for record in self.service.list_resumes()), ["r1", "r2", "r5"])


class SummaryAndExportTests(unittest.TestCase):
    def test_masked_summary(self):
        record = make_record(
            "r9",
            email="john.doe@example.com",
            phone="9876543210",
            professional_summary="Contact john.doe@example.com. " + "x" * 200,
        )
        summary = ResumeService.to_summary(record, masked=True, summary_chars=40)
        self.assertTrue(summary.masked)
        self.assertEqual(summary.email, "joh*****@example.com")
        self.assertEqual(summary.phone, "*******3210")
        self.assertTrue(summary.professional_summary.startswith("Contact joh***@mail."))
        self.assertTrue(summary.professional_summary.endswith("..."))
        self.assertEqual(len(summary.professional_summary), 43)

    def test_unmasked_summary(self):
        record = sample_records()[0]
        summary = ResumeService.to_summary(record, masked=False)
        self.assertFalse(summary.masked)
        self.assertEqual(summary.email, "alice.smith@example.com")
        self.assertEqual(summary.experience_count, 1)
        self.assertEqual(summary.education_count, 1)

    def test_masked_summary_without_contact(self):
        summary = ResumeService.to_summary(make_record("r0"), masked=True)
        self.assertEqual(summary.email, "Not provided")
        self.assertEqual(summary.phone, "Not provided")

    def test_export_csv(self):
        records = sample_records()[:2] + [make_record("anon", email="ghost@example.com")]
        rows = list(csv.reader(io.StringIO(ResumeService.export_csv(records, "engineer"))))
        self.assertEqual(rows[0], ["Name", "Email", "Phone", "Search Term"])
        self.assertEqual(rows[1], ["Alice Smith", "alice.smith@example.com", "512-555-0101", "engineer"])
        self.assertEqual(rows[2], ["Bob Jones", "bob@example.org", "", "engineer"])
        self.assertEqual(rows[3], ["ghost", "ghost@example.com", "", "engineer"])

    def test_format_file_size(self):
        self.assertEqual(format_file_size(0), "0 B")
        self.assertEqual(format_file_size(None), "0 B")
        self.assertEqual(format_file_size(512), "512 B")
        self.assertEqual(format_file_size(1536), "1.5 KB")
        self.assertEqual(format_file_size(5 * 1024 * 1024), "5 MB")


if __name__ == "__main__":
    unittest.main()
