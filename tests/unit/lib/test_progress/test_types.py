"""Unit tests for progress snapshot types."""

import pytest

from outreach_crm.lib.progress import ExportProgress, ImportProgress, JobKind, extract_job_id


class TestJobKind:
    """Tests for JobKind."""

    def test_progress_event_names(self) -> None:
        assert JobKind.IMPORT.progress_event == "import:progress"
        assert JobKind.EXPORT.progress_event == "export:progress"


class TestExtractJobId:
    """Tests for extract_job_id()."""

    @pytest.mark.parametrize(
        "payload",
        [None, "imp-1", 42, [], {}, {"jobId": ""}, {"jobId": None}, {"jobId": 7}, {"processed": 3}],
    )
    def test_malformed_payloads(self, payload: object) -> None:
        assert extract_job_id(payload) is None

    def test_valid_payload(self) -> None:
        assert extract_job_id({"jobId": "imp-1", "processed": 1}) == "imp-1"


class TestImportProgress:
    """Tests for ImportProgress.from_payload()."""

    def test_full_payload(self) -> None:
        snapshot = ImportProgress.from_payload(
            {
                "jobId": "imp-9",
                "processed": 40,
                "success": 35,
                "failed": 2,
                "duplicatesCount": 3,
                "done": False,
            }
        )
        assert snapshot == ImportProgress(
            job_id="imp-9",
            processed=40,
            success=35,
            failed=2,
            duplicates_count=3,
            done=False,
        )
        assert snapshot.kind is JobKind.IMPORT
        assert snapshot.is_terminal is False

    def test_absent_fields_stay_absent(self) -> None:
        snapshot = ImportProgress.from_payload({"jobId": "imp-9"})
        assert snapshot is not None
        assert snapshot.processed is None
        assert snapshot.success is None
        assert snapshot.done is None
        assert snapshot.error is None

    def test_error_is_terminal(self) -> None:
        snapshot = ImportProgress.from_payload({"jobId": "imp-9", "error": "invalid header row"})
        assert snapshot is not None
        assert snapshot.error == "invalid header row"
        assert snapshot.is_terminal is True

    def test_done_is_terminal(self) -> None:
        snapshot = ImportProgress.from_payload({"jobId": "imp-9", "done": True})
        assert snapshot is not None
        assert snapshot.is_terminal is True

    def test_missing_job_id_returns_none(self) -> None:
        assert ImportProgress.from_payload({"processed": 10}) is None

    def test_wrong_types_are_dropped(self) -> None:
        snapshot = ImportProgress.from_payload({"jobId": "imp-9", "processed": "ten", "done": "yes"})
        assert snapshot is not None
        assert snapshot.processed is None
        assert snapshot.done is None

    def test_seq_is_kept(self) -> None:
        snapshot = ImportProgress.from_payload({"jobId": "imp-9", "seq": 4})
        assert snapshot is not None
        assert snapshot.seq == 4


class TestExportProgress:
    """Tests for ExportProgress.from_payload() and derived values."""

    def test_full_payload(self) -> None:
        snapshot = ExportProgress.from_payload(
            {
                "jobId": "exp-1",
                "processed": 100,
                "total": 100,
                "percent": 100,
                "done": True,
                "downloadReady": True,
            }
        )
        assert snapshot == ExportProgress(
            job_id="exp-1",
            processed=100,
            total=100,
            percent=100.0,
            done=True,
            download_ready=True,
        )
        assert snapshot.is_terminal is True

    def test_null_percent(self) -> None:
        snapshot = ExportProgress.from_payload({"jobId": "exp-1", "percent": None})
        assert snapshot is not None
        assert snapshot.percent is None

    def test_percent_complete_derived(self) -> None:
        snapshot = ExportProgress(job_id="exp-1", processed=10, total=40)
        assert snapshot.percent_complete == 25.0

    def test_percent_complete_prefers_backend_value(self) -> None:
        snapshot = ExportProgress(job_id="exp-1", processed=10, total=40, percent=30.0)
        assert snapshot.percent_complete == 30.0

    def test_percent_complete_unknown_total(self) -> None:
        assert ExportProgress(job_id="exp-1", processed=10).percent_complete is None
        assert ExportProgress(job_id="exp-1", processed=0, total=0).percent_complete is None
