"""Tests for the archive applier and its error classification."""

import errno
import zipfile
from pathlib import Path

import pytest
from project_selfupdate import ArchiveCorruptedError
from project_selfupdate import ArchiveJob
from project_selfupdate import CaseCollisionError
from project_selfupdate import ExtractionError
from project_selfupdate import ExtractionErrorKind
from project_selfupdate import apply_archive
from project_selfupdate import cleanup_archive
from project_selfupdate.archive import ZIP_ERRORS
from project_selfupdate.archive import JobState
from project_selfupdate.archive import ZipErrorCode
from project_selfupdate.archive import extraction_error
from project_selfupdate.archive import open_error_code
from project_selfupdate.archive import run_job


def test_apply_extracts_all_entries(tmp_path, make_zip):
    archive = make_zip(tmp_path / "widget.zip", {"README.md": "hello", "src/app.py": "print('hi')"})
    target = tmp_path / "project"

    apply_archive(archive, target)

    assert (target / "README.md").read_text() == "hello"
    assert (target / "src" / "app.py").read_text() == "print('hi')"


def test_zero_byte_archive_never_opens(tmp_path, monkeypatch):
    archive = tmp_path / "widget.zip"
    archive.write_bytes(b"")

    def fail(*args, **kwargs):
        raise AssertionError("extraction backend must not be called")

    monkeypatch.setattr("project_selfupdate.archive.zipfile.ZipFile", fail)

    with pytest.raises(ArchiveCorruptedError, match=r"0 bytes\), try again"):
        apply_archive(archive, tmp_path / "project")


def test_missing_archive_is_corrupted(tmp_path):
    with pytest.raises(ArchiveCorruptedError) as exc_info:
        apply_archive(tmp_path / "missing.zip", tmp_path / "project")

    assert exc_info.value.code == -1


def test_not_a_zip_archive(tmp_path):
    archive = tmp_path / "widget.zip"
    archive.write_bytes(b"this is not a zip file at all")

    with pytest.raises(ExtractionError) as exc_info:
        apply_archive(archive, tmp_path / "project")

    assert exc_info.value.kind is ExtractionErrorKind.NOT_AN_ARCHIVE
    assert exc_info.value.code == 19
    assert str(archive) in exc_info.value.message


def test_open_failure_on_directory(tmp_path):
    archive = tmp_path / "widget.zip"
    archive.mkdir()
    (archive / "filler").write_text("x")

    with pytest.raises(ExtractionError) as exc_info:
        apply_archive(archive, tmp_path / "project")

    assert exc_info.value.kind is ExtractionErrorKind.OPEN_FAILURE


def test_case_collision_is_reclassified(tmp_path, make_zip, monkeypatch):
    archive = make_zip(tmp_path / "widget.zip", {"File.txt": "a", "file.txt": "b"})
    cause = FileExistsError(errno.EEXIST, "File exists", "file.txt")

    def collide(self, path=None, members=None, pwd=None):
        raise cause

    monkeypatch.setattr(zipfile.ZipFile, "extractall", collide)

    with pytest.raises(CaseCollisionError, match="different capitalization") as exc_info:
        apply_archive(archive, tmp_path / "project")

    assert exc_info.value.__cause__ is cause
    assert exc_info.value.kind is ExtractionErrorKind.CASE_COLLISION


def test_corrupted_member_is_write_failure(tmp_path, make_zip, monkeypatch):
    archive = make_zip(tmp_path / "widget.zip", {"a.txt": "a"})

    def bad_crc(self, path=None, members=None, pwd=None):
        raise zipfile.BadZipFile("Bad CRC-32 for file 'a.txt'")

    monkeypatch.setattr(zipfile.ZipFile, "extractall", bad_crc)

    with pytest.raises(ExtractionError, match="corrupted or using an invalid format") as exc_info:
        apply_archive(archive, tmp_path / "project")

    assert exc_info.value.kind is ExtractionErrorKind.WRITE_FAILURE


def test_unexpected_errors_propagate_unmodified(tmp_path, make_zip, monkeypatch):
    archive = make_zip(tmp_path / "widget.zip", {"a.txt": "a"})

    def boom(self, path=None, members=None, pwd=None):
        raise RuntimeError("boom")

    monkeypatch.setattr(zipfile.ZipFile, "extractall", boom)

    with pytest.raises(RuntimeError, match="boom"):
        apply_archive(archive, tmp_path / "project")


class TestErrorTable:
    def test_every_code_is_mapped(self):
        for code in ZipErrorCode:
            if code is ZipErrorCode.CORRUPTED:
                continue
            assert code in ZIP_ERRORS

    @pytest.mark.parametrize(
        "code,kind,text",
        [
            (ZipErrorCode.EXISTS, ExtractionErrorKind.ALREADY_EXISTS, "already exists"),
            (ZipErrorCode.INCONS, ExtractionErrorKind.INCONSISTENT, "is inconsistent"),
            (ZipErrorCode.INVAL, ExtractionErrorKind.INVALID_ARGUMENT, "Invalid argument"),
            (ZipErrorCode.MEMORY, ExtractionErrorKind.ALLOCATION, "Malloc failure"),
            (ZipErrorCode.NOENT, ExtractionErrorKind.NOT_FOUND, "No such zip file"),
            (ZipErrorCode.NOZIP, ExtractionErrorKind.NOT_AN_ARCHIVE, "is not a zip archive"),
            (ZipErrorCode.OPEN, ExtractionErrorKind.OPEN_FAILURE, "Can't open zip file"),
            (ZipErrorCode.READ, ExtractionErrorKind.READ_ERROR, "Zip read error"),
            (ZipErrorCode.SEEK, ExtractionErrorKind.SEEK_ERROR, "Zip seek error"),
            (ZipErrorCode.WRITE, ExtractionErrorKind.WRITE_FAILURE, "Zip write error"),
        ],
    )
    def test_known_codes(self, code, kind, text):
        error = extraction_error(code, "widget.zip")

        assert error.kind is kind
        assert error.code == int(code)
        assert text in error.message
        assert "widget.zip" in error.message

    def test_unknown_code(self):
        error = extraction_error(42, "widget.zip")

        assert error.kind is ExtractionErrorKind.UNKNOWN
        assert error.message == "'widget.zip' is not a valid zip archive, got error code: 42"


@pytest.mark.parametrize(
    "error,code",
    [
        (zipfile.BadZipFile("File is not a zip file"), ZipErrorCode.NOZIP),
        (zipfile.BadZipFile("Truncated central directory"), ZipErrorCode.INCONS),
        (FileNotFoundError(errno.ENOENT, "missing"), ZipErrorCode.NOENT),
        (PermissionError(errno.EACCES, "denied"), ZipErrorCode.OPEN),
        (OSError(errno.ESPIPE, "illegal seek"), ZipErrorCode.SEEK),
        (OSError(errno.EIO, "io error"), ZipErrorCode.READ),
        (MemoryError(), ZipErrorCode.MEMORY),
        (ValueError("bad mode"), ZipErrorCode.INVAL),
    ],
)
def test_open_error_code(error, code):
    assert open_error_code(error) == code


def test_cleanup_removes_archive(tmp_path):
    archive = tmp_path / "widget.zip"
    archive.write_bytes(b"data")

    cleanup_archive(archive)
    cleanup_archive(archive)

    assert not archive.exists()


def test_cleanup_swallows_removal_errors(tmp_path, monkeypatch):
    archive = tmp_path / "widget.zip"
    archive.write_bytes(b"data")

    def refuse(self, missing_ok=False):
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr(Path, "unlink", refuse)

    cleanup_archive(archive)


def test_run_job_removes_archive_on_success(tmp_path, make_zip):
    archive = make_zip(tmp_path / "widget.zip", {"a.txt": "a"})
    job = ArchiveJob(file_path=archive, target_dir=tmp_path / "project")

    run_job(job)

    assert job.state is JobState.EXTRACTED
    assert not archive.exists()
    assert (tmp_path / "project" / "a.txt").exists()


def test_run_job_removes_archive_on_failure(tmp_path):
    archive = tmp_path / "widget.zip"
    archive.write_bytes(b"garbage")
    job = ArchiveJob(file_path=archive, target_dir=tmp_path / "project")

    with pytest.raises(ExtractionError):
        run_job(job)

    assert job.state is JobState.FAILED
    assert not archive.exists()
