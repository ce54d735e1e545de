from datetime import date

import pytest

from app.utils.errors import AnalysisError, InvalidPathError, MetadataToolError
from domains.metadata.analyzer import (
    analyze,
    analyze_files,
    identify_sensitive_fields,
    is_profile_metadata,
)


def test_analyze_flags_sensitive_fields(tmp_path, install_handler, make_handler):
    install_handler(make_handler({"Author": "Jane", "GPSLatitude": "52.1", "Title": "x"}))
    path = tmp_path / "notes.txt"
    path.write_text("hello")

    report = analyze(str(path))

    assert report.file_type.extension == "txt"
    assert report.sensitive_fields == ["Author", "GPSLatitude"]


def test_analyze_errors(tmp_path, install_handler, make_handler):
    with pytest.raises(InvalidPathError):
        analyze(str(tmp_path / "missing.txt"))

    class Broken(make_handler):
        def extract_metadata(self, path):
            raise MetadataToolError("boom")

    install_handler(Broken())
    path = tmp_path / "notes.txt"
    path.write_text("hello")

    with pytest.raises(AnalysisError):
        analyze(str(path))


def test_analyze_files_skips_failures(tmp_path, install_handler, make_handler):
    install_handler(make_handler())
    good = tmp_path / "good.txt"
    good.write_text("hello")

    reports = analyze_files([str(good), str(tmp_path / "missing.txt")])

    assert [r.path for r in reports] == [str(good)]


def test_profile_values_are_not_sensitive():
    profile = {"author": "anonymous", "created": "2000-01-01", "software": "x/1"}
    metadata = {
        "Artist": "Anonymous",
        "CreateDate": "2000:01:01 00:00:00",
        "Software": "other/2",
        "_internal": "Author",
        "Author": "Jane",
    }

    assert identify_sensitive_fields(metadata, profile) == ["Software", "Author"]


def test_dynamic_profile_values_are_recognised():
    profile = {"author": "{{random}}", "created": "{{now}}"}

    assert is_profile_metadata("Artist", "scrubwatch-0123456789abcdef", profile)
    assert not is_profile_metadata("Artist", "Jane", profile)
    assert is_profile_metadata("CreateDate", date.today().strftime("%Y:%m:%d 00:00:00"), profile)
    assert not is_profile_metadata("Location", "Paris", profile)
