import pytest

from app.models.schemas import FormatCategory
from app.utils.errors import DetectionError
from domains.metadata.detector import detect_file, is_supported


@pytest.mark.parametrize(
    "name,content,category,extension",
    [
        ("a.bin", b"\xff\xd8\xff\xe0" + b"\x00" * 32, FormatCategory.IMAGE, "jpg"),
        ("a.bin", b"\x89PNG\r\n\x1a\n" + b"\x00" * 32, FormatCategory.IMAGE, "png"),
        ("a.bin", b"ID3\x04" + b"\x00" * 32, FormatCategory.AUDIO, "mp3"),
        ("a.bin", b"fLaC" + b"\x00" * 32, FormatCategory.AUDIO, "flac"),
        ("a.bin", b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 32, FormatCategory.VIDEO, "mp4"),
        ("a.bin", b"RIFF\x00\x00\x00\x00AVI LIST" + b"\x00" * 32, FormatCategory.VIDEO, "avi"),
        ("a.bin", b'<?xml version="1.0"?><svg width="1"></svg>', FormatCategory.IMAGE, "svg"),
    ],
)
def test_detect_by_signature(tmp_path, name, content, category, extension):
    path = tmp_path / name
    path.write_bytes(content)

    detected = detect_file(str(path))

    assert detected.category == category
    assert detected.extension == extension


def test_detect_text_kinds_ignore_extension(tmp_path):
    html = tmp_path / "page.data"
    html.write_text("<!DOCTYPE html><html><body>hi</body></html>")
    markdown = tmp_path / "notes.data"
    markdown.write_text("# Title\n\n## Part\n\n```\ncode\n```\n")
    plain = tmp_path / "plain.data"
    plain.write_text("just some words\n")

    assert detect_file(str(html)).extension == "html"
    assert detect_file(str(markdown)).extension == "md"
    assert detect_file(str(plain)).extension == "txt"
    assert detect_file(str(plain)).category == FormatCategory.TEXT


def test_detect_falls_back_to_extension(tmp_path):
    path = tmp_path / "track.opus"
    path.write_bytes(b"\x00\x01\x02\x03" * 64)

    detected = detect_file(str(path))

    assert detected.category == FormatCategory.AUDIO
    assert detected.mime_type == "audio/opus"


def test_detect_unknown_binary_raises(tmp_path):
    path = tmp_path / "blob.xyz"
    path.write_bytes(b"\x00\x01\x02\x03" * 64)

    with pytest.raises(DetectionError):
        detect_file(str(path))

    with pytest.raises(DetectionError):
        detect_file(str(tmp_path / "missing.jpg"))


def test_is_supported_accepts_dots_and_case():
    assert is_supported(".JPG")
    assert is_supported("md")
    assert not is_supported(".exe")
