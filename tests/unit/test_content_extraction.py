from __future__ import annotations

import pytest

from hireflow.core.extraction import BINARY_PLACEHOLDER, PDF_PLACEHOLDER, extract_content
from hireflow.errors import ExtractionError


@pytest.mark.parametrize("path", ["cv.txt", "notes.MD", "data.csv", "profile.json", "run.log"])
def test_text_files_are_decoded_verbatim(path: str) -> None:
    body = "Jane Doe\nSenior engineer, 8 years ✓\n"

    content = extract_content(path, body.encode("utf-8"))

    assert content.text == body
    assert content.metadata == {"extraction_method": "plain_text"}


def test_pdf_gets_placeholder_text() -> None:
    content = extract_content("123/Resume.PDF", b"%PDF-1.7 binary")

    assert content.text == PDF_PLACEHOLDER
    assert content.metadata["extraction_method"] == "pdf_stub"


@pytest.mark.parametrize("path", ["cv.docx", "photo.png", "README", "archive.txt.zip"])
def test_other_files_get_binary_placeholder(path: str) -> None:
    content = extract_content(path, b"\x00\x01\x02")

    assert content.text == BINARY_PLACEHOLDER
    assert content.metadata["extraction_method"] == "binary_stub"


def test_undecodable_text_file_raises() -> None:
    with pytest.raises(ExtractionError, match="UTF-8"):
        extract_content("cv.txt", b"\xff\xfe\xfa")
