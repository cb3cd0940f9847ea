from __future__ import annotations

import base64
import io
from pathlib import Path
from typing import Callable, Sequence
import sys

import pytest
from PIL import Image
from pypdf import PdfWriter
from pypdf.generic import DecodedStreamObject, DictionaryObject, NameObject

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def _write_text_pdf(texts: Sequence[str | None], width: float, height: float) -> bytes:
    writer = PdfWriter()
    font_dict = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Font"),
            NameObject("/Subtype"): NameObject("/Type1"),
            NameObject("/BaseFont"): NameObject("/Helvetica"),
        }
    )
    font_ref = writer._add_object(font_dict)
    for text in texts:
        page = writer.add_blank_page(width=width, height=height)
        if text is None:
            continue
        page[NameObject("/Resources")] = DictionaryObject(
            {NameObject("/Font"): DictionaryObject({NameObject("/F1"): font_ref})}
        )
        stream = DecodedStreamObject()
        stream.set_data(f"BT /F1 12 Tf 72 100 Td ({_escape(text)}) Tj ET".encode("latin-1"))
        page[NameObject("/Contents")] = writer._add_object(stream)
    writer.add_metadata({"/Producer": "pdftransformx-tests", "/Title": "Sample"})
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture()
def make_pdf() -> Callable[..., bytes]:
    """Build a PDF with one page per entry; ``None`` entries are blank pages."""

    def _create(texts: Sequence[str | None], *, width: float = 612, height: float = 792) -> bytes:
        return _write_text_pdf(texts, width, height)

    return _create


@pytest.fixture()
def numbered_pdf(make_pdf: Callable[..., bytes]) -> bytes:
    return make_pdf([f"Page {number}" for number in range(1, 6)])


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    writer = PdfWriter()
    for _ in range(5):
        writer.add_blank_page(width=200, height=200)
    writer.add_metadata({"/Producer": "pdftransformx-tests", "/Title": "Sample"})
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture()
def sample_pdf(tmp_path: Path, sample_pdf_bytes: bytes) -> Path:
    pdf_path = tmp_path / "sample.pdf"
    pdf_path.write_bytes(sample_pdf_bytes)
    return pdf_path


@pytest.fixture()
def encrypted_pdf_bytes(make_pdf: Callable[..., bytes]) -> bytes:
    from pypdf import PdfReader

    reader = PdfReader(io.BytesIO(make_pdf(["Locked 1", "Locked 2", "Locked 3"])))
    writer = PdfWriter()
    for page in reader.pages:
        writer.add_page(page)
    writer.encrypt(user_password="secret", owner_password="owner", algorithm="RC4-128")
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture()
def png_data_url() -> str:
    image = Image.new("RGB", (40, 20), color=(200, 30, 30))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")
