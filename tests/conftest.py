"""
Shared fixtures: synthetic screenshots, reportlab-built PDFs and a poppler
stand-in so rasterization tests run without poppler installed.
"""

import io
from typing import List, Sequence, Tuple
from unittest.mock import patch

import pytest
from PIL import Image
from PyPDF2 import PdfReader, PdfWriter
from PyPDF2.generic import RectangleObject
from reportlab.pdfgen import canvas

from reportflow.models import InputFile

RENDER_GRAY = (128, 128, 128)


def make_png(width: int, height: int, name: str = "shot.png") -> InputFile:
    """RGB gradient image so every pixel position has a distinct value."""
    img = Image.new("RGB", (width, height))
    img.putdata([((x * 7) % 256, (y * 5) % 256, (x + y) % 256) for y in range(height) for x in range(width)])
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return InputFile(name=name, data=buffer.getvalue())


def make_solid_png(width: int, height: int, name: str = "shot.png", color=(200, 30, 30)) -> InputFile:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return InputFile(name=name, data=buffer.getvalue())


def make_pdf(page_sizes: Sequence[Tuple[float, float]], name: str = "report.pdf") -> InputFile:
    """PDF with one page per (width_pt, height_pt), numbered in the body."""
    buffer = io.BytesIO()
    can = canvas.Canvas(buffer)
    for number, size in enumerate(page_sizes, start=1):
        can.setPageSize(size)
        can.drawString(20, size[1] / 2, f"Page {number}")
        can.showPage()
    can.save()
    return InputFile(name=name, data=buffer.getvalue())


def _rewrite(source: InputFile, edit, name: str, encrypt_with=None) -> InputFile:
    """Copy every page of `source` through PdfWriter, editing each page first."""
    writer = PdfWriter()
    for page in PdfReader(source.stream()).pages:
        edit(page)
        writer.add_page(page)
    if encrypt_with is not None:
        writer.encrypt(**encrypt_with)
    buffer = io.BytesIO()
    writer.write(buffer)
    return InputFile(name=name, data=buffer.getvalue())


def make_rotated_pdf(width_pt: float, height_pt: float, rotation: int, name: str = "rotated.pdf") -> InputFile:
    return _rewrite(make_pdf([(width_pt, height_pt)]), lambda page: page.rotate(rotation), name)


def make_cropped_pdf(media: Tuple[float, float], crop: Tuple[float, float], name: str = "cropped.pdf") -> InputFile:
    """One page whose CropBox is the lower-left `crop` part of its MediaBox."""
    def set_cropbox(page):
        page.cropbox = RectangleObject([0, 0, crop[0], crop[1]])
    return _rewrite(make_pdf([media]), set_cropbox, name)


def make_encrypted_pdf(user_password: str, name: str = "locked.pdf") -> InputFile:
    return _rewrite(
        make_pdf([(595.0, 842.0)]),
        lambda page: None,
        name,
        encrypt_with={"user_password": user_password, "owner_password": "owner"},
    )


def fake_convert_from_bytes(
    pdf_file, dpi=200, first_page=None, last_page=None, use_cropbox=False, **kwargs
) -> List[Image.Image]:
    """Mimics pdf2image: gray page images sized from the PDF at `dpi`."""
    reader = PdfReader(io.BytesIO(pdf_file))
    if reader.is_encrypted:
        reader.decrypt("")
    first = first_page or 1
    last = last_page or len(reader.pages)
    images = []
    for index in range(first - 1, last):
        page = reader.pages[index]
        box = page.cropbox if use_cropbox else page.mediabox
        width_pt, height_pt = float(box.width), float(box.height)
        if (page.rotation or 0) % 180 == 90:
            width_pt, height_pt = height_pt, width_pt
        size = (round(width_pt * dpi / 72), round(height_pt * dpi / 72))
        images.append(Image.new("RGB", size, RENDER_GRAY))
    return images


@pytest.fixture
def fake_poppler():
    with patch("reportflow.docuflow.rasterizer.convert_from_bytes", side_effect=fake_convert_from_bytes) as mock:
        yield mock


def read_pdf(data: bytes) -> PdfReader:
    return PdfReader(io.BytesIO(data))
