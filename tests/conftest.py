import io
import json

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def lab_report_pdf_bytes() -> bytes:
    """Generate a one-page lab report PDF."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    lines = [
        "Quest Diagnostics Laboratory Report",
        "Glucose: 95 mg/dL (Normal: 70-100)",
        "Hemoglobin: 14.2 g/dL (Reference range: 13.5-17.5)",
    ]
    for i, line in enumerate(lines):
        c.drawString(72, 720 - 20 * i, line)
    c.save()
    return buf.getvalue()


@pytest.fixture()
def png_bytes() -> bytes:
    """PNG signature followed by filler; enough for type checks and base64."""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture()
def analysis_payload() -> dict[str, object]:
    """A valid AnalysisResult payload as the model would return it."""
    return {
        "results": [
            {
                "test_name": "Glucose",
                "value": "95",
                "unit": "mg/dL",
                "reference_range": "70-100",
                "status": "normal",
                "interpretation": "Within the normal fasting range.",
            }
        ],
        "critical_findings": [],
        "summary": "Glucose is normal.",
        "recommendations": ["Repeat in one year."],
    }


@pytest.fixture()
def analysis_json(analysis_payload: dict[str, object]) -> str:
    return json.dumps(analysis_payload)
