"""Pytest configuration and fixtures."""

import io
import json

import pytest
from PIL import Image

from docreview.models import DocumentAnalysis
from docreview.review import FieldStateStore


def make_png(size=(200, 100), color=(255, 255, 255), mode="RGB") -> bytes:
    """Encode a solid-color image as PNG bytes."""
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def sample_payload():
    """Extraction result as returned by the analysis service."""
    return {
        "documentType": "Patient Intake Form",
        "summary": "New patient registration form.",
        "fields": [
            {
                "key": "fullName",
                "label": "Full Name",
                "value": "Jane Doe",
                "type": "text",
                "status": "filled",
                "required": True,
                "boundingBox": [0.1, 0.1, 0.2, 0.6],
            },
            {
                "key": "dateOfBirth",
                "label": "Date of Birth",
                "value": "",
                "type": "date",
                "status": "empty",
                "required": True,
                "example": "01/31/1980",
                "boundingBox": [0.3, 0.1, 0.4, 0.4],
            },
            {
                "key": "consent",
                "label": "I consent",
                "value": "Yes",
                "type": "checkbox",
                "status": "filled",
                "required": False,
                "boundingBox": [0.5, 0.1, 0.6, 0.2],
            },
            {
                "key": "email",
                "label": "Email",
                "value": "jane@exmaple.com",
                "type": "email",
                "status": "uncertain",
                "required": False,
                "confidence": 0.4,
                "explanation": "Domain looks misspelled",
            },
        ],
        "missingFields": ["dateOfBirth"],
        "securityRisks": ["Contains date of birth"],
        "actionableInsights": ["Fill in date of birth"],
    }


@pytest.fixture
def payload_text(sample_payload):
    """Sample payload as JSON text."""
    return json.dumps(sample_payload)


@pytest.fixture
def analysis(payload_text):
    """Parsed sample analysis."""
    return DocumentAnalysis.from_payload(payload_text)


@pytest.fixture
def store(analysis):
    """Field store over the sample analysis."""
    return FieldStateStore(analysis)


@pytest.fixture
def white_png():
    """200x100 white PNG."""
    return make_png()


@pytest.fixture
def png_factory():
    """Factory for solid-color PNG bytes."""
    return make_png
