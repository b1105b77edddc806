"""Tests for PDF report generation."""

import pytest

from conftest import create_test_image
from oncolite.errors import MissingDemographicsError
from oncolite.report import Demographics, render_pdf, save_pdf

TOP3 = ["Brain Glioma (60.0%)", "Brain Meningioma (30.0%)", "Brain Tumor (0.4%)"]


def full_demographics(**overrides):
    fields = dict(name="Jane Doe", patient_id="P-0042", age="57", gender="F")
    fields.update(overrides)
    return Demographics(**fields)


def test_validate_strips_fields():
    patient = full_demographics(name="  Jane Doe  ").validate()
    assert patient.name == "Jane Doe"


@pytest.mark.parametrize("field", ["name", "patient_id", "age", "gender"])
def test_any_empty_field_fails_validation(field):
    """Each of the four fields is required."""
    with pytest.raises(MissingDemographicsError) as excinfo:
        full_demographics(**{field: ""}).validate()

    assert excinfo.value.missing == [field]
    assert "Please fill out all demographic fields." in str(excinfo.value)


def test_whitespace_only_counts_as_missing():
    with pytest.raises(MissingDemographicsError):
        full_demographics(age="   ").validate()


def test_render_pdf_returns_single_document():
    pdf = render_pdf(
        full_demographics(),
        "Brain Glioma (Confidence: 60.0%)",
        TOP3,
        create_test_image(size=(300, 200), color=(10, 120, 200)),
    )

    assert pdf.startswith(b"%PDF")
    assert pdf.rstrip().endswith(b"%%EOF")
    assert b"/Count 1" in pdf


def test_render_pdf_refuses_incomplete_demographics():
    with pytest.raises(MissingDemographicsError):
        render_pdf(full_demographics(gender=""), "x", TOP3, create_test_image())


def test_save_pdf_writes_file(tmp_path):
    target = save_pdf(tmp_path / "out" / "report.pdf", b"%PDF-1.4 test")
    assert target.read_bytes() == b"%PDF-1.4 test"
