"""PDF report generation for a single prediction."""

import io
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Sequence, Union

from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .constants import REPORT_TITLE
from .errors import MissingDemographicsError

# Layout in millimetres from the top-left corner of the page
MARGIN_X = 10
TITLE_Y = 10
FIRST_LINE_Y = 20
LINE_STEP = 10
IMAGE_GAP = 20
IMAGE_WIDTH = 180
IMAGE_HEIGHT = 120

FIELD_LABELS = {
    "name": "Patient Name",
    "patient_id": "Patient ID",
    "age": "Age",
    "gender": "Gender",
}


@dataclass(frozen=True)
class Demographics:
    """Patient fields collected before export."""

    name: str = ""
    patient_id: str = ""
    age: str = ""
    gender: str = ""

    def missing_fields(self) -> list:
        return [field for field, value in asdict(self).items() if not str(value or "").strip()]

    def validate(self) -> "Demographics":
        """Return a stripped copy, or raise if any field is empty."""
        missing = self.missing_fields()
        if missing:
            raise MissingDemographicsError(missing)
        return Demographics(**{k: str(v).strip() for k, v in asdict(self).items()})


def render_pdf(
    demographics: Demographics,
    main_prediction: str,
    top_predictions: Sequence[str],
    image: Image.Image
) -> bytes:
    """
    Render the single-page report.

    Args:
        demographics: Validated patient fields
        main_prediction: Text of the main prediction
        top_predictions: Ranked prediction entries, best first
        image: The uploaded image

    Returns:
        PDF document as bytes
    """
    patient = demographics.validate()

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    _, page_h = A4

    def text(y_mm: float, value: str) -> None:
        c.drawString(MARGIN_X * mm, page_h - y_mm * mm, value)

    c.setTitle(REPORT_TITLE)
    c.setFont("Helvetica-Bold", 16)
    text(TITLE_Y, REPORT_TITLE)

    c.setFont("Helvetica", 12)
    y = FIRST_LINE_Y
    for field, label in FIELD_LABELS.items():
        text(y, f"{label}: {getattr(patient, field)}")
        y += LINE_STEP

    text(y, f"Main Prediction: {main_prediction}")
    y += LINE_STEP
    text(y, f"Top {len(top_predictions)} Predictions:")

    for index, prediction in enumerate(top_predictions, start=1):
        y += LINE_STEP
        text(y, f"{index}. {prediction}")

    img_top = y + IMAGE_GAP
    c.drawImage(
        ImageReader(image.convert("RGB")),
        MARGIN_X * mm,
        page_h - (img_top + IMAGE_HEIGHT) * mm,
        width=IMAGE_WIDTH * mm,
        height=IMAGE_HEIGHT * mm,
        preserveAspectRatio=True,
        anchor="nw",
    )

    c.showPage()
    c.save()
    return buf.getvalue()


def save_pdf(path: Union[str, Path], pdf: bytes) -> Path:
    """Write rendered PDF bytes to ``path``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(pdf)
    return path
