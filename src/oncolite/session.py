"""Per-page session state and the upload/predict/report workflow."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from PIL import Image

from .classifier import CancerClassifier
from .config import OncoLiteConfig
from .constants import PREDICTING_TEXT, PREDICTION_FAILED_TEXT
from .errors import (
    ExportDisabledError,
    ModelNotReadyError,
    NoImageError,
    NoPredictionError,
    OncoLiteError,
    PredictionError,
    PredictionInProgressError,
)
from .preprocess import decode_upload
from .ranking import Ranking, rank
from .report import Demographics, render_pdf
from .utils import setup_logger
from .view import ViewTransform

logger = setup_logger()


class ModelStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass
class UploadedImage:
    data: bytes
    image: Image.Image
    filename: Optional[str] = None


@dataclass
class Session:
    """
    All mutable state of one page session.

    The model is loaded once by :meth:`initialize`; the predict trigger stays
    disabled until that succeeds and while a prediction is running. Nothing
    is reset except by creating a new session.
    """

    config: OncoLiteConfig = field(default_factory=OncoLiteConfig)
    loader: Callable[[OncoLiteConfig], CancerClassifier] = CancerClassifier.from_config

    classifier: Optional[CancerClassifier] = None
    model_status: ModelStatus = ModelStatus.LOADING
    model_error: Optional[str] = None

    upload: Optional[UploadedImage] = None
    view: ViewTransform = field(default_factory=ViewTransform)
    result_text: str = ""
    ranking: Optional[Ranking] = None
    predicting: bool = False
    download_visible: bool = False
    form_visible: bool = False

    async def initialize(self) -> None:
        """Load the model; record a failure instead of raising it."""
        if self.classifier is not None:
            self.model_status = ModelStatus.READY
            return
        self.model_status = ModelStatus.LOADING
        try:
            self.classifier = await asyncio.to_thread(self.loader, self.config)
        except Exception as e:
            self.model_status = ModelStatus.FAILED
            self.model_error = str(e)
            logger.error(f"Error loading model: {e}")
            return
        self.model_status = ModelStatus.READY
        self.model_error = None
        logger.info("Model loaded successfully")

    @property
    def can_predict(self) -> bool:
        return self.model_status is ModelStatus.READY and self.upload is not None and not self.predicting

    def load_upload(self, data: bytes, filename: Optional[str] = None) -> UploadedImage:
        """
        Decode an uploaded file and make it the displayed image.

        Raises:
            PredictionInProgressError: If a prediction for the current image is running
            ImageDecodeError: If the file is not a readable image
        """
        if self.predicting:
            raise PredictionInProgressError("Wait for the running prediction before uploading")
        image = decode_upload(data, filename)
        self.upload = UploadedImage(data=data, image=image, filename=filename)
        self.result_text = ""
        self.ranking = None
        self.download_visible = False
        self.form_visible = False
        logger.info(f"Loaded image {filename or '<upload>'} ({image.width}x{image.height})")
        return self.upload

    async def predict(self) -> Ranking:
        """
        Classify the uploaded image.

        Raises:
            ModelNotReadyError: If the model is still loading or failed to load
            NoImageError: If no image has been uploaded
            PredictionInProgressError: If a prediction is already running
            PredictionError: If inference fails; the result area shows a retry message
        """
        if self.model_status is not ModelStatus.READY:
            raise ModelNotReadyError(self.model_error or "Model is still loading")
        if self.upload is None:
            raise NoImageError("Upload an image before predicting")
        if self.predicting:
            raise PredictionInProgressError("A prediction is already running")

        self.predicting = True
        self.result_text = PREDICTING_TEXT
        image = self.upload.image
        try:
            probs = await asyncio.to_thread(self.classifier.predict_image, image)
            ranking = rank(probs, self.classifier.labels, k=self.config.top_k)
        except Exception as e:
            logger.error(f"Error making prediction: {e}")
            self.result_text = PREDICTION_FAILED_TEXT
            if isinstance(e, OncoLiteError):
                raise
            raise PredictionError(f"Inference failed: {e}") from e
        finally:
            self.predicting = False

        self.ranking = ranking
        self.result_text = ranking.result_text
        self.download_visible = self.config.enable_export
        logger.info(f"{ranking.result_text}; top: {', '.join(ranking.top_entries)}")
        return ranking

    def zoom_in(self) -> None:
        self.view.zoom_in()

    def zoom_out(self) -> None:
        self.view.zoom_out()

    def rotate_left(self) -> None:
        self.view.rotate_left()

    def rotate_right(self) -> None:
        self.view.rotate_right()

    def _require_report_inputs(self) -> None:
        if not self.config.enable_export:
            raise ExportDisabledError("Report export is disabled")
        if self.ranking is None or self.upload is None:
            raise NoPredictionError("Run a prediction before exporting a report")

    def show_report_form(self) -> None:
        self._require_report_inputs()
        self.form_visible = True

    def export_report(self, demographics: Demographics) -> bytes:
        """
        Render the PDF report and hide the demographics form.

        Validation runs first; on failure nothing changes and no document is
        produced.
        """
        self._require_report_inputs()
        patient = demographics.validate()
        pdf = render_pdf(
            patient,
            self.ranking.main.format_main(),
            self.ranking.top_entries,
            self.upload.image,
        )
        self.form_visible = False
        logger.info(f"Generated report for patient {patient.patient_id}")
        return pdf

    def snapshot(self) -> dict:
        """JSON-ready view of the session for the page and the API."""
        ranking = self.ranking
        return {
            "model_status": self.model_status.value,
            "model_error": self.model_error,
            "has_image": self.upload is not None,
            "filename": self.upload.filename if self.upload else None,
            "can_predict": self.can_predict,
            "predicting": self.predicting,
            "result": self.result_text,
            "main": ranking.main.as_dict() if ranking else None,
            "top": [r.as_dict() for r in ranking.top] if ranking and self.config.show_top3 else [],
            "view": dict(self.view.as_dict(), css=self.view.css()),
            "download_visible": self.download_visible,
            "form_visible": self.form_visible,
        }
