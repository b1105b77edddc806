"""FastAPI page for OncoLite: upload, predict, view controls and PDF export."""

import asyncio
import html
import io
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Type
from urllib.parse import quote

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from pydantic import BaseModel

from .config import OncoLiteConfig
from .constants import REPORT_FILENAME, REPORT_TITLE
from .errors import (
    ExportDisabledError,
    ImageDecodeError,
    LabelTableMismatchError,
    MissingDemographicsError,
    ModelNotReadyError,
    NoImageError,
    NoPredictionError,
    OncoLiteError,
    PredictionError,
    PredictionInProgressError,
)
from .report import Demographics
from .session import ModelStatus, Session
from .taxonomy import CLASS_LABELS
from .utils import setup_logger

logger = setup_logger()

ERROR_STATUS: Dict[Type[OncoLiteError], int] = {
    ModelNotReadyError: 503,
    PredictionInProgressError: 409,
    NoImageError: 409,
    NoPredictionError: 409,
    ExportDisabledError: 404,
    ImageDecodeError: 400,
    MissingDemographicsError: 422,
    LabelTableMismatchError: 500,
    PredictionError: 500,
}


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    model_status: str
    model_error: Optional[str] = None
    labels: List[str]


def _status_for(exc: OncoLiteError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 400


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "")


def _done(request: Request, session: Session):
    """Redirect browsers back to the page; answer API clients with the state."""
    if _wants_html(request):
        return RedirectResponse("/", status_code=303)
    return JSONResponse(session.snapshot())


def _button(form_id: str, action: str, label: str, disabled: bool = False, hidden: bool = False) -> str:
    attrs = " disabled" if disabled else ""
    style = ' style="display:none"' if hidden else ""
    return (
        f'<form method="post" action="{action}" class="inline"{style}>'
        f'<button id="{form_id}" type="submit"{attrs}>{html.escape(label)}</button></form>'
    )


def render_page(session: Session, error: Optional[str] = None) -> str:
    """Render the single page from the session state."""
    config = session.config
    state = session.snapshot()
    esc = html.escape

    refresh = '<meta http-equiv="refresh" content="2">' if session.model_status is ModelStatus.LOADING else ""

    if session.model_status is ModelStatus.LOADING:
        status = '<p id="model-status">Loading model...</p>'
    elif session.model_status is ModelStatus.FAILED:
        status = f'<p id="model-status" class="error">Model failed to load: {esc(session.model_error or "")}</p>'
    else:
        status = '<p id="model-status">Model ready.</p>'

    notice = f'<p id="error" class="error">{esc(error)}</p>' if error else ""

    image = ""
    if session.upload is not None:
        image = (
            f'<img id="uploaded-image" src="/image" alt="uploaded image" '
            f'style="display:block; transform: {esc(session.view.css())}">'
        )

    top = ""
    if state["top"]:
        items = "".join(f"<li>{esc(entry)}</li>" for entry in session.ranking.top_entries)
        top = f'<h3>Top {len(session.ranking.top)} Predictions</h3><ol id="top-predictions">{items}</ol>'

    report = ""
    if config.enable_export:
        report = _button("download-pdf", "/download-pdf", "Download Result", hidden=not session.download_visible)
        fields = "".join(
            f'<label>{esc(text)} <input id="{name}" name="{name}"></label><br>'
            for name, text in (("name", "Name"), ("patient_id", "Patient ID"), ("age", "Age"), ("gender", "Gender"))
        )
        display = "block" if session.form_visible else "none"
        report += (
            f'<form id="demographics-form" method="post" action="/generate-pdf" style="display:{display}">'
            f'{fields}<button id="generate-pdf" type="submit">Generate PDF</button></form>'
        )

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
{refresh}
<title>{esc(REPORT_TITLE)}</title>
<style>
  .inline {{ display: inline; }}
  .error {{ color: #b00020; }}
  #image-container {{ overflow: hidden; max-width: 640px; }}
  #uploaded-image {{ max-width: 100%; transition: transform 0.2s; }}
</style>
</head>
<body>
<h1>Multi-Cancer Classification</h1>
{status}
{notice}
<form method="post" action="/upload" enctype="multipart/form-data">
  <input id="image-upload" type="file" name="file" accept="image/*">
  <button type="submit">Upload</button>
</form>
<div id="image-container">{image}</div>
<div>
  {_button("zoom-in", "/zoom-in", "Zoom In")}
  {_button("zoom-out", "/zoom-out", "Zoom Out")}
  {_button("rotate-left", "/rotate-left", "Rotate Left")}
  {_button("rotate-right", "/rotate-right", "Rotate Right")}
</div>
{_button("predict-button", "/predict", "Predict", disabled=not session.can_predict, hidden=session.upload is None)}
<div id="result">{esc(session.result_text)}</div>
{top}
{report}
</body>
</html>
"""


def create_app(config: Optional[OncoLiteConfig] = None, session: Optional[Session] = None) -> FastAPI:
    """
    Build the page application.

    One :class:`Session` backs the app. The model load is started when the
    app starts up and runs in the background; the page is served meanwhile
    with the predict button disabled.
    """
    if session is None:
        session = Session(config=config or OncoLiteConfig.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = asyncio.create_task(session.initialize())
        app.state.model_task = task
        yield
        if not task.done():
            task.cancel()

    app = FastAPI(
        title="OncoLite",
        description="Multi-cancer image classification with PDF reporting",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.session = session

    @app.exception_handler(OncoLiteError)
    async def handle_oncolite_error(request: Request, exc: OncoLiteError):
        message = exc.message if isinstance(exc, MissingDemographicsError) else str(exc)
        if _wants_html(request):
            return RedirectResponse(f"/?error={quote(message)}", status_code=303)
        content = {"detail": message, "error": type(exc).__name__}
        if isinstance(exc, MissingDemographicsError):
            content["missing"] = exc.missing
        return JSONResponse(status_code=_status_for(exc), content=content)

    @app.get("/", response_class=HTMLResponse)
    async def index(error: Optional[str] = None):
        return render_page(session, error)

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(
            status="ok",
            model_status=session.model_status.value,
            model_error=session.model_error,
            labels=list(CLASS_LABELS),
        )

    @app.get("/labels")
    async def get_labels():
        """Get the class label table in model order."""
        return {"labels": list(CLASS_LABELS)}

    @app.get("/state")
    async def get_state():
        return session.snapshot()

    @app.post("/upload")
    async def upload(request: Request, file: UploadFile = File(...)):
        """Replace the displayed image with an uploaded file."""
        if file.content_type and not file.content_type.startswith("image/"):
            raise ImageDecodeError(f"File {file.filename} must be an image")
        content = await file.read()
        session.load_upload(content, file.filename)
        return _done(request, session)

    @app.get("/image")
    async def get_image(transformed: bool = False):
        """Uploaded image as PNG, optionally with zoom and rotation applied."""
        if session.upload is None:
            raise NoImageError("No image uploaded")
        img = session.upload.image
        if transformed:
            img = session.view.apply(img)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return Response(content=buf.getvalue(), media_type="image/png")

    @app.post("/predict")
    async def predict(request: Request):
        """Classify the uploaded image."""
        await session.predict()
        return _done(request, session)

    @app.post("/zoom-in")
    async def zoom_in(request: Request):
        session.zoom_in()
        return _done(request, session)

    @app.post("/zoom-out")
    async def zoom_out(request: Request):
        session.zoom_out()
        return _done(request, session)

    @app.post("/rotate-left")
    async def rotate_left(request: Request):
        session.rotate_left()
        return _done(request, session)

    @app.post("/rotate-right")
    async def rotate_right(request: Request):
        session.rotate_right()
        return _done(request, session)

    @app.post("/download-pdf")
    async def download_pdf(request: Request):
        """Show the demographics form."""
        session.show_report_form()
        return _done(request, session)

    @app.post("/generate-pdf")
    async def generate_pdf(
        name: str = Form(""),
        patient_id: str = Form(""),
        age: str = Form(""),
        gender: str = Form(""),
    ):
        """Validate demographics and return the PDF report as a download."""
        pdf = session.export_report(
            Demographics(name=name, patient_id=patient_id, age=age, gender=gender)
        )
        return Response(
            content=pdf,
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="{REPORT_FILENAME}"'},
        )

    return app
