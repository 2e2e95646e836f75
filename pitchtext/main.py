import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from pitchtext.config import ExtractionConfig
from pitchtext.exceptions import MalformedDocument
from pitchtext.extraction import DocumentExtractor
from pitchtext.models import DocumentResult
from pitchtext.ocr.factory import available_engines

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
)
logger = logging.getLogger(__name__)

ACCEPTED_CONTENT_TYPES = ("application/pdf", "application/octet-stream")

app = FastAPI(title="Pitch Deck Text Extraction API")

# CORS – allow the frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@app.get("/engines")
async def list_engines() -> dict:
    return {"engines": available_engines()}


@app.post("/extract", response_model=DocumentResult, response_model_by_alias=True)
async def extract_pdf(
    file: UploadFile = File(...),
    engine: Optional[str] = Form(None),
    raster_scale: Optional[float] = Form(None),
    ocr_language: Optional[str] = Form(None),
    max_pages: Optional[int] = Form(None),
):
    """Upload a PDF and return its page-indexed text."""
    if file.content_type not in ACCEPTED_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Only PDF files are accepted.")

    try:
        config = ExtractionConfig.from_env(
            ocr_engine=engine,
            raster_scale=raster_scale,
            ocr_language=ocr_language,
            max_pages=max_pages,
        )
        extractor = DocumentExtractor(config)
    except (ValidationError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    pdf_bytes = await file.read()
    try:
        result = await extractor.extract(pdf_bytes, file_name=file.filename)
    except MalformedDocument as exc:
        logger.warning("Rejected %s: %s", file.filename, exc)
        raise HTTPException(status_code=422, detail=exc.message) from exc

    return result
