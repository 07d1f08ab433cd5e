import logging
import uuid
from typing import List, Optional

from fastapi import FastAPI, File, HTTPException, UploadFile

from slidecast.config import settings
from slidecast.models.schemas import ProgressEntry, SlideDeck, SummarizeTextRequest
from slidecast.services.document_text import pdf_bytes_to_text, sanitize_and_clamp
from slidecast.services.elevenlabs_service import ElevenLabsService
from slidecast.services.errors import ServiceError
from slidecast.services.longcat_service import CompletionService
from slidecast.services.summarize_service import summarize_to_slides

VERSION = "0.2.0"

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Slidecast API",
    description="Summarize documents into narrated slide decks",
    version=VERSION
)

# Initialize services; credentials are resolved once here
completion_service = CompletionService.from_settings(settings)
tts_service = ElevenLabsService.from_settings(settings)

MAX_UPLOAD_BYTES = 25 * 1024 * 1024


def _progress(progress: List[ProgressEntry], step: str, status: str, detail: Optional[str] = None) -> None:
    progress.append(ProgressEntry(step=step, status=status, detail=detail))


def _fail(progress: List[ProgressEntry], step: str, status_code: int, message: str) -> HTTPException:
    _progress(progress, step, "error", message)
    return HTTPException(
        status_code=status_code,
        detail={"error": message, "progress": [p.model_dump() for p in progress]}
    )


async def _summarize(text: str, progress: List[ProgressEntry]) -> dict:
    _progress(progress, "plan", "started")
    try:
        summary = await summarize_to_slides(text, completion_service)
    except ValueError as e:
        raise _fail(progress, "plan", 400, str(e))
    except ServiceError as e:
        logger.error(f"Planning failed ({e.kind.value}): {e}")
        raise _fail(progress, "plan", 502, str(e))

    for warning in summary.warnings:
        _progress(progress, "plan", "info", warning)
    for index, slide in enumerate(summary.deck.slides, start=1):
        _progress(progress, "plan", "info", f"Slide {index}: {slide.headline} - {slide.paragraph[:160]}")
    _progress(progress, "plan", "completed", f"{len(summary.deck.slides)} slides planned")

    return {
        "deck": summary.deck.model_dump(mode="json"),
        "stats": summary.stats.model_dump(),
        "warnings": summary.warnings,
        "progress": [p.model_dump() for p in progress],
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": VERSION,
        "completion_configured": completion_service.is_configured(),
        "tts_configured": tts_service.is_configured(),
    }


@app.post("/api/summarize")
async def summarize_pdf(file: UploadFile = File(...)):
    """
    Upload a PDF and summarize it into a slide deck.
    """
    if not file.filename or not file.filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="Only PDF files are accepted")

    progress: List[ProgressEntry] = []
    _progress(progress, "analyze", "started")

    data = await file.read()
    if len(data) > MAX_UPLOAD_BYTES:
        raise _fail(progress, "analyze", 413, "PDF exceeds the 25 MB upload limit")

    document = pdf_bytes_to_text(data)
    text = sanitize_and_clamp(document.text, settings.MAX_SOURCE_CHARS)
    if not text.strip():
        raise _fail(progress, "analyze", 400, "Unable to extract usable text from PDF")

    logger.info(f"Extracted {len(text)} chars from {file.filename} ({document.page_count} pages)")
    _progress(progress, "analyze", "completed", f"Extracted {len(text)} chars")
    excerpt = " ".join(text[:180].split())
    if excerpt:
        _progress(progress, "analyze", "info", f"Excerpt: {excerpt}")

    return await _summarize(text, progress)


@app.post("/api/summarize-text")
async def summarize_text(request: SummarizeTextRequest):
    """
    Summarize already-extracted plain text into a slide deck.
    """
    progress: List[ProgressEntry] = []
    text = sanitize_and_clamp(request.text, settings.MAX_SOURCE_CHARS)
    _progress(progress, "analyze", "completed", f"Received {len(text)} chars")
    return await _summarize(text, progress)


@app.post("/api/voiceover")
async def create_voiceover(deck: SlideDeck):
    """
    Synthesize one headline clip per slide, in slide order.
    """
    if not tts_service.is_configured():
        raise HTTPException(status_code=400, detail="Server is missing speech API keys")

    job_id = str(uuid.uuid4())[:8]
    output_dir = settings.OUTPUTS_DIR / job_id
    progress: List[ProgressEntry] = []
    _progress(progress, "tts", "started")

    narration = await tts_service.synthesize_slides(deck, output_dir)
    if narration.complete:
        _progress(progress, "tts", "completed", f"Generated {len(narration.clips)} voiceover clips")
    else:
        _progress(
            progress, "tts", "info",
            f"Voiceover disabled after failure on slide {narration.failed_slide}: {narration.error}"
        )

    return {
        "job_id": job_id,
        "complete": narration.complete,
        "clips": [clip.model_dump() for clip in narration.clips],
        "total_duration_seconds": round(sum(c.duration_seconds for c in narration.clips), 2),
        "error": narration.error,
        "progress": [p.model_dump() for p in progress],
    }
