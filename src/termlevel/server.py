import base64
import binascii
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from termlevel.consts import VERSION
from termlevel.domain.errors import ConfigurationError, ServiceError

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("termlevel.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"termlevel server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("termlevel server shutting down...")


app = FastAPI(
    title="termlevel server",
    description="Question generation and grading proxy for termlevel.",
    version=VERSION,
    lifespan=lifespan,
)


def get_llm_service():
    from termlevel.application.config import resolve_config
    from termlevel.application.factory import get_llm_service as build

    return build(resolve_config())


async def _call_service(action: str, method: str, *args):
    """Build the service, invoke ``method`` and map failures to HTTP errors."""
    try:
        service = get_llm_service()
        try:
            return await getattr(service, method)(*args)
        finally:
            await service.aclose()
    except Exception as e:
        _raise_for(e, action)


def _raise_for(e: Exception, action: str):
    if isinstance(e, ConfigurationError):
        logger.error(f"{action} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    if isinstance(e, ServiceError):
        logger.error(f"{action} failed: {e}")
        raise HTTPException(status_code=502, detail=str(e)) from e
    logger.error(f"{action} failed: {e}", exc_info=True)
    raise HTTPException(status_code=500, detail=str(e) or f"{action} failed") from e


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.get("/api/health")
async def api_health():
    return {"status": "ok", "message": "Server is running"}


# Fields default to empty so missing input maps to our own 400, not a 422.
class QuestionRequest(BaseModel):
    term: str = ""


class QuestionResponse(BaseModel):
    question: str


@app.post("/api/generate-question", response_model=QuestionResponse)
async def generate_question(req: QuestionRequest):
    if not req.term.strip():
        raise HTTPException(status_code=400, detail="No term provided")

    question = await _call_service("Question generation", "generate_question", req.term.strip())
    return QuestionResponse(question=question)


class GradeRequest(BaseModel):
    term: str = ""
    description: str = ""
    question: str = ""
    user_answer: str = Field(default="", alias="userAnswer")


class GradeResponse(BaseModel):
    score: int
    feedback: str
    modelAnswer: str


@app.post("/api/grade-answer", response_model=GradeResponse)
async def grade_answer(req: GradeRequest):
    if not req.term.strip() or not req.question.strip() or not req.user_answer.strip():
        raise HTTPException(status_code=400, detail="Missing required information")

    result = await _call_service(
        "Grading", "grade_answer", req.term.strip(), req.description, req.question, req.user_answer
    )
    return GradeResponse(score=result.score, feedback=result.feedback, modelAnswer=result.model_answer)


class RecognizeRequest(BaseModel):
    image: str = ""  # base64
    mime_type: str = Field(default="image/png", alias="mimeType")


@app.post("/api/recognize")
async def recognize_image(req: RecognizeRequest):
    try:
        image = base64.b64decode(req.image, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="Image must be base64 encoded") from None
    if not image:
        raise HTTPException(status_code=400, detail="No image provided")

    text = await _call_service("Text recognition", "recognize", image, req.mime_type)
    return {"text": text}
