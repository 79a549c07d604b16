"""FastAPI web interface for site-safety."""

import base64
import binascii
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from site_safety import __version__
from site_safety.hazard_analysis import pipeline
from site_safety.hazard_analysis.base import CompletionClient
from site_safety.hazard_analysis.compressor import format_file_size, reduce_media
from site_safety.hazard_analysis.config import Language
from site_safety.hazard_analysis.exceptions import HazardAnalysisError, MediaDecodeError
from site_safety.hazard_analysis.factory import create_client
from site_safety.hazard_analysis.models import HazardRecord, RawMedia

from .config import WebConfig, get_default_config

logger = logging.getLogger(__name__)

router = APIRouter()


# Pydantic models for request/response


class CompressResponse(BaseModel):
    mime_type: str
    original_size: int
    final_size: int
    original_size_label: str
    final_size_label: str
    steps: int
    oversized: bool
    width: Optional[int] = None
    height: Optional[int] = None
    quality: Optional[float] = None
    data_base64: str


class PhotoAnalysisResponse(BaseModel):
    hazards: List[Any] = Field(default_factory=list)
    engineeringSolutions: List[Any] = Field(default_factory=list)
    managementSolutions: List[Any] = Field(default_factory=list)
    relatedRegulations: List[Any] = Field(default_factory=list)


class HazardResponse(BaseModel):
    description: str
    severity: int
    likelihood: int
    countermeasures: str
    risk_score: int
    risk_level: str


class AdditionalHazardsRequest(BaseModel):
    process_name: str = Field(..., description="Process or equipment name")
    existing_hazards: List[str] = Field(default_factory=list, description="Hazards already identified")


class ChatTurn(BaseModel):
    sender: str = Field(..., description="'user' or 'ai'")
    text: str


class QuestionRequest(BaseModel):
    question: str
    history: List[ChatTurn] = Field(default_factory=list)
    image_base64: Optional[str] = Field(None, description="Optional base64-encoded image")
    mime_type: Optional[str] = Field(None, description="MIME type of the image")


class AnswerResponse(BaseModel):
    answer: str


def _hazard_response(hazard: HazardRecord) -> HazardResponse:
    return HazardResponse(
        **hazard.to_dict(),
        risk_score=hazard.risk_score,
        risk_level=hazard.risk_level.value,
    )


def _error_detail(error: HazardAnalysisError) -> Dict[str, Any]:
    return {
        "error": type(error).__name__,
        "stage": error.stage,
        "message": str(error),
        "retryable": error.retryable,
    }


def _raise_http(error: HazardAnalysisError) -> None:
    status_code = 400 if isinstance(error, MediaDecodeError) else 502
    raise HTTPException(status_code=status_code, detail=_error_detail(error)) from error


def _raise_internal(error: Exception, action: str) -> None:
    logger.error(f"{action} failed: {error}", exc_info=True)
    raise HTTPException(
        status_code=500,
        detail=f"An internal error occurred during {action}. Please try again later.",
    ) from error


async def _read_upload(file: UploadFile) -> RawMedia:
    return RawMedia(
        data=await file.read(),
        mime_type=file.content_type or "application/octet-stream",
        filename=file.filename,
    )


@router.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now()}


@router.get("/api/config")
async def get_config(request: Request):
    """Current configuration, without secrets."""
    config: WebConfig = request.app.state.config
    client: CompletionClient = request.app.state.client
    return dict(config.to_dict(), active_model=client.model)


@router.post("/api/compress", response_model=CompressResponse)
async def compress_image(request: Request, file: UploadFile = File(...)):
    """Compress an uploaded image under the configured ceiling."""
    config: WebConfig = request.app.state.config
    media = await _read_upload(file)
    try:
        result = await run_in_threadpool(reduce_media, media, **config.limits())
    except HazardAnalysisError as e:
        e.stage = "reduce"
        _raise_http(e)
    return CompressResponse(
        **result.to_dict(),
        original_size_label=format_file_size(result.original_size),
        final_size_label=format_file_size(result.final_size),
        data_base64=base64.b64encode(result.data).decode(),
    )


@router.post("/api/photo-analysis", response_model=PhotoAnalysisResponse)
async def analyze_photo(
    request: Request,
    file: UploadFile = File(...),
    description: Optional[str] = Form(None),
):
    """Find hazards and improvement suggestions in a work-site photo."""
    config: WebConfig = request.app.state.config
    media = await _read_upload(file)
    try:
        result = await run_in_threadpool(
            pipeline.analyze_photo,
            request.app.state.client,
            media,
            description=description,
            language=Language.normalize(config.language),
            **config.limits(),
        )
    except HazardAnalysisError as e:
        _raise_http(e)
    except Exception as e:
        _raise_internal(e, "photo analysis")
    return PhotoAnalysisResponse(**result.to_dict())


@router.post("/api/risk-assessment", response_model=List[HazardResponse])
async def risk_assessment(
    request: Request,
    file: UploadFile = File(...),
    process_name: str = Form(...),
    description: Optional[str] = Form(None),
):
    """Generate a rated risk assessment from a photo."""
    config: WebConfig = request.app.state.config
    media = await _read_upload(file)
    try:
        hazards = await run_in_threadpool(
            pipeline.generate_risk_assessment,
            request.app.state.client,
            media,
            process_name,
            description=description,
            language=Language.normalize(config.language),
            **config.limits(),
        )
    except HazardAnalysisError as e:
        _raise_http(e)
    except Exception as e:
        _raise_internal(e, "risk assessment")
    return [_hazard_response(h) for h in hazards]


@router.post("/api/additional-hazards", response_model=List[HazardResponse])
async def additional_hazards(request: Request, body: AdditionalHazardsRequest):
    """Suggest hazards not already identified for a process."""
    config: WebConfig = request.app.state.config
    try:
        hazards = await run_in_threadpool(
            pipeline.generate_additional_hazards,
            request.app.state.client,
            body.process_name,
            body.existing_hazards,
            language=Language.normalize(config.language),
        )
    except HazardAnalysisError as e:
        _raise_http(e)
    except Exception as e:
        _raise_internal(e, "hazard suggestion")
    return [_hazard_response(h) for h in hazards]


@router.post("/api/qa", response_model=AnswerResponse)
async def ask_question(request: Request, body: QuestionRequest):
    """Answer a safety question, optionally about an image."""
    config: WebConfig = request.app.state.config
    media = None
    if body.image_base64:
        try:
            data = base64.b64decode(body.image_base64, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=400, detail="image_base64 is not valid base64")
        media = RawMedia(data=data, mime_type=body.mime_type or "image/jpeg")
    try:
        answer = await run_in_threadpool(
            pipeline.answer_safety_question,
            request.app.state.client,
            body.question,
            history=[(turn.sender, turn.text) for turn in body.history],
            media=media,
            language=Language.normalize(config.language),
            **config.limits(),
        )
    except HazardAnalysisError as e:
        _raise_http(e)
    except Exception as e:
        _raise_internal(e, "question answering")
    return AnswerResponse(answer=answer)


def _client_from_config(config: WebConfig) -> CompletionClient:
    api_key = config.get_api_key()
    if not api_key and not config.model.lower().startswith("mock"):
        logger.warning("No API key found, using mock client")
        return create_client("mock", language=Language.normalize(config.language))
    return create_client(config.model, api_key=api_key)


def create_app(
    config: Optional[WebConfig] = None,
    client: Optional[CompletionClient] = None,
) -> FastAPI:
    """Build the API application.

    The completion client is created once here and shared by every request.
    """
    config = config or get_default_config()
    app = FastAPI(
        title="site-safety API",
        description="AI-assisted hazard analysis for work-site photos",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.config = config
    app.state.client = client or _client_from_config(config)
    app.include_router(router)
    logger.info(f"API ready with model: {app.state.client.model}")
    return app


_app: Optional[FastAPI] = None


def __getattr__(name: str) -> Any:
    # ``app`` is built on first access, for ``uvicorn site_safety.web.api:app``
    if name == "app":
        global _app
        if _app is None:
            _app = create_app()
        return _app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
