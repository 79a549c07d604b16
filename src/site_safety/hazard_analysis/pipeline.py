"""Run an image through compression, the AI service and response parsing."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterator, List, Optional, Sequence, Tuple, Union

from site_safety.hazard_analysis.base import CompletionClient
from site_safety.hazard_analysis.compressor import (
    DEFAULT_CEILING_BYTES,
    DEFAULT_MIN_HEIGHT,
    DEFAULT_MIN_WIDTH,
    reduce_media,
)
from site_safety.hazard_analysis.config import (
    MAX_HISTORY_TURNS,
    Language,
    build_additional_hazards_prompt,
    build_photo_analysis_prompt,
    build_risk_assessment_prompt,
    build_safety_qa_prompt,
    placeholder_for,
)
from site_safety.hazard_analysis.exceptions import EmptyResponse, HazardAnalysisError
from site_safety.hazard_analysis.models import (
    AnalysisKind,
    CompletionRequest,
    HazardRecord,
    PhotoAnalysisRecord,
    RawMedia,
)
from site_safety.hazard_analysis.response_parser import (
    coerce_additional_hazards,
    coerce_hazard_list,
    coerce_photo_analysis,
    parse,
)

logger = logging.getLogger(__name__)

SAFETY_QA_TASK = "safety_qa"

AICall = Callable[[CompletionRequest], Optional[str]]
AsyncAICall = Callable[[CompletionRequest], Awaitable[Optional[str]]]
PipelineResult = Union[List[HazardRecord], PhotoAnalysisRecord]


@dataclass
class PipelineContext:
    """What to ask the AI service, and how hard to compress the image first."""
    kind: AnalysisKind = AnalysisKind.PHOTO_ANALYSIS
    description: Optional[str] = None
    process_name: str = ""
    existing_hazards: List[str] = field(default_factory=list)
    language: Language = Language.AUTO
    ceiling_bytes: int = DEFAULT_CEILING_BYTES
    min_width: int = DEFAULT_MIN_WIDTH
    min_height: int = DEFAULT_MIN_HEIGHT


@contextmanager
def _stage(name: str) -> Iterator[None]:
    """Tag core errors with the stage they came from and re-raise them."""
    try:
        yield
    except HazardAnalysisError as e:
        e.stage = name
        logger.error(f"Pipeline stage '{name}' failed: {e}")
        raise


def _build_instruction(context: PipelineContext) -> str:
    if context.kind == AnalysisKind.RISK_ASSESSMENT:
        return build_risk_assessment_prompt(
            context.process_name, context.description, context.language
        )
    if context.kind == AnalysisKind.ADDITIONAL_HAZARDS:
        return build_additional_hazards_prompt(
            context.process_name, context.existing_hazards, context.language
        )
    return build_photo_analysis_prompt(context.description, context.language)


def _prepare_media(
    raw_media: Optional[RawMedia], ceiling_bytes: int, min_width: int, min_height: int
) -> Tuple[Optional[bytes], Optional[str]]:
    if raw_media is None:
        return None, None
    with _stage("reduce"):
        compressed = reduce_media(raw_media, ceiling_bytes, min_width, min_height)
    return compressed.data, compressed.mime_type


def build_request(raw_media: Optional[RawMedia], context: PipelineContext) -> CompletionRequest:
    """Compress the media (if any) and assemble the AI request payload."""
    media_bytes, mime_type = _prepare_media(
        raw_media, context.ceiling_bytes, context.min_width, context.min_height
    )
    return CompletionRequest(
        instruction_text=_build_instruction(context),
        media_bytes=media_bytes,
        mime_type=mime_type,
        task=context.kind.value,
        expect_json=True,
    )


def _require_text(text: Any) -> str:
    if not isinstance(text, str) or not text.strip():
        raise EmptyResponse(
            "Could not extract usable text from the AI response: it was empty or not text"
        )
    return text


def _coerce(value: Any, context: PipelineContext) -> PipelineResult:
    placeholder = placeholder_for(context.language)
    if context.kind == AnalysisKind.RISK_ASSESSMENT:
        return coerce_hazard_list(value, placeholder)
    if context.kind == AnalysisKind.ADDITIONAL_HAZARDS:
        return coerce_additional_hazards(value, placeholder)
    return coerce_photo_analysis(value)


def process_response(text: Any, context: PipelineContext) -> PipelineResult:
    """Turn a raw AI reply into typed records for ``context.kind``."""
    with _stage("ai_call"):
        text = _require_text(text)
    with _stage("parse"):
        value = parse(text)
    with _stage("coerce"):
        return _coerce(value, context)


def run_pipeline(
    raw_media: Optional[RawMedia],
    ai_call: AICall,
    context: Optional[PipelineContext] = None,
) -> PipelineResult:
    """Compress, ask the AI service once, and coerce its reply.

    Args:
        raw_media: Image to send along, or None for a text-only request
        ai_call: Callable performing the AI request, e.g. ``client.complete``
        context: Analysis kind, prompt inputs and compression limits

    Returns:
        A list of HazardRecord for risk assessments, a PhotoAnalysisRecord
        for photo analyses

    Raises:
        MediaDecodeError: The image could not be decoded (stage "reduce")
        EmptyResponse: The AI reply was missing or blank (stage "ai_call")
        ParseFailure: No JSON could be recovered (stage "parse")
        SchemaMismatch: Valid JSON of an unknown shape (stage "coerce")
    """
    context = context or PipelineContext()
    request = build_request(raw_media, context)
    text = ai_call(request)
    return process_response(text, context)


async def run_pipeline_async(
    raw_media: Optional[RawMedia],
    ai_call: AsyncAICall,
    context: Optional[PipelineContext] = None,
) -> PipelineResult:
    """Same as :func:`run_pipeline` with an awaitable AI call.

    Compression still runs synchronously and cannot be interrupted once
    started; wrap the whole coroutine in a task to cancel it.
    """
    context = context or PipelineContext()
    request = build_request(raw_media, context)
    text = await ai_call(request)
    return process_response(text, context)


def analyze_photo(
    client: CompletionClient,
    media: RawMedia,
    description: Optional[str] = None,
    language: Language = Language.AUTO,
    **limits: int,
) -> PhotoAnalysisRecord:
    """Find hazards and improvement suggestions in a work-site photo."""
    context = PipelineContext(
        kind=AnalysisKind.PHOTO_ANALYSIS, description=description, language=language, **limits
    )
    return run_pipeline(media, client.complete, context)  # type: ignore[return-value]


def generate_risk_assessment(
    client: CompletionClient,
    media: RawMedia,
    process_name: str,
    description: Optional[str] = None,
    language: Language = Language.AUTO,
    **limits: int,
) -> List[HazardRecord]:
    """Rate the hazards of a process or piece of equipment shown in a photo."""
    context = PipelineContext(
        kind=AnalysisKind.RISK_ASSESSMENT,
        process_name=process_name,
        description=description,
        language=language,
        **limits,
    )
    return run_pipeline(media, client.complete, context)  # type: ignore[return-value]


def generate_additional_hazards(
    client: CompletionClient,
    process_name: str,
    existing_hazards: Sequence[str] = (),
    language: Language = Language.AUTO,
) -> List[HazardRecord]:
    """Ask for hazards not already listed in ``existing_hazards`` (text only)."""
    context = PipelineContext(
        kind=AnalysisKind.ADDITIONAL_HAZARDS,
        process_name=process_name,
        existing_hazards=list(existing_hazards),
        language=language,
    )
    return run_pipeline(None, client.complete, context)  # type: ignore[return-value]


def answer_safety_question(
    client: CompletionClient,
    question: str,
    history: Optional[Sequence[Tuple[str, str]]] = None,
    media: Optional[RawMedia] = None,
    language: Language = Language.AUTO,
    ceiling_bytes: int = DEFAULT_CEILING_BYTES,
    min_width: int = DEFAULT_MIN_WIDTH,
    min_height: int = DEFAULT_MIN_HEIGHT,
) -> str:
    """Answer a free-text safety question, optionally about an image.

    Args:
        client: Completion client
        question: The user's question
        history: Previous turns as ``(sender, text)``; sender is "user" or "ai".
            Only the last few turns are sent.
        media: Optional image the question refers to
        language: Answer language

    Returns:
        The assistant's answer text
    """
    media_bytes, mime_type = _prepare_media(media, ceiling_bytes, min_width, min_height)

    turns: List[Tuple[str, str]] = [("user", build_safety_qa_prompt(media is not None, language))]
    for sender, text in list(history or [])[-MAX_HISTORY_TURNS:]:
        turns.append(("user" if sender == "user" else "model", text))

    request = CompletionRequest(
        instruction_text=question,
        media_bytes=media_bytes,
        mime_type=mime_type,
        task=SAFETY_QA_TASK,
        history=turns,
        expect_json=False,
    )
    answer = client.complete(request)
    with _stage("ai_call"):
        return _require_text(answer)
