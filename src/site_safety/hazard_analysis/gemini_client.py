"""Gemini completion client using the google.genai library."""

import json
import logging
from typing import Any, Dict, List, Optional

try:
    import google.genai as genai
    from google.genai import types
    GEMINI_AVAILABLE = True
except ImportError:
    GEMINI_AVAILABLE = False
    genai = None
    types = None

from site_safety.hazard_analysis.base import CompletionClient
from site_safety.hazard_analysis.config import Language, resolve_language
from site_safety.hazard_analysis.models import CompletionRequest

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
SUGGESTED_MODELS = ["gemini-2.5-flash", "gemini-2.0-flash", "gemini-flash-latest"]


class GeminiCompletionClient(CompletionClient):
    """Send hazard analysis requests to Gemini."""

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL):
        if not GEMINI_AVAILABLE:
            raise ImportError(
                "google.genai not installed. "
                "Install with: pip install google-genai"
            )

        self.client = genai.Client(api_key=api_key)  # type: ignore
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    def complete(self, request: CompletionRequest) -> Optional[str]:
        """Send a request to Gemini and return the reply text."""
        logger.info(f"Calling {self.model} for task: {request.task} (media: {request.has_media})")
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=self._build_contents(request),
                config=self._build_config(request),
            )
        except Exception as e:
            logger.error(f"Gemini API error for task {request.task}: {e}")
            self._raise_for_missing_model(e)
            raise
        return response.text

    async def complete_async(self, request: CompletionRequest) -> Optional[str]:
        """Asynchronously send a request to Gemini."""
        logger.info(f"Calling {self.model} asynchronously for task: {request.task}")
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=self._build_contents(request),
                config=self._build_config(request),
            )
        except Exception as e:
            logger.error(f"Gemini API async error for task {request.task}: {e}")
            self._raise_for_missing_model(e)
            raise
        return response.text

    def _build_contents(self, request: CompletionRequest) -> List[Any]:
        contents = [
            types.Content(
                role="user" if role == "user" else "model",
                parts=[types.Part.from_text(text=text)],
            )
            for role, text in request.history
        ]
        parts = []
        if request.media_bytes is not None:
            parts.append(types.Part.from_bytes(data=request.media_bytes, mime_type=request.mime_type))
        parts.append(types.Part.from_text(text=request.instruction_text))
        contents.append(types.Content(role="user", parts=parts))
        return contents

    def _build_config(self, request: CompletionRequest) -> Optional[Any]:
        if not request.expect_json:
            return None
        return types.GenerateContentConfig(response_mime_type="application/json")

    def _raise_for_missing_model(self, error: Exception) -> None:
        error_msg = str(error)
        if "404" not in error_msg and "not found" not in error_msg.lower():
            return

        try:
            available = sorted({
                m.name.replace("models/", "")
                for m in self.client.models.list()
                if "gemini" in m.name.lower() and "embedding" not in m.name.lower()
            } - {self.model})
            suggested = available[:5] or SUGGESTED_MODELS
        except Exception as list_error:
            logger.debug(f"Failed to list models: {list_error}")
            suggested = SUGGESTED_MODELS

        raise ValueError(
            f"Model '{self.model}' not found or not supported. "
            f"Please try one of: {', '.join(suggested)}. "
            f"Use --model flag to specify a different model. "
            f"Original error: {error_msg}"
        ) from error


class MockCompletionClient(CompletionClient):
    """Mock client for testing without real API calls."""

    def __init__(self, model: str = "mock-gemini", language: Language = Language.AUTO):
        self._model = model
        self.language = resolve_language(language)
        self.requests: List[CompletionRequest] = []
        self._mock_responses_ko: Dict[str, Any] = {
            "photo_analysis": {
                "hazards": [
                    "안전 난간 미설치로 인한 작업 발판 끝단 추락 위험",
                    "정리되지 않은 자재로 인한 작업자 전도 위험",
                ],
                "engineeringSolutions": ["작업 발판 끝단에 안전 난간 설치", "자재 적치 구역 구획"],
                "managementSolutions": ["작업 전 안전 점검 실시", "안전대 착용 관리 감독"],
                "relatedRegulations": ["산업안전보건기준에 관한 규칙 제13조 (안전난간의 구조 및 설치요건)"],
            },
            "risk_assessment": [
                {
                    "description": "고소 작업 중 안전대 미착용으로 인한 추락",
                    "severity": 5,
                    "likelihood": 3,
                    "countermeasures": "안전대 부착 설비 설치 및 착용 관리",
                },
                {
                    "description": "협착 위험이 있는 회전체 방호 덮개 미설치",
                    "severity": 4,
                    "likelihood": 2,
                    "countermeasures": "방호 덮개 설치 및 정비 시 전원 차단",
                },
            ],
            "additional_hazards": [
                {
                    "description": "분진 흡입으로 인한 호흡기 질환",
                    "severity": 3,
                    "likelihood": 3,
                    "countermeasures": "국소 배기 장치 설치 및 방진 마스크 지급",
                },
            ],
            "safety_qa": "작업 전 위험성 평가를 실시하고 개인 보호구를 반드시 착용하십시오.",
        }
        self._mock_responses_en: Dict[str, Any] = {
            "photo_analysis": {
                "hazards": [
                    "Fall risk at the scaffold edge due to missing safety railing",
                    "Trip risk from unsecured materials on the walkway",
                ],
                "engineeringSolutions": ["Install guard rails on the scaffold edge"],
                "managementSolutions": ["Daily pre-work safety inspection"],
                "relatedRegulations": ["Occupational Safety and Health Standards, guard rail requirements"],
            },
            "risk_assessment": [
                {
                    "description": "Fall from height while working without a harness",
                    "severity": 5,
                    "likelihood": 3,
                    "countermeasures": "Provide anchor points and enforce harness use",
                },
            ],
            "additional_hazards": [
                {
                    "description": "Respiratory illness from dust exposure",
                    "severity": 3,
                    "likelihood": 3,
                    "countermeasures": "Local exhaust ventilation and dust masks",
                },
            ],
            "safety_qa": "Carry out a risk assessment before work and always wear protective equipment.",
        }

    @property
    def model(self) -> str:
        return self._model

    def complete(self, request: CompletionRequest) -> Optional[str]:
        """Mock completion based on the request task."""
        self.requests.append(request)
        if self.language == Language.EN:
            responses = self._mock_responses_en
        else:
            responses = self._mock_responses_ko

        data = responses.get(request.task)
        if data is None:
            data = [] if request.expect_json else ""
        if isinstance(data, str):
            return data
        return json.dumps(data, ensure_ascii=False)
