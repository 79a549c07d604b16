"""Qwen completion client using the OpenAI-compatible API."""

import base64
import logging
from typing import Any, Dict, List, Optional

try:
    import openai
    from openai import AsyncOpenAI
    QWEN_AVAILABLE = True
except ImportError:
    QWEN_AVAILABLE = False
    openai = None
    AsyncOpenAI = None

from site_safety.hazard_analysis.base import CompletionClient
from site_safety.hazard_analysis.models import CompletionRequest

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://dashscope.aliyuncs.com/compatible-mode/v1"
DEFAULT_TIMEOUT = 60.0


class QwenCompletionClient(CompletionClient):
    """Send hazard analysis requests to Qwen through an OpenAI-compatible endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = "qwen-vl-max",
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if not QWEN_AVAILABLE:
            raise ImportError(
                "openai package not installed. "
                "Install with: pip install openai"
            )

        self._model = model

        client_kwargs: Dict[str, Any] = {
            "api_key": api_key,
            "base_url": base_url or DEFAULT_BASE_URL,
            "timeout": timeout,
        }
        self.client = openai.OpenAI(**client_kwargs)  # type: ignore
        self.async_client = AsyncOpenAI(**client_kwargs)  # type: ignore

    @property
    def model(self) -> str:
        return self._model

    def complete(self, request: CompletionRequest) -> Optional[str]:
        """Send a request to Qwen and return the reply text."""
        logger.info(f"Calling {self.model} for task: {request.task} (media: {request.has_media})")
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=self._build_messages(request),
            )
        except Exception as e:
            logger.error(f"Qwen API error for task {request.task}: {e}")
            self._translate_error(e)
            raise
        return response.choices[0].message.content

    async def complete_async(self, request: CompletionRequest) -> Optional[str]:
        """Asynchronously send a request to Qwen."""
        logger.info(f"Calling {self.model} asynchronously for task: {request.task}")
        try:
            response = await self.async_client.chat.completions.create(
                model=self.model,
                messages=self._build_messages(request),
            )
        except Exception as e:
            logger.error(f"Qwen API async error for task {request.task}: {e}")
            self._translate_error(e)
            raise
        return response.choices[0].message.content

    def _build_messages(self, request: CompletionRequest) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = [
            {"role": "user" if role == "user" else "assistant", "content": text}
            for role, text in request.history
        ]
        content: List[Dict[str, Any]] = [{"type": "text", "text": request.instruction_text}]
        if request.media_bytes is not None:
            encoded = base64.b64encode(request.media_bytes).decode()
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{request.mime_type};base64,{encoded}"},
            })
        messages.append({"role": "user", "content": content})
        return messages

    def _translate_error(self, error: Exception) -> None:
        error_msg = str(error)
        if "404" in error_msg or "not found" in error_msg.lower():
            if "vl" in self.model.lower():
                suggestions = ["qwen-vl-plus", "qwen-vl-max"]
            else:
                suggestions = ["qwen-max", "qwen-plus", "qwen-turbo"]
            raise ValueError(
                f"Model '{self.model}' not found or not supported. "
                f"Please check the model name. Supported Qwen models include: "
                f"{', '.join(suggestions)}."
            ) from error
        if "401" in error_msg or "auth" in error_msg.lower():
            raise ValueError(
                "Authentication failed. Please check your API key. "
                "Set QWEN_API_KEY or DASHSCOPE_API_KEY environment variable."
            ) from error
        if "timeout" in error_msg.lower() or "timed out" in error_msg.lower():
            raise TimeoutError(
                f"Qwen API call timed out. This could be due to network issues "
                f"or model availability. Model: {self.model}"
            ) from error
