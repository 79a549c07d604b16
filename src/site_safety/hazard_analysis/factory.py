"""Factory for creating completion clients based on model names."""

import logging
import os
from typing import Optional

from .base import CompletionClient

logger = logging.getLogger(__name__)


def create_client(
    model: str,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    **kwargs
) -> CompletionClient:
    """Create a completion client based on the model name.

    Args:
        model: Model identifier (e.g., "gemini-2.5-flash", "qwen-vl-max", "mock")
        api_key: API key for the service (if required)
        base_url: Custom base URL for OpenAI-compatible endpoints
        **kwargs: Additional arguments passed to the client constructor

    Returns:
        CompletionClient instance

    Raises:
        ValueError: If model is not recognized or required parameters are missing
        ImportError: If required dependencies are not installed
    """
    model_lower = model.lower()

    if model_lower.startswith("mock"):
        from .gemini_client import MockCompletionClient
        return MockCompletionClient(model=model, **kwargs)

    if model_lower.startswith("gemini"):
        from .gemini_client import GeminiCompletionClient
        api_key = api_key or os.environ.get("GOOGLE_API_KEY")
        if not api_key:
            raise ValueError(
                "API key required for Gemini models. "
                "Provide --api-key or set GOOGLE_API_KEY environment variable."
            )
        return GeminiCompletionClient(api_key=api_key, model=model, **kwargs)

    if model_lower.startswith("qwen"):
        from .qwen_client import QwenCompletionClient
        api_key = api_key or os.environ.get("QWEN_API_KEY") or os.environ.get("DASHSCOPE_API_KEY")
        if not api_key:
            raise ValueError(
                "API key required for Qwen models. "
                "Provide --api-key or set QWEN_API_KEY/DASHSCOPE_API_KEY environment variable."
            )
        if "vl" not in model_lower:
            logger.info(
                f"Note: '{model}' is not a vision-language model; image requests need "
                f"qwen-vl-plus or qwen-vl-max"
            )
        return QwenCompletionClient(api_key=api_key, model=model, base_url=base_url, **kwargs)

    raise ValueError(
        f"Unrecognized model: {model}. "
        f"Supported models: gemini-*, qwen-*, mock\n"
        f"Gemini examples: gemini-2.5-flash, gemini-2.0-flash, gemini-flash-latest\n"
        f"Qwen examples: qwen-vl-max, qwen-vl-plus"
    )
