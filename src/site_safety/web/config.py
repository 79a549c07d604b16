"""Settings for the site-safety web API.

Values come from, in increasing priority: built-in defaults, the JSON file
at ``~/.site-safety/config.json``, ``SITE_SAFETY_*`` environment variables
and explicit constructor arguments. API keys are only read from the
environment or passed in; they are never written back to disk.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from site_safety.hazard_analysis.compressor import (
    DEFAULT_CEILING_BYTES,
    DEFAULT_MIN_HEIGHT,
    DEFAULT_MIN_WIDTH,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_LANGUAGE = "auto"

CONFIG_FILE_PATH = Path.home() / ".site-safety" / "config.json"

ENV_GOOGLE_API_KEY = "GOOGLE_API_KEY"
ENV_QWEN_API_KEY = "QWEN_API_KEY"
ENV_PREFIX = "SITE_SAFETY_"

_SECRET_FIELDS = ("google_api_key", "qwen_api_key")
_INT_FIELDS = ("ceiling_bytes", "min_width", "min_height")


def _positive_int(name: str, value: Any, default: int) -> int:
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring {name}={value!r}: not an integer")
        return default
    if number <= 0:
        logger.warning(f"Ignoring {name}={value!r}: must be positive")
        return default
    return number


@dataclass
class WebConfig:
    """Model selection, credentials and upload limits for the API."""
    model: str = DEFAULT_MODEL
    language: str = DEFAULT_LANGUAGE
    google_api_key: Optional[str] = field(default=None, repr=False)
    qwen_api_key: Optional[str] = field(default=None, repr=False)
    ceiling_bytes: int = DEFAULT_CEILING_BYTES
    min_width: int = DEFAULT_MIN_WIDTH
    min_height: int = DEFAULT_MIN_HEIGHT

    def __post_init__(self):
        self.model = self.model or DEFAULT_MODEL
        self.language = self.language or DEFAULT_LANGUAGE
        self.google_api_key = self.google_api_key or os.environ.get(ENV_GOOGLE_API_KEY)
        self.qwen_api_key = self.qwen_api_key or os.environ.get(ENV_QWEN_API_KEY)
        self.ceiling_bytes = _positive_int("ceiling_bytes", self.ceiling_bytes, DEFAULT_CEILING_BYTES)
        self.min_width = _positive_int("min_width", self.min_width, DEFAULT_MIN_WIDTH)
        self.min_height = _positive_int("min_height", self.min_height, DEFAULT_MIN_HEIGHT)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "WebConfig":
        """Build a config from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**{key: value for key, value in data.items() if key in known})

    @classmethod
    def load_from_file(cls, config_path: Optional[Path] = None) -> "WebConfig":
        """Load the JSON config file, then apply environment overrides.

        A missing file yields the defaults; an unreadable one is logged and
        ignored.
        """
        config_path = config_path or CONFIG_FILE_PATH
        data: Dict[str, Any] = {}
        if config_path.exists():
            try:
                data = json.loads(config_path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Failed to load config file {config_path}: {e}")
                data = {}
            if not isinstance(data, dict):
                logger.warning(f"Config file {config_path} does not hold a JSON object")
                data = {}
        data.update(_environment_overrides())
        return cls.from_mapping(data)

    def save_to_file(self, config_path: Optional[Path] = None) -> None:
        """Write the non-secret settings to the JSON config file."""
        config_path = config_path or CONFIG_FILE_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)
        data = {key: value for key, value in asdict(self).items() if key not in _SECRET_FIELDS}
        try:
            config_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to save config file {config_path}: {e}")

    def get_api_key(self) -> Optional[str]:
        """API key matching the selected model family, if any."""
        model = self.model.lower()
        if model.startswith("gemini"):
            return self.google_api_key
        if model.startswith("qwen"):
            return self.qwen_api_key
        return None

    def limits(self) -> Dict[str, int]:
        """Compression limits as keyword arguments for the pipeline."""
        return {
            "ceiling_bytes": self.ceiling_bytes,
            "min_width": self.min_width,
            "min_height": self.min_height,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Settings safe to expose over the API: keys are reported as set/unset only."""
        data = {key: value for key, value in asdict(self).items() if key not in _SECRET_FIELDS}
        for key in _SECRET_FIELDS:
            data[f"{key}_set"] = bool(getattr(self, key))
        return data


def _environment_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for name in ("model", "language") + _INT_FIELDS:
        value = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
        if value:
            overrides[name] = value
    return overrides


def get_default_config() -> WebConfig:
    """Create default configuration for web application."""
    return WebConfig.load_from_file()
