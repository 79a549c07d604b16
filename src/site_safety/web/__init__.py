"""site-safety web interface.

``site_safety.web.api:app`` is the ASGI application for external servers;
it is created on first access.
"""

from .api import create_app
from .config import WebConfig, get_default_config

__all__ = ["create_app", "WebConfig", "get_default_config"]
