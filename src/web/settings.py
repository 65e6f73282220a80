from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv(override=False)


@dataclass(frozen=True)
class WebSettings:
    """
    Frontend settings loaded from environment variables.

    Env vars:
    - API_URL: backend base URL. Default 'http://localhost:3001'
    - API_TIMEOUT: seconds per backend call. Default 10
    - WEB_HOST, WEB_PORT: bind address for uvicorn. Default 0.0.0.0:3000
    - LOG_LEVEL: root log level. Default 'INFO'
    """

    api_url: str
    api_timeout: float
    host: str
    port: int
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value.strip() == "":
        return default
    return value.strip()


# PUBLIC_INTERFACE
def get_web_settings() -> WebSettings:
    try:
        timeout = float(_get_env("API_TIMEOUT", "10"))
    except ValueError:
        timeout = 10.0
    try:
        port = int(_get_env("WEB_PORT", "3000"))
    except ValueError:
        port = 3000
    return WebSettings(
        api_url=_get_env("API_URL", "http://localhost:3001"),
        api_timeout=timeout,
        host=_get_env("WEB_HOST", "0.0.0.0"),
        port=port,
        log_level=_get_env("LOG_LEVEL", "INFO").upper(),
    )
