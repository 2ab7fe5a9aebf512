"""Configuration management for blockerwatch.

Loads settings from a YAML configuration file with environment variable
overrides for sensitive values (API keys). Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings

from blockerwatch.domain.models import BlockerSignature

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/blockerwatch.yaml")

DEFAULT_DEVELOPER_WINDOWS = [
    "terminal",
    "console",
    "iterm",
    "vscode",
    "vs code",
    "visual studio",
    "intellij",
    "pycharm",
    "webstorm",
    "sublime",
    "xcode",
    "android studio",
    "vim",
    "emacs",
]


class CaptureConfig(BaseModel):
    source: Literal["screen", "webcam"] = Field(default="screen")
    monitor_index: int = Field(default=1, ge=0, description="mss monitor index (0 = all monitors)")
    device_index: int = Field(default=0, ge=0, description="OpenCV camera device index")
    thumbnail_width: int = Field(default=1280, gt=0)
    thumbnail_height: int = Field(default=720, gt=0)
    debounce_seconds: float = Field(default=3.0, ge=0)


class OCRConfig(BaseModel):
    enabled: bool = Field(default=True)
    lang: str = Field(default="en")
    timeout: float = Field(default=30.0, gt=0)


class VisionConfig(BaseModel):
    enabled: bool = Field(default=True)
    provider: Literal["openai", "anthropic"] = Field(default="openai")
    model: str = Field(default="gpt-4o-mini")
    base_url: str | None = Field(default=None)
    max_tokens: int = Field(default=512, gt=0)
    timeout: float = Field(default=60.0, gt=0)
    gate_threshold: float = Field(
        default=0.7, ge=0.0, le=1.0,
        description="Vision only runs when OCR confidence is below this value",
    )


class LLMConfig(BaseModel):
    enabled: bool = Field(default=True)
    base_url: str = Field(default="http://localhost:11434")
    model: str = Field(default="phi3:3.8b")
    temperature: float = Field(default=0.3, ge=0.0)
    num_predict: int = Field(default=200, gt=0)
    timeout: float = Field(default=30.0, gt=0)


class DetectionConfig(BaseModel):
    activation_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    developer_windows: list[str] = Field(default_factory=lambda: list(DEFAULT_DEVELOPER_WINDOWS))
    ocr_text_limit: int = Field(default=200, gt=0)
    recent_errors_size: int = Field(default=10, gt=0)
    custom_signatures: list[BlockerSignature] = Field(default_factory=list)


class PrivacyConfig(BaseModel):
    capture_screenshots: bool = Field(
        default=True, description="If false, detection never captures the screen"
    )
    excluded_applications: list[str] = Field(
        default_factory=lambda: ["Slack", "Gmail", "Banking Apps"]
    )
    include_only_applications: list[str] = Field(default_factory=list)
    local_data_retention_days: int = Field(default=30, gt=0)

    def is_app_allowed(self, app_name: str) -> bool:
        """Whether the given foreground application may be analyzed.

        Names match case-insensitively anywhere in ``app_name``, so a window
        title like "Inbox - Gmail" counts as Gmail.
        """
        if not self.capture_screenshots:
            return False
        title = app_name.lower()
        if self.include_only_applications:
            return any(app.lower() in title for app in self.include_only_applications)
        return not any(app.lower() in title for app in self.excluded_applications)


class MonitorConfig(BaseModel):
    poll_interval: float = Field(default=2.0, gt=0)
    idle_threshold: float = Field(default=30.0, gt=0, description="Seconds on one window before it counts as dwelling")
    idle_check_interval: float = Field(default=15.0, gt=0)
    eviction_interval_hours: float = Field(default=6.0, gt=0)


class EndpointConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8765, ge=1, le=65535)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the blockerwatch system.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "BLOCKERWATCH_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # API Keys
    anthropic_api_key: SecretStr = Field(default=SecretStr(""))
    openai_api_key: SecretStr = Field(default=SecretStr(""))
    openrouter_api_key: SecretStr = Field(default=SecretStr(""))

    # Configuration sections
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    vision: VisionConfig = Field(default_factory=VisionConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    privacy: PrivacyConfig = Field(default_factory=PrivacyConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    endpoint: EndpointConfig = Field(default_factory=EndpointConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    # Load .env file manually for non-prefixed vars
    _load_dotenv()

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _load_dotenv() -> None:
    """Load .env file into os.environ if it exists."""
    env_path = Path(".env")
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                if not os.environ.get(key):
                    os.environ[key] = value


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply environment variable overrides for non-prefixed vars."""
    or_key = os.environ.get("OPENROUTER_API_KEY", "")
    or_base_url = os.environ.get("OPENROUTER_BASE_URL", "")
    vision_model = os.environ.get("VISION_MODEL", "")

    if or_key:
        yaml_data["openrouter_api_key"] = or_key

    if "vision" not in yaml_data or yaml_data["vision"] is None:
        yaml_data["vision"] = {}

    if or_key and not yaml_data["vision"].get("provider"):
        yaml_data["vision"]["provider"] = "openai"

    if or_base_url and not yaml_data["vision"].get("base_url"):
        yaml_data["vision"]["base_url"] = or_base_url

    if vision_model and not yaml_data["vision"].get("model"):
        yaml_data["vision"]["model"] = vision_model
