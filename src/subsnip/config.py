"""Configuration management for subsnip."""

import os
from pathlib import Path

import yaml

from .models import Settings

DEFAULT_CONFIG = """# Model used for network OCR and AI translation
ai_model: "gemini-2.5-flash"

# Language to translate into (name, e.g. "Vietnamese", "English")
target_language: "Vietnamese"

# Translate snips automatically after OCR (live mode always translates)
auto_translate: true

# Seconds between live samples
# Lower = more responsive but more OCR work
live_interval: 1.5

# Upscale factor applied to the cropped region before OCR
upscale_factor: 2.0

# Keep only near-white pixels (white subtitles) before local OCR
isolate_subtitles: true

# Color distance from pure white below which a pixel counts as subtitle text
isolation_limit: 45

# Live text shorter than this is treated as capture noise
min_text_length: 2

# Tesseract language packs for local OCR
local_ocr_languages: "eng+vie"

# Seconds to wait for the first frame of a capture source
capture_timeout: 5.0

# Seconds to let a fresh capture stream settle before grabbing a still
capture_settle: 0.5
"""


class Config:
    """Application configuration."""

    def __init__(
        self,
        ai_model: str = "gemini-2.5-flash",
        target_language: str = "Vietnamese",
        auto_translate: bool = True,
        live_interval: float = 1.5,
        upscale_factor: float = 2.0,
        isolate_subtitles: bool = True,
        isolation_limit: float = 45.0,
        min_text_length: int = 2,
        local_ocr_languages: str = "eng+vie",
        capture_timeout: float = 5.0,
        capture_settle: float = 0.5,
        api_key: str | None = None,
    ):
        self.ai_model = ai_model
        self.target_language = target_language
        self.auto_translate = auto_translate
        self.live_interval = live_interval
        self.upscale_factor = upscale_factor
        self.isolate_subtitles = isolate_subtitles
        self.isolation_limit = isolation_limit
        self.min_text_length = min_text_length
        self.local_ocr_languages = local_ocr_languages
        self.capture_timeout = capture_timeout
        self.capture_settle = capture_settle
        self.api_key = api_key if api_key is not None else _api_key_from_env()

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load configuration from YAML file.

        Args:
            config_path: Path to config file. If None, looks for config.yml
                        in common locations.

        Returns:
            Config instance with loaded values.
        """
        if config_path is None:
            search_paths = [
                Path("config.yml"),
                Path(__file__).parent.parent / "config.yml",
                Path.home() / ".subsnip" / "config.yml",
            ]
            for path in search_paths:
                if path.exists():
                    config_path = str(path)
                    break

        if config_path and os.path.exists(config_path):
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            return cls.from_dict(data)

        # No config file found - create default in home directory
        config = cls()
        config._create_default_config()
        return config

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Build a Config from parsed YAML, falling back to defaults."""
        return cls(
            ai_model=data.get("ai_model", "gemini-2.5-flash"),
            target_language=data.get("target_language", "Vietnamese"),
            auto_translate=bool(data.get("auto_translate", True)),
            live_interval=float(data.get("live_interval", 1.5)),
            upscale_factor=float(data.get("upscale_factor", 2.0)),
            isolate_subtitles=bool(data.get("isolate_subtitles", True)),
            isolation_limit=float(data.get("isolation_limit", 45)),
            min_text_length=int(data.get("min_text_length", 2)),
            local_ocr_languages=data.get("local_ocr_languages", "eng+vie"),
            capture_timeout=float(data.get("capture_timeout", 5.0)),
            capture_settle=float(data.get("capture_settle", 0.5)),
            api_key=data.get("api_key"),
        )

    def settings(self) -> Settings:
        """Snapshot of the user-facing settings."""
        return Settings(
            ai_model=self.ai_model,
            target_language=self.target_language,
            auto_translate=self.auto_translate,
        )

    def _create_default_config(self) -> None:
        """Create a default config file in the user's home directory."""
        config_dir = Path.home() / ".subsnip"
        config_path = config_dir / "config.yml"

        if config_path.exists():
            return

        config_dir.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(DEFAULT_CONFIG)

        print(f"Created default config at: {config_path}")


def _api_key_from_env() -> str | None:
    return os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")
