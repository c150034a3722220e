"""
Scenic Roads configuration management.
Centralized configuration for the sources, HTTP clients and enrichment steps.
"""
from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from . import CACHE_DIR, INPUT_DIR, OUTPUT_DIR


class ConfigError(ValueError):
    """Raised when a configuration file cannot be used."""


@dataclass
class PathConfig:
    """File and directory paths configuration"""
    input_dir: Path = INPUT_DIR
    output_dir: Path = OUTPUT_DIR
    cache_dir: Path = CACHE_DIR

    def __post_init__(self):
        """Ensure paths are Path objects"""
        for field_name in self.__dataclass_fields__:
            value = getattr(self, field_name)
            if isinstance(value, str):
                setattr(self, field_name, Path(value))


@dataclass
class APIConfig:
    """External API configuration"""
    elevation_api_url: str = "https://api.open-elevation.com"
    wikipedia_api_url: str = "https://en.wikipedia.org/w/api.php"
    wikidata_api_url: str = "https://www.wikidata.org/w/api.php"
    arcgis_base_url: str = "https://services7.arcgis.com"
    us_dot_base_url: str = "https://geo.dot.gov"
    ai_api_url: str = "https://api.openai.com/v1/chat/completions"
    ai_model: str = "gpt-4o-mini"
    ai_api_key: str = ""
    ai_max_tokens: int = 300
    ai_temperature: float = 0.7
    user_agent: str = "ScenicRoads/1.0 (https://github.com/scenic-roads)"
    request_timeout: int = 30
    rate_limit_per_second: int = 1
    cache_ttl_seconds: int = 604_800  # one week


@dataclass
class EnrichmentConfig:
    """Which enrichment steps run for every road"""
    elevation_enabled: bool = True
    wiki_enabled: bool = True
    images_enabled: bool = True
    ai_enabled: bool = False
    arcgis_layers: List[int] = field(default_factory=lambda: [0])


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"


@dataclass
class ScenicRoadsConfig:
    """Main configuration class containing all settings"""
    paths: PathConfig = None
    api: APIConfig = None
    enrichment: EnrichmentConfig = None
    logging: LoggingConfig = None

    version: str = "1.0.0"

    def __post_init__(self):
        """Initialize default configurations"""
        if self.paths is None:
            self.paths = PathConfig()
        if self.api is None:
            self.api = APIConfig()
        if self.enrichment is None:
            self.enrichment = EnrichmentConfig()
        if self.logging is None:
            self.logging = LoggingConfig()

    def apply_env(self) -> "ScenicRoadsConfig":
        """Override selected settings from SCENIC_* environment variables."""
        self.api.elevation_api_url = os.getenv("SCENIC_ELEVATION_API_URL", self.api.elevation_api_url)
        self.api.user_agent = os.getenv("SCENIC_USER_AGENT", self.api.user_agent)
        self.api.ai_api_url = os.getenv("SCENIC_AI_API_URL", self.api.ai_api_url)
        self.api.ai_model = os.getenv("SCENIC_AI_MODEL", self.api.ai_model)
        self.api.ai_api_key = os.getenv("SCENIC_AI_API_KEY", self.api.ai_api_key)
        self.logging.level = os.getenv("SCENIC_LOG_LEVEL", self.logging.level)
        return self

    def save_to_file(self, file_path: Union[str, Path]):
        """Save configuration to file (JSON or YAML)"""
        file_path = Path(file_path)
        config_dict = self.to_dict()

        if file_path.suffix.lower() in ['.yaml', '.yml']:
            with open(file_path, 'w') as f:
                yaml.dump(config_dict, f, default_flow_style=False, indent=2)
        else:
            with open(file_path, 'w') as f:
                json.dump(config_dict, f, indent=2, default=str)

    @classmethod
    def load_from_file(cls, file_path: Union[str, Path]) -> 'ScenicRoadsConfig':
        """Load configuration from file"""
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(file_path, 'r') as f:
            if file_path.suffix.lower() in ['.yaml', '.yml']:
                config_data = yaml.safe_load(f)
            else:
                config_data = json.load(f)

        if not isinstance(config_data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {file_path}")

        return cls.from_dict(config_data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        def convert_value(value):
            if isinstance(value, Path):
                return str(value)
            elif isinstance(value, dict):
                return {k: convert_value(v) for k, v in value.items()}
            elif isinstance(value, (list, tuple)):
                return [convert_value(item) for item in value]
            else:
                return value

        return convert_value(asdict(self))

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'ScenicRoadsConfig':
        """Create configuration from dictionary"""
        sections = {
            'paths': PathConfig,
            'api': APIConfig,
            'enrichment': EnrichmentConfig,
            'logging': LoggingConfig,
        }

        config_kwargs = {}
        for name, section_cls in sections.items():
            if name in config_dict:
                try:
                    config_kwargs[name] = section_cls(**(config_dict[name] or {}))
                except TypeError as exc:
                    raise ConfigError(f"Invalid '{name}' section: {exc}") from exc

        if 'version' in config_dict:
            config_kwargs['version'] = str(config_dict['version'])

        return cls(**config_kwargs)

    def validate(self) -> List[str]:
        """Validate configuration and return list of issues"""
        issues = []

        if not self.api.elevation_api_url:
            issues.append("Elevation API URL not configured")

        if self.api.request_timeout <= 0:
            issues.append(f"Invalid request_timeout: {self.api.request_timeout} (must be > 0)")

        if self.api.rate_limit_per_second <= 0:
            issues.append(f"Invalid rate_limit_per_second: {self.api.rate_limit_per_second} (must be > 0)")

        if self.api.cache_ttl_seconds < 0:
            issues.append(f"Invalid cache_ttl_seconds: {self.api.cache_ttl_seconds} (must be >= 0)")

        if not self.enrichment.arcgis_layers:
            issues.append("No ArcGIS layers configured")

        if self.enrichment.ai_enabled and not (self.api.ai_api_url and self.api.ai_model):
            issues.append("AI enrichment enabled but ai_api_url / ai_model not configured")

        return issues

    def __str__(self) -> str:
        return f"ScenicRoadsConfig(version={self.version}, output_dir={self.paths.output_dir})"
