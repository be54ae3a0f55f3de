"""Configuration validation models using Pydantic."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..standards.fields import DEFAULT_COLUMN_KEYWORDS, DEFAULT_OPTIONS, OPTION_FIELDS
from .errors import ConfigError


DEFAULT_ALLOWED_TYPES: List[str] = [
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
    "text/csv",
    "application/pdf",
]


class PathsConfig(BaseModel):
    """Filesystem locations for persisted state, logs and exports."""

    store_dir: Path = Field(Path("data/store"), description="Directory holding one JSON file per store key")
    logs_dir: Path = Field(Path("logs"), description="Directory for system and user-readable logs")
    export_dir: Path = Field(Path("data/exports"), description="Directory for exported summaries")


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class IngestionConfig(BaseModel):
    """Column keyword overrides and comment date handling."""

    column_keywords: Dict[str, str] = Field(default_factory=dict)
    comment_date_format: Literal["EU", "US"] = "EU"

    @field_validator("column_keywords")
    @classmethod
    def validate_keywords(cls, v):
        unknown = sorted(set(v) - set(DEFAULT_COLUMN_KEYWORDS))
        if unknown:
            raise ValueError(f"Unknown fields in column_keywords: {unknown}")
        blank = sorted(k for k, kw in v.items() if not str(kw).strip())
        if blank:
            raise ValueError(f"Blank column keywords for: {blank}")
        return {k: str(kw).strip().lower() for k, kw in v.items()}

    def resolved_keywords(self) -> Dict[str, str]:
        merged = dict(DEFAULT_COLUMN_KEYWORDS)
        merged.update(self.column_keywords)
        return merged


class OptionsConfig(BaseModel):
    """Seed values for the six option lists."""

    application: List[str] = Field(default_factory=lambda: list(DEFAULT_OPTIONS["application"]))
    business_function: List[str] = Field(default_factory=lambda: list(DEFAULT_OPTIONS["business_function"]))
    environment: List[str] = Field(default_factory=lambda: list(DEFAULT_OPTIONS["environment"]))
    root_cause: List[str] = Field(default_factory=lambda: list(DEFAULT_OPTIONS["root_cause"]))
    corrective_status: List[str] = Field(default_factory=lambda: list(DEFAULT_OPTIONS["corrective_status"]))
    corrective_owner: List[str] = Field(default_factory=lambda: list(DEFAULT_OPTIONS["corrective_owner"]))

    def as_dict(self) -> Dict[str, List[str]]:
        return {name: list(dict.fromkeys(getattr(self, name))) for name in OPTION_FIELDS}


class AttachmentsConfig(BaseModel):
    max_bytes: int = Field(5 * 1024 * 1024, gt=0, description="Per-file size cap")
    allowed_types: List[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_TYPES), min_length=1)


class ExportConfig(BaseModel):
    file_name: str = "Weekly Bugs Summary.xlsx"
    current_sheet: str = Field("Current Week Bugs", max_length=31)
    last_sheet: str = Field("Bugs upto Last Week", max_length=31)
    open_status: str = "open"


class BugboardConfig(BaseModel):
    """Complete bugboard configuration; every section is optional."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    options: OptionsConfig = Field(default_factory=OptionsConfig)
    attachments: AttachmentsConfig = Field(default_factory=AttachmentsConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)


def load_and_validate_config(config_dict: dict | None) -> BugboardConfig:
    """
    Validate a raw configuration mapping.

    Args:
        config_dict: Mapping parsed from YAML (``None`` means all defaults)

    Returns:
        Validated BugboardConfig object

    Raises:
        ConfigError: If configuration is invalid
    """
    try:
        return BugboardConfig(**(config_dict or {}))
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_config(path: str | Path | None) -> BugboardConfig:
    """Load a YAML configuration file; a missing path yields the defaults."""

    if path is None:
        return load_and_validate_config({})
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Configuration file not found: {p}")
    try:
        with open(p, "r", encoding="utf-8") as stream:
            raw = yaml.safe_load(stream)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Configuration file {p} is not valid YAML: {exc}") from exc
    if raw is not None and not isinstance(raw, dict):
        raise ConfigError(f"Configuration file {p} must contain a mapping")
    return load_and_validate_config(raw)
