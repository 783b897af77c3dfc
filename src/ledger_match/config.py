"""Configuration loader and validation for ledger matching settings."""

from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_AMOUNT_COLUMNS = ["Amount", "Credit Amount", "Debit Amount"]
DEFAULT_CURRENCY_COLUMNS = ["Currency", "currency", "Curr", "curr", "Account Currency"]


class InputConfig(BaseModel):
    """Configuration for ledger file parsing."""

    encoding: str = "utf-8"
    delimiter: str = ","
    sheet_name: Optional[str] = None


class MatchingConfig(BaseModel):
    """Configuration for candidate generation and assignment."""

    date_tolerance_days: int = Field(default=7, ge=0)
    amount_tolerance: float = Field(default=500.0, ge=0)
    match_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    max_rows_per_ledger: int = Field(default=15, ge=1)
    max_total_rows: int = Field(default=30, ge=1)
    amount_columns: list[str] = Field(default_factory=lambda: list(DEFAULT_AMOUNT_COLUMNS))
    currency_columns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CURRENCY_COLUMNS)
    )

    @field_validator("amount_columns", "currency_columns")
    @classmethod
    def _not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one column name is required")
        return value


class OracleConfig(BaseModel):
    """Configuration for the LLM match oracle."""

    model: str = "gpt-4o-mini"
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_tokens: Optional[int] = None
    api_key_env: str = "OPENAI_API_KEY"
    base_url: Optional[str] = None
    request_timeout: Optional[float] = None


class ExcelOutputConfig(BaseModel):
    """Configuration for Excel output."""

    filename_template: str = "ledger_match_report_{date}_{time}.xlsx"
    include_timestamp: bool = True


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    matches: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Matches"))
    unmatched_left: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Unmatched Ledger A")
    )
    unmatched_right: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Unmatched Ledger B")
    )
    candidate_audit: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Candidate Audit")
    )


class OutputConfig(BaseModel):
    """Configuration for output."""

    excel: ExcelOutputConfig = Field(default_factory=ExcelOutputConfig)
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class ReconConfig(BaseModel):
    """Main configuration model for ledger matching."""

    input: InputConfig = Field(default_factory=InputConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return ReconConfig().model_dump(exclude={"config_file_path"})


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(
                f"Configuration file {config_path} must contain a mapping at the top level"
            )

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()

    yaml_content = """# Ledger Match Configuration
# Generated configuration file - customize as needed
# The oracle API key is read from the environment variable named in oracle.api_key_env

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
