"""
Configuration management (SSOT).

This module defines ALL configuration for the statement ingestion pipeline.
All config keys are defined here; no other module should invent config keys.

Key invariants:
- auto_merge_threshold >= review_threshold, both on the 0..100 score scale
- Declared confidences are floats in 0..1
- A missing config file means "all defaults"
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

MATCH_STRATEGIES = ("greedy", "optimal")


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class ParserConfig:
    """Statement parser settings."""

    # Descriptions longer than this are truncated (also bounds Levenshtein cost)
    max_description_length: int = 500
    # Drop transactions whose resolved date falls outside the statement period
    enforce_period_bounds: bool = True
    # Try layout-preserving PDF text first, then plain extraction
    prefer_layout_text: bool = True


@dataclass
class MatchingConfig:
    """Deduplication and match-scoring settings.

    Scores are on a 0..100 scale:
    - score >= auto_merge_threshold: merged automatically
    - review_threshold <= score < auto_merge_threshold: human review
    - below review_threshold: no match
    """

    auto_merge_threshold: int = 85
    review_threshold: int = 60
    # Case-insensitive similarity above which merchant names count as equal
    merchant_similarity_threshold: float = 0.8
    # "greedy" (order-dependent, default) or "optimal" (maximum total score)
    strategy: str = "greedy"


@dataclass
class ConfidenceDefaults:
    """Declared confidence per source when a record carries none."""

    pdf: float = 0.5
    manual: float = 0.9
    csv: float = 0.8

    def for_source(self, source: str) -> float:
        """Get the default confidence for a source tag (PDF/MANUAL/CSV)."""
        return {
            "PDF": self.pdf,
            "MANUAL": self.manual,
            "CSV": self.csv,
        }.get(str(getattr(source, "value", source)).upper(), self.pdf)


@dataclass
class Config:
    """Application configuration (SSOT).

    All configuration is centralized here. No other module should define
    configuration keys or defaults.
    """

    parser: ParserConfig = field(default_factory=ParserConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    confidence: ConfidenceDefaults = field(default_factory=ConfidenceDefaults)
    log_level: str = "INFO"

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        # Thresholds must be sensible
        for name in ("auto_merge_threshold", "review_threshold"):
            value = getattr(self.matching, name)
            if not 0 <= value <= 100:
                errors.append(f"matching.{name} must be within 0..100")
        if self.matching.auto_merge_threshold < self.matching.review_threshold:
            errors.append("auto_merge_threshold must be >= review_threshold")
        if not 0.0 <= self.matching.merchant_similarity_threshold <= 1.0:
            errors.append("matching.merchant_similarity_threshold must be within 0..1")
        if self.matching.strategy not in MATCH_STRATEGIES:
            errors.append(
                f"matching.strategy must be one of {', '.join(MATCH_STRATEGIES)}"
            )

        if self.parser.max_description_length <= 0:
            errors.append("parser.max_description_length must be positive")

        for name in ("pdf", "manual", "csv"):
            value = getattr(self.confidence, name)
            if not 0.0 <= value <= 1.0:
                errors.append(f"confidence.{name} must be within 0..1")

        return errors


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default  # Keep default


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from YAML file.

    Environment variables can override config values:
    - STATEMENT_INGEST_AUTO_MERGE_THRESHOLD
    - STATEMENT_INGEST_REVIEW_THRESHOLD
    - STATEMENT_INGEST_MATCH_STRATEGY (greedy/optimal)
    - STATEMENT_INGEST_MAX_DESCRIPTION_LENGTH

    Raises:
        ConfigValidationError: If the resulting configuration is invalid
    """
    if config_path is not None and config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    # Parser config
    parser_data = data.get("parser", {})
    parser = ParserConfig(
        max_description_length=_env_int(
            "STATEMENT_INGEST_MAX_DESCRIPTION_LENGTH",
            parser_data.get("max_description_length", 500),
        ),
        enforce_period_bounds=parser_data.get("enforce_period_bounds", True),
        prefer_layout_text=parser_data.get("prefer_layout_text", True),
    )

    # Matching config
    matching_data = data.get("matching", {})
    matching = MatchingConfig(
        auto_merge_threshold=_env_int(
            "STATEMENT_INGEST_AUTO_MERGE_THRESHOLD",
            matching_data.get("auto_merge_threshold", 85),
        ),
        review_threshold=_env_int(
            "STATEMENT_INGEST_REVIEW_THRESHOLD",
            matching_data.get("review_threshold", 60),
        ),
        merchant_similarity_threshold=matching_data.get(
            "merchant_similarity_threshold", 0.8
        ),
        strategy=os.environ.get(
            "STATEMENT_INGEST_MATCH_STRATEGY", matching_data.get("strategy", "greedy")
        ).lower(),
    )

    # Default confidences
    confidence_data = data.get("confidence", {})
    confidence = ConfidenceDefaults(
        pdf=confidence_data.get("pdf", 0.5),
        manual=confidence_data.get("manual", 0.9),
        csv=confidence_data.get("csv", 0.8),
    )

    config = Config(
        parser=parser,
        matching=matching,
        confidence=confidence,
        log_level=data.get("log_level", "INFO"),
    )

    errors = config.validate()
    if errors:
        raise ConfigValidationError("; ".join(errors))

    return config


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# Statement ingestion configuration
#
# Scores are on a 0..100 scale. Confidences are on a 0..1 scale.

# Statement parser
parser:
  max_description_length: 500    # Longer descriptions are truncated
  enforce_period_bounds: true    # Skip lines dated outside the statement period
  prefer_layout_text: true       # PDF: layout-preserving text first, plain second

# Deduplication
matching:
  auto_merge_threshold: 85       # At or above: merge automatically
  review_threshold: 60           # At or above (and below auto): human review
  merchant_similarity_threshold: 0.8
  strategy: "greedy"             # greedy (order-dependent) or optimal

# Declared confidence when a record carries none
confidence:
  pdf: 0.5
  manual: 0.9
  csv: 0.8

log_level: "INFO"
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
