"""
Application configuration for the cost anomaly detection engine.

Provides environment-aware settings with conservative defaults. All anomaly
thresholds are configurable to avoid hard-coded "magic numbers".
"""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple, Union

from pydantic import (
	BaseModel,
	ConfigDict,
	Field,
	ValidationError,
	field_serializer,
	field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


ALL_CHECK_IDS: Tuple[str, ...] = (
	"yoy_deviation",
	"mom_deviation",
	"price_per_unit_spike",
	"statistical_outlier",
	"duplicate_detection",
	"missing_period",
	"seasonal_anomaly",
	"budget_exceeded",
)


class AlertThresholds(BaseModel):
	"""
	Thresholds for the deviation checks.

	Rationale:
	- Percent thresholds are relative to the check's baseline amount or price.
	- A check escalates to critical when the magnitude exceeds twice its threshold.
	"""

	model_config = ConfigDict(frozen=True, extra="forbid")

	yoy_deviation_percent: float = Field(
		20.0, ge=0.0, description="Year-over-year deviation that raises an alert"
	)
	mom_deviation_percent: float = Field(
		30.0, ge=0.0, description="Month-over-month deviation that raises an alert"
	)
	price_per_unit_deviation_percent: float = Field(
		10.0, ge=0.0, description="Price per unit increase over the recent average"
	)
	z_score_threshold: float = Field(2.0, ge=0.0, description="Z-score for outlier alerts")
	budget_exceeded_percent: float = Field(
		10.0, ge=0.0, description="Tolerated overrun of the monthly budget"
	)


class AnomalySettings(BaseModel):
	"""
	Per-run anomaly detection settings.

	Notes:
	- enabled_checks keeps registration order; duplicates are dropped.
	- min_historical_months overrides a check's own history requirement and
	  is stored read-only.
	- max_alerts_per_day and the digest fields are read by the alerting side.
	"""

	model_config = ConfigDict(frozen=True, extra="forbid")

	alert_thresholds: AlertThresholds = AlertThresholds()
	enabled_checks: Tuple[str, ...] = ALL_CHECK_IDS
	max_alerts_per_day: int = Field(50, ge=1)
	digest_enabled: bool = False
	digest_hour: int = Field(8, ge=0, le=23)
	min_historical_months: Mapping[str, int] = Field(default_factory=dict, validate_default=True)

	@field_validator("enabled_checks")
	@classmethod
	def _dedupe_checks(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
		return tuple(dict.fromkeys(value))

	@field_validator("min_historical_months")
	@classmethod
	def _non_negative_months(cls, value: Mapping[str, int]) -> Mapping[str, int]:
		for check_id, months in value.items():
			if months < 0:
				raise ValueError(f"min_historical_months for {check_id} must be >= 0")
		return MappingProxyType(dict(value))

	@field_serializer("min_historical_months")
	def _months_as_dict(self, value: Mapping[str, int]) -> dict:
		return dict(value)


DEFAULT_ANOMALY_SETTINGS = AnomalySettings()


def merge_settings(
	base: AnomalySettings,
	overrides: Optional[Union[AnomalySettings, Mapping[str, Any]]],
) -> AnomalySettings:
	"""
	Merge overrides onto base settings and return a new settings object.

	Top-level fields are replaced; alert_thresholds is merged field by field
	so thresholds that are not overridden keep their base value.

	Raises:
		ConfigurationError: If the merged settings fail validation
	"""
	if overrides is None:
		return base

	if isinstance(overrides, AnomalySettings):
		patch = overrides.model_dump(exclude_unset=True)
	else:
		patch = dict(overrides)

	data = base.model_dump()
	thresholds = patch.pop("alert_thresholds", None)
	data.update(patch)

	if thresholds is not None:
		if isinstance(thresholds, AlertThresholds):
			thresholds = thresholds.model_dump(exclude_unset=True)
		data["alert_thresholds"] = {**data["alert_thresholds"], **dict(thresholds)}

	try:
		return AnomalySettings.model_validate(data)
	except ValidationError as e:
		raise ConfigurationError(f"Invalid anomaly settings: {e}") from e


class Config(BaseSettings):
	"""
	Global configuration with environment overrides.

	Nested values use a double underscore, e.g.
	COSTWATCH_ANOMALY__ALERT_THRESHOLDS__YOY_DEVIATION_PERCENT=25
	"""

	model_config = SettingsConfigDict(
		env_prefix="COSTWATCH_",
		env_file=".env",
		env_nested_delimiter="__",
		extra="ignore",
	)

	log_level: str = Field("INFO", description="Default logging level")
	logs_dir: Path = Field(Path("logs"), description="Directory for log files")
	log_to_file: bool = Field(True, description="Also write logs to a rotating file")
	history_lookback_months: int = Field(
		24, ge=1, description="Months of history handed to the checks"
	)
	anomaly: AnomalySettings = AnomalySettings()


config = Config()
