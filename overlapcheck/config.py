"""Configuration parsing utilities for the overlapping template checker."""

from __future__ import annotations

import configparser
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Tuple

from .analysis import AggregationPolicy
from .errors import InvalidConfigurationError, MissingFileError
from .template.base import (
    DEFAULT_ALPHA,
    DEFAULT_STREAM_LENGTH,
    DEFAULT_TEMPLATE_LENGTH,
    DEFAULT_UNIFORMITY_BINS,
    DEFAULT_UNIFORMITY_LEVEL,
    TestParameters,
)

InputFormat = Literal["ascii", "binary"]


@dataclass(frozen=True)
class InputSection:
    """How the bit data file is encoded."""

    format: InputFormat = "ascii"


@dataclass(frozen=True)
class OutputSection:
    """Options controlling where and how results are written."""

    output_dir: Path
    write_results: bool
    legacy_output: bool
    log_results: bool
    run_log_path: Path
    run_log_format: str
    run_log_retention: int | None


@dataclass(frozen=True)
class RunConfig:
    """Aggregate configuration container returned by :func:`load_config`."""

    parameters: TestParameters
    input: InputSection
    output: OutputSection
    policy: AggregationPolicy = field(default_factory=AggregationPolicy)
    workers: int | None = 1
    warnings: Tuple[str, ...] = field(default_factory=tuple)


def load_config(path: Path) -> RunConfig:
    """Load and validate an INI configuration file."""

    parser = configparser.ConfigParser()
    try:
        with path.open("r", encoding="utf-8") as config_file:
            parser.read_file(config_file)
    except FileNotFoundError as exc:
        raise MissingFileError(f"Configuration file not found: {path}") from exc
    except OSError as exc:  # pragma: no cover - filesystem guard
        raise MissingFileError(f"Could not read configuration file: {path}") from exc
    except configparser.Error as exc:
        raise InvalidConfigurationError(f"Configuration is not valid INI: {exc}") from exc

    parameters, policy, workers, warnings = _parse_parameters(parser)
    input_section = _parse_input(parser)
    output_section = _parse_output(parser, path)

    return RunConfig(
        parameters=parameters,
        input=input_section,
        output=output_section,
        policy=policy,
        workers=workers,
        warnings=tuple(warnings),
    )


def _get_int(section: configparser.SectionProxy, key: str, default: int) -> int:
    if key not in section:
        return default
    try:
        return section.getint(key)
    except ValueError as exc:
        raise InvalidConfigurationError(
            f"Option '{key}' in [{section.name}] must be an integer value."
        ) from exc


def _get_float(section: configparser.SectionProxy, key: str, default: float) -> float:
    if key not in section:
        return default
    try:
        return section.getfloat(key)
    except ValueError as exc:
        raise InvalidConfigurationError(
            f"Option '{key}' in [{section.name}] must be numeric."
        ) from exc


def _get_bool(section: configparser.SectionProxy, key: str, default: bool) -> bool:
    if key not in section:
        return default
    try:
        return section.getboolean(key)
    except ValueError as exc:
        raise InvalidConfigurationError(
            f"Option '{key}' in [{section.name}] must be a boolean value."
        ) from exc


def _parse_parameters(
    parser: configparser.ConfigParser,
) -> tuple[TestParameters, AggregationPolicy, int | None, list[str]]:
    if not parser.has_section("parameters"):
        raise InvalidConfigurationError("Configuration missing required [parameters] section.")
    section = parser["parameters"]

    template_length = _get_int(section, "template_length", DEFAULT_TEMPLATE_LENGTH)
    stream_length = _get_int(section, "stream_length", DEFAULT_STREAM_LENGTH)
    num_streams = _get_int(section, "streams", 1)
    alpha = _get_float(section, "alpha", DEFAULT_ALPHA)
    uniformity_bins = _get_int(section, "uniformity_bins", DEFAULT_UNIFORMITY_BINS)
    uniformity_level = _get_float(section, "uniformity_level", DEFAULT_UNIFORMITY_LEVEL)
    partitions = _get_int(section, "partitions", 1)
    workers = _get_int(section, "workers", 1)
    exclude_zero = _get_bool(section, "exclude_zero_p_values", False)

    if stream_length <= 0:
        raise InvalidConfigurationError("Option 'stream_length' in [parameters] must be positive.")
    if num_streams <= 0:
        raise InvalidConfigurationError("Option 'streams' in [parameters] must be positive.")
    if not 0.0 < alpha < 1.0:
        raise InvalidConfigurationError("Option 'alpha' in [parameters] must be between 0 and 1.")
    if uniformity_bins < 2:
        raise InvalidConfigurationError(
            "Option 'uniformity_bins' in [parameters] must be at least 2."
        )
    if not 0.0 <= uniformity_level <= 1.0:
        raise InvalidConfigurationError(
            "Option 'uniformity_level' in [parameters] must be between 0 and 1."
        )
    if partitions < 1:
        raise InvalidConfigurationError("Option 'partitions' in [parameters] must be at least 1.")
    if workers < 0:
        raise InvalidConfigurationError("Option 'workers' in [parameters] must not be negative.")
    if partitions > num_streams:
        raise InvalidConfigurationError(
            "Option 'partitions' in [parameters] must not exceed the number of streams."
        )

    parameters = TestParameters(
        template_length=template_length,
        stream_length=stream_length,
        num_streams=num_streams,
        alpha=alpha,
        uniformity_bins=uniformity_bins,
        uniformity_level=uniformity_level,
        partitions=partitions,
    )

    warnings: list[str] = []
    if parameters.substring_count == 0:
        raise InvalidConfigurationError(
            f"Option 'stream_length' in [parameters] must be at least {parameters.substring_length} bits."
        )
    if stream_length % parameters.substring_length:
        warnings.append(
            f"Stream length {stream_length} is not a multiple of {parameters.substring_length}; "
            f"the last {stream_length % parameters.substring_length} bits of each stream are ignored."
        )
    if num_streams // partitions < uniformity_bins:
        warnings.append(
            "Fewer streams per partition than uniformity bins; uniformity cannot be assessed."
        )

    return parameters, AggregationPolicy(exclude_zero_p_values=exclude_zero), workers or None, warnings


def _parse_input(parser: configparser.ConfigParser) -> InputSection:
    if not parser.has_section("input"):
        return InputSection()
    raw_format = parser["input"].get("format", "ascii").strip().lower()
    if raw_format not in {"ascii", "binary"}:
        raise InvalidConfigurationError(
            "Option 'format' in [input] must be either 'ascii' or 'binary'."
        )
    return InputSection(format=raw_format)  # type: ignore[arg-type]


def _parse_output(
    parser: configparser.ConfigParser, config_path: Path
) -> OutputSection:
    base_dir = config_path.resolve().parent
    output_dir = (base_dir / "results").resolve()
    write_results = True
    legacy_output = False
    log_results = False
    log_path = (base_dir / "logs" / "run_log.jsonl").resolve()
    log_format = "jsonl"
    log_retention: int | None = 100

    def _resolve(raw: str) -> Path:
        candidate = Path(raw).expanduser()
        if not candidate.is_absolute():
            return (base_dir / candidate).resolve()
        return candidate.resolve()

    def _apply_logging_overrides(
        section: configparser.SectionProxy, *, section_name: str, allow_enable: bool = False
    ) -> None:
        nonlocal log_results, log_path, log_format, log_retention
        if allow_enable and "enabled" in section:
            log_results = _get_bool(section, "enabled", log_results)
        if "log_results" in section:
            log_results = _get_bool(section, "log_results", log_results)
        for key in ("log_path", "path"):
            if key in section:
                raw_path = section[key].strip()
                if raw_path:
                    log_path = _resolve(raw_path)
                break
        for key in ("log_format", "format"):
            if key in section:
                raw_format = section[key].strip().lower()
                if raw_format not in {"jsonl", "csv"}:
                    raise InvalidConfigurationError(
                        f"Option '{key}' in [{section_name}] must be either 'jsonl' or 'csv'."
                    )
                log_format = raw_format
                break
        for key in ("log_retention", "retention"):
            if key in section:
                raw_retention = section[key].strip()
                if raw_retention:
                    try:
                        parsed = int(raw_retention)
                    except ValueError as exc:
                        raise InvalidConfigurationError(
                            f"Option '{key}' in [{section_name}] must be an integer value."
                        ) from exc
                    log_retention = parsed if parsed > 0 else None
                break

    if parser.has_section("output"):
        section = parser["output"]
        if "output_dir" in section:
            raw_output = section["output_dir"].strip()
            if raw_output:
                output_dir = _resolve(raw_output)
        write_results = _get_bool(section, "write_results", write_results)
        legacy_output = _get_bool(section, "legacy_output", legacy_output)
        _apply_logging_overrides(section, section_name="output")

    if parser.has_section("logging"):
        _apply_logging_overrides(parser["logging"], section_name="logging", allow_enable=True)

    return OutputSection(
        output_dir=output_dir,
        write_results=write_results,
        legacy_output=legacy_output,
        log_results=log_results,
        run_log_path=log_path,
        run_log_format=log_format,
        run_log_retention=log_retention,
    )


__all__ = [
    "InputSection",
    "OutputSection",
    "RunConfig",
    "load_config",
]
