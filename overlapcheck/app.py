"""Application orchestration for the overlapping template checker CLI."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

from .accumulator import Tally
from .analysis import AggregateMetrics
from .config import RunConfig, load_config
from .driver import OverlappingTemplateDriver
from .errors import MissingFileError
from .io import BitSource, read_bit_source
from .logging import log_run_result
from .reporting import (
    FINAL_REPORT_FILENAME,
    ReportPaths,
    print_console_summary,
    write_final_report,
)
from .template.base import TestParameters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunResult:
    """Summary of a full application run."""

    input_path: Path
    config_path: Path
    parameters: TestParameters
    enabled: bool
    tally: Tally
    metrics: Tuple[AggregateMetrics, ...]
    output_dir: Path
    started_at: datetime
    duration: float
    report_paths: Optional[ReportPaths] = None
    final_report: Optional[Path] = None
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_random(self) -> bool:
        """Return whether every partition passed both cross-stream checks."""

        return self.enabled and all(metrics.passed for metrics in self.metrics)


class OverlapCheckApp:
    """High level service wiring configuration, input, the test driver and output."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def run(
        self,
        input_path: Path,
        config_path: Path,
        output_dir: Path | None = None,
        verbose: bool = False,
    ) -> RunResult:
        """Execute the overlapping template workflow."""

        started_at = datetime.now(timezone.utc)
        started = time.perf_counter()

        config = self._load_config(Path(config_path))
        for warning in config.warnings:
            logger.warning(warning)
        source = read_bit_source(input_path, fmt=config.input.format)
        target_dir = Path(output_dir).expanduser().resolve() if output_dir else config.output.output_dir

        driver = self._execute(source, config, target_dir)

        final_report: Optional[Path] = None
        if driver.enabled and config.output.write_results:
            final_report = write_final_report(
                driver.metrics,
                target_dir / FINAL_REPORT_FILENAME,
                bins=config.parameters.uniformity_bins,
            )

        result = RunResult(
            input_path=source.path,
            config_path=Path(config_path),
            parameters=config.parameters,
            enabled=driver.enabled,
            tally=driver.tally(),
            metrics=driver.metrics,
            output_dir=target_dir,
            started_at=started_at,
            duration=time.perf_counter() - started,
            report_paths=driver.report_paths,
            final_report=final_report,
            warnings=config.warnings,
        )
        logger.info(
            "Processed %d streams from %s in %.3fs.",
            result.tally.count,
            result.input_path,
            result.duration,
        )

        if config.output.log_results:
            log_run_result(
                result,
                log_path=config.output.run_log_path,
                fmt=config.output.run_log_format,
                retention=config.output.run_log_retention,
            )
        print_console_summary(result, verbose=verbose)
        return result

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------
    def _load_config(self, path: Path) -> RunConfig:
        if not path.exists():
            raise MissingFileError(f"Configuration file not found: {path}")
        return load_config(path)

    def _execute(
        self, source: BitSource, config: RunConfig, output_dir: Path
    ) -> OverlappingTemplateDriver:
        params = config.parameters
        driver = OverlappingTemplateDriver(policy=config.policy)
        if not driver.configure(params):
            return driver
        streams = source.streams(params.num_streams, params.stream_length)
        driver.iterate_many(streams, max_workers=config.workers)
        driver.finalize(
            output_dir if config.output.write_results else None,
            legacy_output=config.output.legacy_output,
        )
        return driver


__all__ = ["OverlapCheckApp", "RunResult"]
