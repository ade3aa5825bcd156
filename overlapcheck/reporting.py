"""Reporting utilities for console output and the per-test text artifacts."""

from __future__ import annotations

import logging
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path
from string import Template
from typing import Iterable, Optional, Sequence, TYPE_CHECKING, TextIO, Tuple

from .errors import InconsistentStateError, ReportWriteError
from .template.base import TEST_NAME, StreamStatistic, TestParameters

if TYPE_CHECKING:
    from .analysis import AggregateMetrics
    from .app import RunResult

logger = logging.getLogger(__name__)

INVALID_MARKER = "__INVALID__"
STATS_FILENAME = "stats.txt"
RESULTS_FILENAME = "results.txt"
FINAL_REPORT_FILENAME = "finalAnalysisReport.txt"
SEPARATOR = "\t\t-----------------------------------------------\n"


@dataclass(frozen=True)
class StatsTemplate:
    """Templates for the computational information block of ``stats.txt``."""

    legacy_title: str = (
        "\t\t\t  OVERLAPPING TEMPLATE OF ALL ONES TEST\n"
        + SEPARATOR
        + "\t\tCOMPUTATIONAL INFORMATION:\n"
    )
    title: str = "\t\t\t  Overlapping template of all ones test\n"
    parameters: Template = Template(
        SEPARATOR
        + "\t\t(a) n (sequence_length)      = ${n}\n"
        + "\t\t(b) m (block length of 1s)   = ${m}\n"
        + "\t\t(c) M (length of substring)  = ${M}\n"
        + "\t\t(d) N (number of substrings) = ${N}\n"
        + "\t\t(e) mu [(M-m+1)/2^m]\t   = ${mu}\n"
        + "\t\t(f) eta\t\t       = ${eta}\n"
        + SEPARATOR
    )
    legacy_columns: str = (
        "\t\t\t F R E Q U E N C Y\n"
        "\t\t\t0   1\t2   3\t4 >=5\tChi^2\tP-value\t Assignment\n"
    )
    columns: str = "\t\t\t Frequency\n\t\t\t   0\t  1\t 2\t3      4    >=5\t  Chi^2\n"


DEFAULT_STATS_TEMPLATE = StatsTemplate()


@dataclass(frozen=True)
class ReportPaths:
    """Locations of the files written for one test run."""

    directory: Path
    stats: Path
    results: Path
    data: Tuple[Path, ...] = ()


# ---------------------------------------------------------------------------
# Per-stream formatting
# ---------------------------------------------------------------------------

def format_p_value(p_value: Optional[float]) -> str:
    """Return the ``results.txt`` line body for ``p_value``."""

    if p_value is None:
        return INVALID_MARKER
    return f"{p_value:f}"


def format_stat_block(
    statistic: StreamStatistic,
    params: TestParameters,
    *,
    legacy: bool = False,
    template: StatsTemplate = DEFAULT_STATS_TEMPLATE,
) -> str:
    """Render the ``stats.txt`` block describing one stream."""

    record = statistic.record
    p_value = statistic.p_value
    if p_value is None and record.success:
        raise InconsistentStateError("Stream recorded as success without a p-value.")

    parts = [template.legacy_title if legacy else template.title]
    parts.append(
        template.parameters.substitute(
            n=params.stream_length,
            m=params.template_length,
            M=record.substring_length,
            N=record.substring_count,
            mu=f"{record.lambda_value:f}",
            eta=f"{record.eta:f}",
        )
    )
    parts.append(template.legacy_columns if legacy else template.columns)
    parts.append(SEPARATOR)

    verdict = "SUCCESS" if record.success else "FAILURE"
    if legacy:
        counts = " ".join(f"{count:3d}" for count in record.buckets)
        parts.append(f"\t\t{counts}  {record.chi2:f} ")
        parts.append(f"{format_p_value(p_value)} {verdict}\n\n")
    else:
        counts = " ".join(f"{count:6d}" for count in record.buckets)
        parts.append(f"\t\t{counts}  {record.chi2:f}\n")
        parts.append(f"{verdict}\t\tp_value = {format_p_value(p_value)}\n\n")
    return "".join(parts)


def data_filename(index: int, partitions: int) -> str:
    """Return the ``data*.txt`` basename for 1-based partition ``index``."""

    width = len(str(partitions))
    return f"data{index:0{width}d}.txt"


# ---------------------------------------------------------------------------
# Per-test artifacts
# ---------------------------------------------------------------------------

def write_test_reports(
    statistics: Sequence[StreamStatistic],
    params: TestParameters,
    output_dir: Path,
    *,
    legacy: bool = False,
    test_name: str = TEST_NAME,
) -> ReportPaths:
    """Write ``stats.txt``, ``results.txt`` and any ``data*.txt`` partitions."""

    directory = Path(output_dir) / test_name
    stats_path = directory / STATS_FILENAME
    results_path = directory / RESULTS_FILENAME
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with stats_path.open("w", encoding="utf-8") as stats_file, results_path.open(
            "w", encoding="utf-8"
        ) as results_file:
            for statistic in statistics:
                stats_file.write(format_stat_block(statistic, params, legacy=legacy))
                results_file.write(format_p_value(statistic.p_value) + "\n")
        data_paths = _write_partitions(statistics, params.partitions, directory)
    except OSError as exc:
        raise ReportWriteError(f"Could not write reports for {test_name} in {directory}: {exc}") from exc

    logger.debug("Wrote %d stream records to %s", len(statistics), directory)
    return ReportPaths(
        directory=directory,
        stats=stats_path,
        results=results_path,
        data=data_paths,
    )


def _write_partitions(
    statistics: Sequence[StreamStatistic], partitions: int, directory: Path
) -> Tuple[Path, ...]:
    if partitions <= 1:
        return ()
    paths = []
    for start in range(partitions):
        path = directory / data_filename(start + 1, partitions)
        with path.open("w", encoding="utf-8") as handle:
            for statistic in statistics[start::partitions]:
                handle.write(format_p_value(statistic.p_value) + "\n")
        paths.append(path)
    return tuple(paths)


# ---------------------------------------------------------------------------
# Final analysis report
# ---------------------------------------------------------------------------

def final_report_header(bins: int) -> str:
    columns = "".join(f"{'C' + str(index + 1):>3} " for index in range(bins))
    return textwrap.dedent(
        f"""\
        {'-' * (4 * bins + 48)}
        {columns} P-VALUE  PROPORTION  STATISTICAL TEST
        {'-' * (4 * bins + 48)}
        """
    )


def format_metrics_line(metrics: "AggregateMetrics", test_name: str = TEST_NAME) -> str:
    """Render one summary line: bin counts, uniformity and proportion verdicts."""

    parts = [f"{count:3d} " for count in metrics.histogram]
    if metrics.uniformity_p_value is None:
        parts.append("    ----    ")
    elif metrics.uniformity_failure:
        parts.append(f" {metrics.uniformity_p_value:8.6f} * ")
    else:
        parts.append(f" {metrics.uniformity_p_value:8.6f}   ")

    if not metrics.proportion_applicable:
        parts.append(f" ------     {test_name}\n")
    elif metrics.proportion_failure:
        parts.append(f"{metrics.pass_count:4d}/{metrics.sample_count:<4d} *\t {test_name}\n")
    else:
        parts.append(f"{metrics.pass_count:4d}/{metrics.sample_count:<4d}\t {test_name}\n")
    return "".join(parts)


def write_final_report(
    metrics: Iterable["AggregateMetrics"],
    path: Path,
    *,
    bins: int,
    test_name: str = TEST_NAME,
    append: bool = False,
) -> Path:
    """Write the summary lines for every partition to ``path``.

    The file is replaced unless ``append`` is set, in which case the lines are
    added after those of other tests sharing the report.
    """

    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        is_new_file = not append or not target.exists() or target.stat().st_size == 0
        with target.open("a" if append else "w", encoding="utf-8") as handle:
            if is_new_file:
                handle.write(final_report_header(bins))
            for item in metrics:
                handle.write(format_metrics_line(item, test_name))
    except OSError as exc:
        raise ReportWriteError(f"Could not write final analysis report {target}: {exc}") from exc
    return target


# ---------------------------------------------------------------------------
# Console output
# ---------------------------------------------------------------------------

def print_console_summary(result: "RunResult", *, verbose: bool = False, stream: TextIO | None = None) -> None:
    """Print a short summary of the run to ``stream``."""

    output = stream if stream is not None else sys.stdout
    if not result.enabled:
        print(f"Result: SKIPPED | {TEST_NAME} disabled for this run", file=output)
        return

    status = "RANDOM" if result.is_random else "NON-RANDOM"
    print(f"Result: {status} | Streams: {result.tally.count}", file=output)
    for index, metrics in enumerate(result.metrics, start=1):
        uniformity = (
            "insufficient data"
            if metrics.uniformity_p_value is None
            else f"{metrics.uniformity_p_value:.6f}"
        )
        marker = " *" if metrics.uniformity_failure else ""
        proportion_marker = " *" if metrics.proportion_failure else ""
        print(
            f" - partition {index}: uniformity {uniformity}{marker} | "
            f"proportion {metrics.pass_count}/{metrics.sample_count}{proportion_marker}",
            file=output,
        )
        if verbose:
            print(f"   histogram: {' '.join(str(count) for count in metrics.histogram)}", file=output)
            if metrics.proportion_min is not None and metrics.proportion_max is not None:
                print(
                    f"   proportion bounds: [{metrics.proportion_min:.3f}, {metrics.proportion_max:.3f}]",
                    file=output,
                )
    if verbose:
        params = result.parameters
        print(
            f"Parameters: n={params.stream_length} m={params.template_length} "
            f"M={params.substring_length} K={params.degrees_of_freedom} alpha={params.alpha}",
            file=output,
        )
        if result.report_paths is not None:
            print(f"Reports: {result.report_paths.directory}", file=output)


__all__ = [
    "DEFAULT_STATS_TEMPLATE",
    "FINAL_REPORT_FILENAME",
    "INVALID_MARKER",
    "ReportPaths",
    "StatsTemplate",
    "data_filename",
    "final_report_header",
    "format_metrics_line",
    "format_p_value",
    "format_stat_block",
    "print_console_summary",
    "write_final_report",
    "write_test_reports",
]
