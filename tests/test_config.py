from __future__ import annotations

from pathlib import Path

import pytest

from overlapcheck.config import load_config
from overlapcheck.errors import InvalidConfigurationError, MissingFileError


BASE_CONFIG = """
[parameters]
template_length = 9
stream_length = 4128
streams = 20
""".strip()


def _write_config(tmp_path: Path, content: str) -> Path:
    config_path = tmp_path / "config.ini"
    config_path.write_text(content, encoding="utf-8")
    return config_path


def test_defaults_are_applied(tmp_path: Path) -> None:
    config = load_config(_write_config(tmp_path, BASE_CONFIG))

    params = config.parameters
    assert params.template_length == 9
    assert params.num_streams == 20
    assert params.alpha == pytest.approx(0.01)
    assert params.uniformity_bins == 10
    assert params.uniformity_level == pytest.approx(0.0001)
    assert params.partitions == 1
    assert config.input.format == "ascii"
    assert config.output.output_dir == (tmp_path / "results").resolve()
    assert config.output.write_results is True
    assert config.output.legacy_output is False
    assert config.policy.exclude_zero_p_values is False
    assert config.workers == 1
    assert config.warnings == ()


def test_output_section_includes_logging_defaults(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        BASE_CONFIG
        + "\n\n[output]\nlog_results = true\nlog_format = csv\nlog_retention = 5\nlog_path = logs/history.csv\n",
    )

    config = load_config(config_path)

    assert config.output.log_results is True
    assert config.output.run_log_format == "csv"
    assert config.output.run_log_retention == 5
    assert config.output.run_log_path == (tmp_path / "logs" / "history.csv").resolve()


def test_logging_section_overrides_output(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        BASE_CONFIG
        + "\n\n[output]\nlog_results = false\n\n[logging]\nenabled = true\nformat = jsonl\nretention = 0\n",
    )

    config = load_config(config_path)

    assert config.output.log_results is True
    assert config.output.run_log_format == "jsonl"
    assert config.output.run_log_retention is None


def test_input_and_policy_options(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        BASE_CONFIG
        + "\npartitions = 2\nworkers = 0\nexclude_zero_p_values = yes\n\n[input]\nformat = binary\n",
    )

    config = load_config(config_path)

    assert config.input.format == "binary"
    assert config.parameters.partitions == 2
    assert config.workers is None
    assert config.policy.exclude_zero_p_values is True


def test_unsupported_template_length_is_left_to_the_driver(tmp_path: Path) -> None:
    config = load_config(_write_config(tmp_path, BASE_CONFIG.replace("= 9", "= 20")))

    assert config.parameters.template_length == 20


def test_warnings_for_ragged_streams_and_small_partitions(tmp_path: Path) -> None:
    content = BASE_CONFIG.replace("4128", "4200").replace("streams = 20", "streams = 8")

    config = load_config(_write_config(tmp_path, content))

    assert len(config.warnings) == 2
    assert "not a multiple of 1032" in config.warnings[0]


@pytest.mark.parametrize(
    "override",
    [
        "stream_length = 0",
        "stream_length = 100",
        "streams = 0",
        "alpha = 1.5",
        "uniformity_bins = 1",
        "uniformity_level = 2",
        "partitions = 0",
        "partitions = 21",
        "template_length = nine",
        "workers = -1",
    ],
)
def test_invalid_parameters_raise(tmp_path: Path, override: str) -> None:
    key = override.split(" = ")[0]
    lines = [line for line in BASE_CONFIG.splitlines() if not line.startswith(key)]
    config_path = _write_config(tmp_path, "\n".join(lines + [override]))

    with pytest.raises(InvalidConfigurationError):
        load_config(config_path)


def test_missing_parameters_section(tmp_path: Path) -> None:
    with pytest.raises(InvalidConfigurationError):
        load_config(_write_config(tmp_path, "[output]\nwrite_results = false\n"))


def test_invalid_input_format(tmp_path: Path) -> None:
    with pytest.raises(InvalidConfigurationError):
        load_config(_write_config(tmp_path, BASE_CONFIG + "\n\n[input]\nformat = hex\n"))


def test_invalid_log_format(tmp_path: Path) -> None:
    with pytest.raises(InvalidConfigurationError):
        load_config(_write_config(tmp_path, BASE_CONFIG + "\n\n[logging]\nformat = xml\n"))


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(MissingFileError):
        load_config(tmp_path / "absent.ini")


def test_malformed_ini(tmp_path: Path) -> None:
    with pytest.raises(InvalidConfigurationError):
        load_config(_write_config(tmp_path, "no section header\n"))
