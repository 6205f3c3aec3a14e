from log_analytics import cli
from log_analytics.errors import ExportError
from log_analytics.services.pipeline import run_batch
from log_analytics.services.storage import LogStore

import pytest

from conftest import SAMPLE_LINES

CONFIG_ENV = ("LOG_DELIMITER", "TOP_K", "FAILURE_STATUSES", "SUSPICIOUS_THRESHOLD",
              "MINUTE_PREFIX_LENGTH", "SKIP_HEADER")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in CONFIG_ENV:
        monkeypatch.delenv(var, raising=False)


def test_run_batch_end_to_end(log_file, tmp_path):
    out = tmp_path / "out"
    batch = run_batch(LogStore(str(log_file)), str(out))

    assert len(batch.summary.records) == 3
    assert batch.summary.error_count == 1
    assert (out / "total_requests").read_text() == "3\n"
    assert (out / "top_pages").read_text() == "/home\t1\n/products\t1\n/checkout\t1\n"
    assert (out / "partitioned" / "404" / "part-00000").read_text() == (
        "192.168.1.3,2024-02-01 10:17:00,/checkout,404,Safari/13.1\n"
    )
    assert len(batch.written) == 8


def test_run_batch_reports_every_failed_target(log_file, tmp_path):
    out = tmp_path / "out"
    (out / "partitioned" / "200").mkdir(parents=True)
    (out / "partitioned" / "200" / "part-00000").mkdir()
    (out / "traffic_sources").mkdir()

    with pytest.raises(ExportError) as info:
        run_batch(LogStore(str(log_file)), str(out))
    assert info.value.targets == ["traffic_sources", "partitioned/200"]
    assert (out / "total_requests").read_text() == "3\n"
    assert (out / "partitioned" / "404" / "part-00000").exists()


def test_cli_success(log_file, tmp_path, capsys):
    out = tmp_path / "out"
    code = cli.main([str(log_file), "--output-dir", str(out), "--top-k", "1"])
    assert code == cli.EXIT_OK
    assert (out / "top_pages").read_text() == "/home\t1\n"
    assert "3 records, 1 malformed lines skipped" in capsys.readouterr().out


def test_cli_only_and_no_partitions(log_file, tmp_path):
    out = tmp_path / "out"
    code = cli.main([
        str(log_file), "--output-dir", str(out),
        "--only", "total_requests", "--no-partitions",
    ])
    assert code == cli.EXIT_OK
    assert sorted(p.name for p in out.iterdir()) == ["total_requests"]


def test_cli_strict_aborts(log_file, tmp_path):
    code = cli.main([str(log_file), "--output-dir", str(tmp_path / "out"), "--strict"])
    assert code == cli.EXIT_PARSE_ERROR
    assert not (tmp_path / "out").exists()


def test_cli_missing_input(tmp_path):
    code = cli.main([str(tmp_path / "missing.csv"), "--output-dir", str(tmp_path / "out")])
    assert code == cli.EXIT_INPUT_UNAVAILABLE


def test_cli_suspicious_options(tmp_path):
    path = tmp_path / "fail.csv"
    path.write_text(
        "".join(f"10.0.0.9,2024-02-01 10:1{i}:00,/x,{s},ua\n" for i, s in enumerate([403, 403, 404]))
    )
    out = tmp_path / "out"
    code = cli.main([
        str(path), "--output-dir", str(out), "--no-header",
        "--failure-status", "403", "--threshold", "1",
    ])
    assert code == cli.EXIT_OK
    assert (out / "suspicious_ips").read_text() == "10.0.0.9\t2\n"


def test_cli_invalid_option(log_file, tmp_path):
    code = cli.main([str(log_file), "--output-dir", str(tmp_path), "--top-k", "-2"])
    assert code == cli.EXIT_PARSE_ERROR


def test_run_batch_headerless_counts_every_line(tmp_path):
    path = tmp_path / "plain.csv"
    path.write_text("".join(SAMPLE_LINES[1:]))
    out = tmp_path / "out"
    batch = run_batch(LogStore(str(path)), str(out))

    assert batch.results["total_requests"] == 3
    assert batch.summary.error_count == 0
    assert (out / "status_code_analysis").read_text() == "200\t2\n404\t1\n"


def test_rerun_partitions_match_latest_input(tmp_path):
    first = tmp_path / "a.csv"
    first.write_text("10.0.0.1,2024-02-01 10:15:00,/old,301,ua\n")
    second = tmp_path / "b.csv"
    second.write_text("10.0.0.2,2024-02-01 10:16:00,/new,200,ua\n")
    out = tmp_path / "out"

    run_batch(LogStore(str(first)), str(out))
    run_batch(LogStore(str(second)), str(out))

    assert sorted(p.name for p in (out / "partitioned").iterdir()) == ["200"]


def test_cli_defaults_from_environment(log_file, tmp_path, monkeypatch):
    monkeypatch.setenv("TOP_K", "1")
    monkeypatch.setenv("FAILURE_STATUSES", "404")
    monkeypatch.setenv("SUSPICIOUS_THRESHOLD", "0")
    out = tmp_path / "out"

    assert cli.main([str(log_file), "--output-dir", str(out)]) == cli.EXIT_OK
    assert (out / "top_pages").read_text() == "/home\t1\n"
    assert (out / "suspicious_ips").read_text() == "192.168.1.3\t1\n"


def test_cli_flags_override_environment(log_file, tmp_path, monkeypatch):
    monkeypatch.setenv("TOP_K", "1")
    out = tmp_path / "out"
    assert cli.main([str(log_file), "--output-dir", str(out), "--top-k", "2"]) == cli.EXIT_OK
    assert len((out / "top_pages").read_text().splitlines()) == 2


def test_cli_skip_header_env(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("SKIP_HEADER", "false")
    path = tmp_path / "logs.csv"
    path.write_text("".join(SAMPLE_LINES))
    out = tmp_path / "out"
    assert cli.main([str(path), "--output-dir", str(out)]) == cli.EXIT_OK
    # the header is parsed as data and rejected, not silently dropped
    assert (out / "total_requests").read_text() == "3\n"
    assert "1 malformed lines skipped" in capsys.readouterr().out


def test_cli_invalid_environment(log_file, tmp_path, monkeypatch):
    monkeypatch.setenv("TOP_K", "many")
    with pytest.raises(SystemExit) as info:
        cli.main([str(log_file), "--output-dir", str(tmp_path / "out")])
    assert info.value.code == 2
