import pytest

from log_analytics.config import AnalysisConfig, load_config
from log_analytics.utils.helpers import minute_bucket, parse_status, parse_ts, rank_counts


def test_defaults():
    config = AnalysisConfig()
    assert config.delimiter == ","
    assert config.top_k == 3
    assert config.failure_statuses == frozenset({404, 500})
    assert config.suspicious_threshold == 3
    assert config.minute_prefix_length == 16
    assert config.skip_header


@pytest.mark.parametrize(
    "kwargs",
    [
        {"delimiter": ""},
        {"top_k": -1},
        {"suspicious_threshold": -1},
        {"minute_prefix_length": 0},
    ],
)
def test_invalid_values(kwargs):
    with pytest.raises(ValueError):
        AnalysisConfig(**kwargs)


def test_failure_statuses_normalized():
    assert AnalysisConfig(failure_statuses=[500, "503"]).failure_statuses == frozenset({500, 503})


def test_load_config_from_env():
    config = load_config(
        {
            "LOG_DELIMITER": "|",
            "TOP_K": "5",
            "FAILURE_STATUSES": "403, 404,500",
            "SUSPICIOUS_THRESHOLD": "10",
            "MINUTE_PREFIX_LENGTH": "13",
            "SKIP_HEADER": "no",
        }
    )
    assert config == AnalysisConfig(
        delimiter="|",
        top_k=5,
        failure_statuses=frozenset({403, 404, 500}),
        suspicious_threshold=10,
        minute_prefix_length=13,
        skip_header=False,
    )


def test_load_config_empty_env_gives_defaults():
    assert load_config({}) == AnalysisConfig()


def test_load_config_rejects_garbage():
    with pytest.raises(ValueError):
        load_config({"TOP_K": "many"})
    with pytest.raises(ValueError):
        load_config({"SKIP_HEADER": "maybe"})


def test_helpers():
    assert minute_bucket("2024-02-01 10:15:42") == "2024-02-01 10:15"
    assert parse_status(" 200 ") == 200
    with pytest.raises(ValueError):
        parse_status("2OO")
    with pytest.raises(ValueError):
        parse_status("\u0664\u0660\u0664")
    with pytest.raises(ValueError):
        parse_status("\u00b2")
    assert rank_counts({"a": 1, "b": 2, "c": 1}) == [("b", 2), ("a", 1), ("c", 1)]
    assert parse_ts("2024-02-01 10:15:00").isoformat() == "2024-02-01T10:15:00+00:00"
    assert parse_ts("not a time") is None
    assert parse_ts("") is None
