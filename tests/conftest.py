import pytest

from log_analytics.models.data_models import Record

HEADER = "ip,timestamp,url,status,user_agent\n"

SAMPLE_LINES = [
    HEADER,
    "192.168.1.1,2024-02-01 10:15:00,/home,200,Mozilla/5.0\n",
    "192.168.1.2,2024-02-01 10:16:00,/products,200,Chrome/90.0\n",
    "192.168.1.3,2024-02-01 10:17:00,/checkout,404,Safari/13.1\n",
]


def make_record(ip="10.0.0.1", timestamp="2024-02-01 10:15:00", url="/home",
                status=200, user_agent="Mozilla/5.0"):
    return Record(ip=ip, timestamp=timestamp, url=url, status=status, user_agent=user_agent)


@pytest.fixture
def sample_records():
    return [
        make_record("192.168.1.1", "2024-02-01 10:15:00", "/home", 200, "Mozilla/5.0"),
        make_record("192.168.1.2", "2024-02-01 10:16:00", "/products", 200, "Chrome/90.0"),
        make_record("192.168.1.3", "2024-02-01 10:17:00", "/checkout", 404, "Safari/13.1"),
    ]


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "access_logs.csv"
    path.write_text("".join(SAMPLE_LINES) + "192.168.1.9,2024-02-01 10:18:00,/cart\n", encoding="utf-8")
    return path
