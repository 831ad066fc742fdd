import pytest

from helalist_client.utils.formatting import (
    format_duration,
    format_size,
    format_timestamp,
)


@pytest.mark.parametrize(
    "size, expected",
    [(0, "0 B"), (512, "512.0 B"), (1536, "1.5 KB"), (5 * 1024**3, "5.0 GB")],
)
def test_format_size(size, expected):
    assert format_size(size) == expected


@pytest.mark.parametrize(
    "seconds, expected", [(0, "0s"), (59.9, "59s"), (61, "1m 1s"), (3600, "1h")]
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_format_timestamp():
    assert format_timestamp("2024-05-01T12:34:56Z") == "2024-05-01 12:34"
    assert format_timestamp("2024-05-01T12:34:56.123+08:00") == "2024-05-01 12:34"
    assert format_timestamp(None) == "-"
    assert format_timestamp("yesterday") == "yesterday"
