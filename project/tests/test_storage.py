# tests/test_storage.py

from datetime import datetime, timedelta

import pytest

from backoffice.services.storage import (
    alert_due,
    bytes_to_mb,
    next_run_at,
    scan_folder,
    storage_color,
    storage_status,
    usage_percentage,
)

MIB = 1024 * 1024


def write_file(path, size):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\0" * size)


def test_scan_folder_skips_excluded_dirs_and_logs(tmp_path):
    write_file(tmp_path / "node_modules" / "big.bin", 1 * MIB)
    write_file(tmp_path / "site" / "data.bin", 2 * MIB)
    write_file(tmp_path / "site" / "debug.log", 5000)
    write_file(tmp_path / ".git" / "objects" / "pack.bin", 3000)

    scan = scan_folder(str(tmp_path))

    assert scan.total_bytes == 2 * MIB
    assert bytes_to_mb(scan.total_bytes) == 2.0
    assert scan.file_count == 1
    assert scan.excluded_count >= 1
    assert scan.excluded_count == 3
    assert scan.scan_time_ms >= 0


def test_scan_folder_missing_path_is_empty(tmp_path):
    scan = scan_folder(str(tmp_path / "missing"))
    assert scan.total_bytes == 0
    assert scan.file_count == 0


def test_bytes_to_mb_rounds_two_decimals():
    assert bytes_to_mb(0) == 0.0
    assert bytes_to_mb(1536 * 1024) == 1.5
    assert bytes_to_mb(1234567) == 1.18


@pytest.mark.parametrize("used, expected_pct, expected_status", [
    (850, 85.0, "warning"),
    (920, 92.0, "danger"),
    (949, 94.9, "danger"),
    (950, 95.0, "critical"),
    (799, 79.9, "ok"),
    (800, 80.0, "warning"),
    (900, 90.0, "danger"),
])
def test_usage_tiers(used, expected_pct, expected_status):
    pct = usage_percentage(used, 1000)
    assert pct == expected_pct
    assert storage_status(pct) == expected_status


def test_status_colors_follow_tiers():
    assert storage_color(10) == "#16a34a"
    assert storage_color(85) == "#ca8a04"
    assert storage_color(92) == "#ea580c"
    assert storage_color(99) == "#dc2626"


def test_usage_percentage_without_limit():
    assert usage_percentage(100, 0) == 0.0


def test_alert_cooldown():
    now = datetime(2026, 10, 19, 12, 0)
    assert alert_due(None, now, 24)
    assert not alert_due(now - timedelta(hours=23), now, 24)
    assert alert_due(now - timedelta(hours=24), now, 24)


@pytest.mark.parametrize("now, interval, expected", [
    (datetime(2026, 10, 19, 7, 30), 6, datetime(2026, 10, 19, 12, 0)),
    (datetime(2026, 10, 19, 12, 0), 6, datetime(2026, 10, 19, 18, 0)),
    (datetime(2026, 10, 19, 23, 10), 6, datetime(2026, 10, 20, 0, 0)),
    (datetime(2026, 10, 19, 5, 59, 59), 1, datetime(2026, 10, 19, 6, 0)),
    (datetime(2026, 10, 19, 1, 0), 24, datetime(2026, 10, 20, 0, 0)),
])
def test_next_run_at_aligns_to_clock(now, interval, expected):
    assert next_run_at(now, interval) == expected
