from ptc_core.timebase import Precision, format_fixed_offset, split_epoch_us, to_epoch_us


def test_nanosecond_subsecond_is_truncated():
    assert to_epoch_us(0, 999, Precision.NANO) == 0
    assert to_epoch_us(1, 999_999_999, Precision.NANO) == 1_999_999


def test_microsecond_subsecond_used_as_is():
    assert to_epoch_us(1_700_000_000, 500_000, Precision.MICRO) == 1_700_000_000_500_000


def test_render_fixed_offset():
    s = format_fixed_offset(1_700_000_000 * 1_000_000 + 500_000)
    assert s.endswith(".500000+09:00")
    assert s == "2023-11-15 07:13:20.500000+09:00"


def test_render_epoch_zero():
    assert format_fixed_offset(0) == "1970-01-01 09:00:00.000000+09:00"


def test_negative_remainder_borrows_one_second():
    assert split_epoch_us(-1) == (-1, 999_999)
    assert split_epoch_us(-1_000_000) == (-1, 0)
    assert format_fixed_offset(-1) == "1970-01-01 08:59:59.999999+09:00"


def test_render_ignores_host_timezone(monkeypatch):
    import time

    if not hasattr(time, "tzset"):
        return
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    try:
        assert format_fixed_offset(0) == "1970-01-01 09:00:00.000000+09:00"
    finally:
        monkeypatch.undo()
        time.tzset()


def test_last_renderable_second():
    from ptc_core.protocol import MAX_EPOCH_SECONDS

    assert format_fixed_offset(MAX_EPOCH_SECONDS * 1_000_000 + 999_999) == "9999-12-31 23:59:59.999999+09:00"
