import pytest

import ptc_merge.synth as synth_mod
from ptc_core.errors import ConfigurationError
from ptc_core.records import RecordKind
from ptc_merge.synth import SynthesisConfig, TimeWindow, expected_count, period_us, synthesize


@pytest.mark.parametrize(
    "freq,start,end",
    [
        (1, 0, 10_000),
        (64, 1_000_000, 2_000_000),
        (64, 5, 31_255),
        (3, 0, 3_000_000),
        (1000, 123, 98_765),
        (1_000_000, 0, 50),
    ],
)
def test_count_spacing_and_bounds(freq, start, end):
    window = TimeWindow(start, end)
    cfg = SynthesisConfig(frequency_hz=freq)
    period = 1_000_000 // freq

    out = list(synthesize(window, cfg))

    assert len(out) == (end - start) // period + 1 == expected_count(window, cfg)
    assert out[0].timestamp_us == start
    assert out[-1].timestamp_us <= end
    assert all(b.timestamp_us - a.timestamp_us == period for a, b in zip(out, out[1:]))


def test_default_period_is_15625_us():
    assert SynthesisConfig().frequency_hz == 64
    assert period_us(64) == 15_625


def test_end_is_inclusive():
    out = list(synthesize(TimeWindow(0, 31_250), SynthesisConfig()))
    assert [r.timestamp_us for r in out] == [0, 15_625, 31_250]


def test_counter_wraps_modulo_64():
    out = list(synthesize(TimeWindow(0, 200 * 15_625), SynthesisConfig()))
    assert len(out) == 201
    assert [r.counter for r in out] == [i % 64 for i in range(201)]
    assert out[63].counter == 63 and out[64].counter == 0


def test_payload_is_marker_and_six_bit_counter():
    out = list(synthesize(TimeWindow(0, 100 * 15_625), SynthesisConfig()))
    for i, r in enumerate(out):
        assert r.kind is RecordKind.SYNTHETIC
        assert r.payload == bytes((0xFC, i % 64))
        assert r.payload[1] & 0xC0 == 0
        assert r.declared_length == 2


def test_marker_is_configurable():
    out = list(synthesize(TimeWindow(0, 10), SynthesisConfig(frequency_hz=1, marker=0xAB)))
    assert out[0].payload == b"\xab\x00"


def test_repeated_calls_are_identical():
    window, cfg = TimeWindow(17, 1_000_017), SynthesisConfig(frequency_hz=7)
    assert list(synthesize(window, cfg)) == list(synthesize(window, cfg))


@pytest.mark.parametrize("freq", [0, -1, -64, 1_000_001])
def test_bad_frequency_rejected(freq):
    with pytest.raises(ConfigurationError):
        SynthesisConfig(frequency_hz=freq)


@pytest.mark.parametrize("start,end", [(10, 10), (11, 10)])
def test_bad_window_rejected(start, end):
    with pytest.raises(ConfigurationError):
        TimeWindow(start, end)


def test_bad_marker_rejected():
    with pytest.raises(ConfigurationError):
        SynthesisConfig(marker=0x100)


def test_large_request_warns(monkeypatch):
    monkeypatch.setattr(synth_mod, "LARGE_SYNTHESIS_WARNING", 10)
    with pytest.warns(UserWarning, match="time-code records"):
        out = list(synthesize(TimeWindow(0, 1_000_000), SynthesisConfig(frequency_hz=100)))
    assert len(out) == 101
