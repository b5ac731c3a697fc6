import struct

from ptc_core.records import Original, Synthetic
from ptc_merge.capture import open_sink
from ptc_merge.pipeline import build_config, process_capture
from ptc_verify.logic import verify_capture


def _write(path, records, fmt="auto"):
    with open_sink(path, fmt, original_link_type=1) as sink:
        for r in records:
            sink.write(r)
    return path


def test_merged_pcapng_passes(make_pcap, tmp_path):
    path = make_pcap([1000, 16_000, 40_000])
    out = tmp_path / "out.pcapng"
    process_capture(build_config(path, start_us=0, end_us=1_000_000, output_path=out))

    result = verify_capture(out)

    assert result["status"] == "PASS"
    assert result["frame_count"] == 3 + 65
    assert result["timecode_count"] == 65
    assert result["timecode_period_us"] == 15_625


def test_merged_pcap_passes_by_frame_shape(make_pcap, tmp_path):
    path = make_pcap([1000, 5000, 9000])
    out = tmp_path / "out.pcap"
    process_capture(build_config(path, start_us=0, end_us=10_000, output_path=out, frequency_hz=1000))

    result = verify_capture(out)

    assert result["status"] == "PASS"
    assert result["timecode_count"] == 11


def test_out_of_order_capture_fails(make_pcap):
    result = verify_capture(make_pcap([5000, 1000]))
    assert result["status"] == "FAIL"
    assert result["errors"][0]["code"] == "E_ORDER"
    assert result["errors"][0]["frame"] == 1


def test_counter_gap_fails(tmp_path):
    path = _write(tmp_path / "gap.pcapng", [Synthetic(0, 0), Synthetic(10, 2)])
    result = verify_capture(path)
    assert result["errors"][0]["code"] == "E_TIMECODE_SEQUENCE"


def test_uneven_spacing_fails(tmp_path):
    path = _write(tmp_path / "uneven.pcapng", [Synthetic(0, 0), Synthetic(10, 1), Synthetic(30, 2)])
    result = verify_capture(path)
    assert result["errors"][0]["code"] == "E_TIMECODE_PERIOD"
    assert result["errors"][0]["gap_us"] == 20


def test_wrong_marker_fails(tmp_path):
    path = _write(tmp_path / "tc.pcapng", [Original(0, b"abc", 3), Synthetic(5, 0)])
    result = verify_capture(path, marker=0xFD)
    assert result["errors"][0]["code"] == "E_TIMECODE_FORMAT"
    assert result["errors"][0]["payload"] == "fc00"


def test_unreadable_inputs(tmp_path, make_pcap):
    junk = tmp_path / "junk.pcap"
    junk.write_bytes(b"\x00" * 32)
    assert verify_capture(junk)["errors"][0]["code"] == "E_SOURCE_OPEN"

    torn = make_pcap([1, 2])
    torn.write_bytes(torn.read_bytes()[:-3])
    assert verify_capture(torn)["errors"][0]["code"] == "E_SOURCE_READ"


def test_truncated_packet_block_is_read_failure(tmp_path):
    def block(btype, body):
        total = 12 + len(body)
        return struct.pack("<II", btype, total) + body + struct.pack("<I", total)

    path = tmp_path / "short.pcapng"
    path.write_bytes(
        block(0x0A0D0D0A, struct.pack("<IHHq", 0x1A2B3C4D, 1, 0, -1))
        + block(1, struct.pack("<HHI", 1, 0, 65535))
        + block(6, b"\x00" * 8)
    )
    result = verify_capture(path)
    assert result["status"] == "FAIL"
    assert result["errors"][0]["code"] == "E_SOURCE_READ"


def test_marker_led_frames_on_other_link_types_are_not_timecodes(tmp_path):
    path = tmp_path / "eth.pcap"
    with open(path, "wb") as f:
        f.write(struct.pack("<IHHiIII", 0xA1B2C3D4, 2, 4, 0, 0, 65535, 1))
        for ts, counter in ((0, 5), (10, 9), (25, 2)):
            f.write(struct.pack("<IIII", 0, ts, 2, 2) + bytes((0xFC, counter)))
    result = verify_capture(path)
    assert result["status"] == "PASS"
    assert result["timecode_count"] == 0
