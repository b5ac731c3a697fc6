import json
import subprocess
import sys
from pathlib import Path

PY = sys.executable

def run(cmd, cwd):
    return subprocess.run(cmd, cwd=cwd, shell=True, check=False, capture_output=True, text=True)

def test_merge_then_verify(tmp_path):
    repo = Path(__file__).resolve().parents[1]
    cap = tmp_path / "in.pcap"
    out = tmp_path / "out.pcap"

    r = run(f'"{PY}" tools/make_capture.py "{cap}" --ts 1000,5000,9000', cwd=repo)
    assert r.returncode == 0, r.stderr + r.stdout

    # Analysis only
    r = run(f'"{PY}" -m ptc_merge.cli --pcap "{cap}"', cwd=repo)
    assert r.returncode == 0, r.stderr + r.stdout
    assert "Frame count: 3" in r.stdout
    assert "  JST: 1970-01-01 09:00:00.001000+09:00" in r.stdout
    assert "  epoch_us: 9000" in r.stdout
    assert "Duration: 0.008000 s" in r.stdout
    assert "Generating" not in r.stdout

    # Merge a 1 Hz time-code over [0, 10000)
    r = run(f'"{PY}" -m ptc_merge.cli --pcap "{cap}" --start 0 --end 10000 --freq 1 --file "{out}"', cwd=repo)
    assert r.returncode == 0, r.stderr + r.stdout
    assert "TimeCode frequency: 1 Hz (period: 1000000 us)" in r.stdout
    assert "Total packets (original + TimeCode): 4" in r.stdout
    assert out.exists()

    r = run(f'"{PY}" -m ptc_verify.cli capture "{out}"', cwd=repo)
    assert r.returncode == 0, r.stderr + r.stdout
    result = json.loads(r.stdout)
    assert result["status"] == "PASS"
    assert result["frame_count"] == 4
    assert result["timecode_count"] == 1

def test_empty_capture_reports_no_data(make_pcap):
    repo = Path(__file__).resolve().parents[1]
    cap = make_pcap([], name="empty.pcap")

    r = run(f'"{PY}" -m ptc_merge.cli --pcap "{cap}"', cwd=repo)
    assert r.returncode == 0, r.stderr + r.stdout
    assert "Frame count: 0" in r.stdout
    assert "First frame time: N/A" in r.stdout
    assert "Duration: N/A" in r.stdout

def test_configuration_errors_fail_before_io(tmp_path):
    repo = Path(__file__).resolve().parents[1]
    out = tmp_path / "out.pcap"

    r = run(f'"{PY}" -m ptc_merge.cli --start 0 --end 10', cwd=repo)
    assert r.returncode == 1
    assert "FATAL" in r.stderr

    # Input does not exist; the window error must win.
    r = run(f'"{PY}" -m ptc_merge.cli --pcap "{tmp_path / "nope.pcap"}" --start 10 --end 5 --file "{out}"', cwd=repo)
    assert r.returncode == 1
    assert "less than" in r.stderr
    assert not out.exists()

    r = run(f'"{PY}" -m ptc_merge.cli --pcap "{tmp_path / "nope.pcap"}" --freq 0', cwd=repo)
    assert r.returncode == 1
    assert "positive" in r.stderr

def test_corrupt_capture_aborts_without_stats(tmp_path):
    repo = Path(__file__).resolve().parents[1]
    cap = tmp_path / "in.pcap"
    out = tmp_path / "out.pcap"

    r = run(f'"{PY}" tools/make_capture.py "{cap}"', cwd=repo)
    assert r.returncode == 0, r.stderr + r.stdout
    r = run(f'"{PY}" scripts/corrupt_one_byte.py "{cap}"', cwd=repo)
    assert r.returncode == 0, r.stderr + r.stdout

    r = run(f'"{PY}" -m ptc_merge.cli --pcap "{cap}" --start 0 --end 10000 --file "{out}"', cwd=repo)
    assert r.returncode != 0
    assert "FATAL" in r.stderr
    assert "Frame count" not in r.stdout
    assert not out.exists()

    r = run(f'"{PY}" -m ptc_verify.cli capture "{cap}"', cwd=repo)
    assert r.returncode == 1
    assert json.loads(r.stdout)["errors"][0]["code"] == "E_SOURCE_READ"
