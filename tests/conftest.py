import sys
from pathlib import Path

import pytest

REPO = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO / "tools"))

from make_capture import write_capture  # noqa: E402


@pytest.fixture
def repo():
    return REPO


@pytest.fixture
def make_pcap(tmp_path):
    """Write a classic pcap into tmp_path; returns its path."""
    def _make(timestamps_us, name="in.pcap", **kw):
        return write_capture(tmp_path / name, timestamps_us, **kw)
    return _make
