import struct
import sys
from pathlib import Path

from ptc_core.protocol import (
    LINKTYPE_ETHERNET,
    PCAP_FILE_HEADER_FMT,
    PCAP_MAGIC_NS,
    PCAP_MAGIC_US,
    PCAP_REC_HEADER_FMT,
    PCAP_VERSION_MAJOR,
    PCAP_VERSION_MINOR,
    DEFAULT_SNAPLEN,
)

# --- CONFIGURATION ---
DEFAULT_TIMESTAMPS_US = [1000, 5000, 9000]
FRAME_LEN = 60  # minimum Ethernet frame without FCS


def make_frame(index: int, length: int = FRAME_LEN) -> bytes:
    """Broadcast Ethernet frame with a local experimental EtherType and a counter payload."""
    header = b"\xff" * 6 + b"\x02\x00\x00\x00\x00\x01" + b"\x88\xb5"
    body = struct.pack(">I", index)
    return (header + body).ljust(length, b"\x00")


def write_capture(out_path, timestamps_us, nano=False, endian="<", snap=None) -> Path:
    """Write a classic pcap with one frame per timestamp.

    With ``snap`` set, frames are captured short of their on-wire length.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    magic = PCAP_MAGIC_NS if nano else PCAP_MAGIC_US

    with open(out, "wb") as f:
        f.write(struct.pack(
            endian + PCAP_FILE_HEADER_FMT,
            magic, PCAP_VERSION_MAJOR, PCAP_VERSION_MINOR, 0, 0, DEFAULT_SNAPLEN, LINKTYPE_ETHERNET,
        ))
        for i, ts in enumerate(timestamps_us):
            sec, usec = divmod(ts, 1_000_000)
            frac = usec * 1000 if nano else usec
            frame = make_frame(i)
            data = frame[:snap] if snap else frame
            f.write(struct.pack(endian + PCAP_REC_HEADER_FMT, sec, frac, len(data), len(frame)))
            f.write(data)

    print(f"GENERATED: {out} ({len(timestamps_us)} frames)")
    return out


if __name__ == "__main__":
    # Usage:
    #   python tools/make_capture.py OUT [--ts 1000,5000,9000] [--nano] [--big-endian] [--snap N]

    args = [a for a in sys.argv[1:] if a]

    def pop_flag(arg_list: list[str], flag: str) -> tuple[bool, list[str]]:
        """Remove a boolean flag from an argv-style list."""
        if flag in arg_list:
            return True, [a for a in arg_list if a != flag]
        return False, arg_list

    def pop_value(arg_list: list[str], flag: str) -> tuple[str | None, list[str]]:
        if flag not in arg_list:
            return None, arg_list
        i = arg_list.index(flag)
        if i + 1 >= len(arg_list):
            raise SystemExit(f"{flag} requires a value")
        return arg_list[i + 1], arg_list[:i] + arg_list[i + 2:]

    nano, args = pop_flag(args, "--nano")
    big, args = pop_flag(args, "--big-endian")
    ts_arg, args = pop_value(args, "--ts")
    snap_arg, args = pop_value(args, "--snap")

    timestamps = [int(t) for t in ts_arg.split(",") if t] if ts_arg is not None else DEFAULT_TIMESTAMPS_US
    out = args[0] if args else "capture.pcap"

    write_capture(out, timestamps, nano=nano, endian=">" if big else "<",
                  snap=int(snap_arg) if snap_arg else None)
