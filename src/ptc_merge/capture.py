"""Capture container adapters: classic libpcap and pcapng, read and write.

Readers yield ``CaptureFrame`` objects with the timestamp left in the
container's own precision; normalization happens in ``ptc_core.timebase``.
Writers consume ``ptc_core`` records and pick the link type from the record
kind.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator
from warnings import warn

from ptc_core.errors import SinkOpenError, SinkWriteError, SourceOpenError, SourceReadError
from ptc_core.protocol import (
    DEFAULT_SNAPLEN,
    LINKTYPE_USER2,
    MAX_CAPTURED_LENGTH,
    MAX_EPOCH_SECONDS,
    PCAP_FILE_HEADER_FMT,
    PCAP_FILE_HEADER_LEN,
    PCAP_MAGIC_NS_BE,
    PCAP_MAGIC_NS_LE,
    PCAP_MAGIC_US,
    PCAP_MAGIC_US_BE,
    PCAP_MAGIC_US_LE,
    PCAP_REC_HEADER_FMT,
    PCAP_REC_HEADER_LEN,
    PCAP_VERSION_MAJOR,
    PCAP_VERSION_MINOR,
    PCAPNG_BYTE_ORDER_MAGIC,
    PCAPNG_DEFAULT_TSRESOL,
    PCAPNG_EPB,
    PCAPNG_IDB,
    PCAPNG_OPT_ENDOFOPT,
    PCAPNG_OPT_IF_TSRESOL,
    PCAPNG_SHB,
    PCAPNG_SHB_BYTES,
    PCAPNG_VERSION_MAJOR,
    PCAPNG_VERSION_MINOR,
)
from ptc_core.records import RecordKind, TimestampedRecord, sink_fields
from ptc_core.timebase import Precision

_UINT32_MAX = 0xFFFFFFFF

_PCAP_MAGICS = {
    PCAP_MAGIC_US_LE: ("<", Precision.MICRO),
    PCAP_MAGIC_US_BE: (">", Precision.MICRO),
    PCAP_MAGIC_NS_LE: ("<", Precision.NANO),
    PCAP_MAGIC_NS_BE: (">", Precision.NANO),
}

_TSRESOL_PRECISION = {6: Precision.MICRO, 9: Precision.NANO}


@dataclass(frozen=True)
class CaptureFrame:
    """One frame as stored in the container."""

    seconds: int
    subsecond: int
    precision: Precision
    declared_length: int
    payload: bytes
    link_type: int


def _read_exact(f: BinaryIO, n: int, what: str) -> bytes:
    data = f.read(n)
    if len(data) != n:
        raise SourceReadError(f"Truncated {what} at offset {f.tell() - len(data)}")
    return data


def _check_lengths(caplen: int, declared: int, index: int) -> None:
    if caplen > MAX_CAPTURED_LENGTH:
        raise SourceReadError(
            f"Frame {index}: captured length {caplen} exceeds limit {MAX_CAPTURED_LENGTH}"
        )
    if caplen > declared:
        raise SourceReadError(
            f"Frame {index}: captured length {caplen} exceeds declared length {declared}"
        )


class CaptureSource:
    """Base for capture readers. Use as a context manager and iterate frames."""

    def __init__(self, path: Path, f: BinaryIO):
        self.path = Path(path)
        self.f = f
        self.link_types: list[int] = []

    @property
    def link_type(self) -> int:
        return self.link_types[0] if self.link_types else 0

    def __iter__(self) -> Iterator[CaptureFrame]:
        raise NotImplementedError

    def close(self) -> None:
        self.f.close()

    def __enter__(self) -> "CaptureSource":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class PcapSource(CaptureSource):
    """Classic libpcap reader, either byte order, micro or nano magic."""

    def __init__(self, path: Path, f: BinaryIO, endian: str, precision: Precision):
        super().__init__(path, f)
        self.endian = endian
        self.precision = precision
        self._rec = struct.Struct(endian + PCAP_REC_HEADER_FMT)

        header = f.read(PCAP_FILE_HEADER_LEN)
        if len(header) < PCAP_FILE_HEADER_LEN:
            raise SourceOpenError(f"Truncated pcap file header in {path}")
        _, _, _, _, _, self.snaplen, network = struct.unpack(endian + PCAP_FILE_HEADER_FMT, header)
        # Upper bits of the network field carry FCS flags.
        self.link_types.append(network & 0xFFFF)

    def __iter__(self) -> Iterator[CaptureFrame]:
        index = 0
        while True:
            start_off = self.f.tell()
            header = self.f.read(PCAP_REC_HEADER_LEN)

            # Clean EOF
            if len(header) == 0:
                return
            if len(header) < PCAP_REC_HEADER_LEN:
                raise SourceReadError(f"Truncated record header at offset {start_off}")

            ts_sec, ts_frac, caplen, declared = self._rec.unpack(header)
            _check_lengths(caplen, declared, index)
            payload = _read_exact(self.f, caplen, f"payload of frame {index}")

            yield CaptureFrame(ts_sec, ts_frac, self.precision, declared, payload, self.link_type)
            index += 1


class PcapNgSource(CaptureSource):
    """pcapng reader: enhanced packet blocks only, 10^-6 or 10^-9 resolution."""

    def __init__(self, path: Path, f: BinaryIO):
        super().__init__(path, f)
        self.endian = "<"
        # (link_type, precision) per interface of the current section
        self._interfaces: list[tuple[int, Precision]] = []
        self._skipped: dict[int, int] = {}

        first = self._next_block()
        if first is None or first[0] != PCAPNG_SHB:
            raise SourceOpenError(f"Missing pcapng section header in {path}")
        self._pending = first
        self._prime()

    def _next_block(self) -> tuple[int, bytes] | None:
        start_off = self.f.tell()
        head = self.f.read(8)
        if len(head) == 0:
            return None
        if len(head) < 8:
            raise SourceReadError(f"Truncated block header at offset {start_off}")

        if head[:4] == PCAPNG_SHB_BYTES:
            bom = _read_exact(self.f, 4, "section header")
            if struct.unpack("<I", bom)[0] == PCAPNG_BYTE_ORDER_MAGIC:
                self.endian = "<"
            elif struct.unpack(">I", bom)[0] == PCAPNG_BYTE_ORDER_MAGIC:
                self.endian = ">"
            else:
                raise SourceReadError(f"Bad byte-order magic at offset {start_off}")
            total = struct.unpack(self.endian + "I", head[4:])[0]
            if total < 28 or total % 4:
                raise SourceReadError(f"Bad section header length {total} at offset {start_off}")
            body = bom + _read_exact(self.f, total - 12, "section header")
        else:
            total = struct.unpack(self.endian + "I", head[4:])[0]
            if total < 12 or total % 4 or total - 12 > MAX_CAPTURED_LENGTH:
                raise SourceReadError(f"Bad block length {total} at offset {start_off}")
            body = _read_exact(self.f, total - 8, "block body")

        btype = struct.unpack(self.endian + "I", head[:4])[0]
        trailer = struct.unpack(self.endian + "I", body[-4:])[0]
        if trailer != total:
            raise SourceReadError(f"Block length mismatch at offset {start_off}")
        return btype, body[:-4]

    def _options(self, data: bytes) -> Iterator[tuple[int, bytes]]:
        pos = 0
        while pos + 4 <= len(data):
            code, length = struct.unpack_from(self.endian + "HH", data, pos)
            if code == PCAPNG_OPT_ENDOFOPT:
                return
            value = data[pos + 4:pos + 4 + length]
            yield code, value
            pos += 4 + ((length + 3) & ~3)

    def _add_interface(self, body: bytes) -> None:
        if len(body) < 8:
            raise SourceReadError(f"Interface description block too short ({len(body)} bytes) in {self.path}")
        link_type, _, _ = struct.unpack_from(self.endian + "HHI", body, 0)
        tsresol = PCAPNG_DEFAULT_TSRESOL
        for code, value in self._options(body[8:]):
            if code == PCAPNG_OPT_IF_TSRESOL and value:
                tsresol = value[0]
        if tsresol not in _TSRESOL_PRECISION:
            raise SourceReadError(f"Unsupported if_tsresol {tsresol:#x} in {self.path}")
        self._interfaces.append((link_type, _TSRESOL_PRECISION[tsresol]))
        if link_type not in self.link_types:
            self.link_types.append(link_type)

    def _prime(self) -> None:
        """Read blocks up to the first packet so link types are known before iteration."""
        blocks = []
        block = self._pending
        while block is not None:
            blocks.append(block)
            self._track(block)
            if block[0] == PCAPNG_EPB:
                break
            block = self._next_block()
        self._buffered = blocks

    def _track(self, block: tuple[int, bytes]) -> None:
        if block[0] == PCAPNG_SHB:
            self._interfaces = []
        elif block[0] == PCAPNG_IDB:
            self._add_interface(block[1])

    def _blocks(self) -> Iterator[tuple[int, bytes]]:
        yield from self._buffered
        while True:
            block = self._next_block()
            if block is None:
                return
            self._track(block)
            yield block

    def __iter__(self) -> Iterator[CaptureFrame]:
        index = 0
        for btype, body in self._blocks():
            if btype in (PCAPNG_SHB, PCAPNG_IDB):
                continue
            if btype != PCAPNG_EPB:
                self._skipped[btype] = self._skipped.get(btype, 0) + 1
                continue

            if len(body) < 20:
                raise SourceReadError(f"Frame {index}: enhanced packet block too short ({len(body)} bytes)")
            iface, ts_high, ts_low, caplen, declared = struct.unpack_from(self.endian + "IIIII", body, 0)
            if iface >= len(self._interfaces):
                raise SourceReadError(f"Frame {index}: unknown interface {iface}")
            _check_lengths(caplen, declared, index)
            if 20 + caplen > len(body):
                raise SourceReadError(f"Truncated payload of frame {index}")

            link_type, precision = self._interfaces[iface]
            seconds, subsecond = divmod((ts_high << 32) | ts_low, 10 ** precision.value)
            if seconds > MAX_EPOCH_SECONDS:
                raise SourceReadError(f"Frame {index}: timestamp {seconds} s is past the year 9999")
            yield CaptureFrame(seconds, subsecond, precision, declared, body[20:20 + caplen], link_type)
            index += 1

        if self._skipped:
            warn(f"Skipped non-packet pcapng blocks in {self.path}: {self._skipped}")


def open_capture(path: Path) -> CaptureSource:
    """Open a capture file, detecting classic pcap or pcapng from its magic."""
    path = Path(path)
    try:
        f = open(path, "rb")
    except OSError as e:
        raise SourceOpenError(f"Failed to open capture {path}: {e.strerror or e}") from e

    try:
        magic = f.read(4)
        f.seek(0)
        if magic in _PCAP_MAGICS:
            endian, precision = _PCAP_MAGICS[magic]
            return PcapSource(path, f, endian, precision)
        if magic == PCAPNG_SHB_BYTES:
            return PcapNgSource(path, f)
        raise SourceOpenError(f"Not a pcap or pcapng file: {path} (magic {magic!r})")
    except SourceReadError as e:
        f.close()
        raise SourceOpenError(str(e)) from e
    except Exception:
        f.close()
        raise


class CaptureSink:
    """Base for capture writers. Records are written in the order given."""

    def __init__(self, path: Path, link_types: dict[RecordKind, int]):
        self.path = Path(path)
        self.link_types = link_types
        self.count = 0
        try:
            self.f = open(self.path, "wb")
        except OSError as e:
            raise SinkOpenError(f"Failed to open output capture {self.path}: {e.strerror or e}") from e
        try:
            self._write_header()
        except OSError as e:
            self.f.close()
            raise SinkOpenError(f"Failed to write header to {self.path}: {e}") from e

    def _write_header(self) -> None:
        raise NotImplementedError

    def _encode(self, record: TimestampedRecord) -> bytes:
        raise NotImplementedError

    def write(self, record: TimestampedRecord) -> None:
        try:
            blob = self._encode(record)
        except struct.error as e:
            raise SinkWriteError(
                f"Cannot encode record {self.count} (timestamp_us={record.timestamp_us}): {e}"
            ) from e
        try:
            self.f.write(blob)
        except OSError as e:
            raise SinkWriteError(f"Failed to write record {self.count} to {self.path}: {e}") from e
        self.count += 1

    def close(self) -> None:
        try:
            self.f.close()
        except OSError as e:
            raise SinkWriteError(f"Failed to close {self.path}: {e}") from e

    def __enter__(self) -> "CaptureSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
        # A failed run leaves no half-written capture behind.
        if exc_type is not None:
            self.path.unlink(missing_ok=True)


class PcapSink(CaptureSink):
    """Classic pcap writer, microsecond precision.

    A classic pcap file has one link type, taken from the SYNTHETIC entry.
    """

    def _write_header(self) -> None:
        self.f.write(struct.pack(
            "<" + PCAP_FILE_HEADER_FMT,
            PCAP_MAGIC_US,
            PCAP_VERSION_MAJOR,
            PCAP_VERSION_MINOR,
            0,
            0,
            DEFAULT_SNAPLEN,
            self.link_types[RecordKind.SYNTHETIC],
        ))

    def _encode(self, record: TimestampedRecord) -> bytes:
        seconds, micros, declared, payload, _ = sink_fields(record)
        if seconds < 0 or seconds > _UINT32_MAX:
            raise struct.error(f"seconds {seconds} out of range for classic pcap")
        return struct.pack("<" + PCAP_REC_HEADER_FMT, seconds, micros, len(payload), declared) + payload


class PcapNgSink(CaptureSink):
    """pcapng writer with one interface per record kind."""

    _KINDS = (RecordKind.ORIGINAL, RecordKind.SYNTHETIC)

    def _write_header(self) -> None:
        shb = struct.pack("<IHHq", PCAPNG_BYTE_ORDER_MAGIC, PCAPNG_VERSION_MAJOR, PCAPNG_VERSION_MINOR, -1)
        self.f.write(self._block(PCAPNG_SHB, shb))
        for kind in self._KINDS:
            options = struct.pack("<HHB3x", PCAPNG_OPT_IF_TSRESOL, 1, PCAPNG_DEFAULT_TSRESOL)
            options += struct.pack("<HH", PCAPNG_OPT_ENDOFOPT, 0)
            idb = struct.pack("<HHI", self.link_types[kind], 0, DEFAULT_SNAPLEN) + options
            self.f.write(self._block(PCAPNG_IDB, idb))

    @staticmethod
    def _block(btype: int, body: bytes) -> bytes:
        total = 12 + len(body)
        return struct.pack("<II", btype, total) + body + struct.pack("<I", total)

    def _encode(self, record: TimestampedRecord) -> bytes:
        if record.timestamp_us < 0:
            raise struct.error(f"negative timestamp {record.timestamp_us}")
        _, _, declared, payload, kind = sink_fields(record)
        ts = record.timestamp_us
        pad = b"\x00" * (-len(payload) % 4)
        epb = struct.pack(
            "<IIIII",
            self._KINDS.index(kind),
            ts >> 32,
            ts & _UINT32_MAX,
            len(payload),
            declared,
        ) + payload + pad
        return self._block(PCAPNG_EPB, epb)


def resolve_format(path: Path, fmt: str) -> str:
    if fmt == "auto":
        return "pcapng" if Path(path).suffix.lower() == ".pcapng" else "pcap"
    return fmt


def open_sink(
    path: Path,
    fmt: str = "auto",
    original_link_type: int = 0,
    timecode_link_type: int = LINKTYPE_USER2,
) -> CaptureSink:
    """Create a capture writer for ``path``; ``fmt`` is auto, pcap or pcapng."""
    link_types = {
        RecordKind.ORIGINAL: original_link_type,
        RecordKind.SYNTHETIC: timecode_link_type,
    }
    fmt = resolve_format(path, fmt)
    if fmt == "pcapng":
        return PcapNgSink(path, link_types)
    if fmt == "pcap":
        return PcapSink(path, link_types)
    raise SinkOpenError(f"Unknown output format {fmt!r}")
