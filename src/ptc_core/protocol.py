"""Capture protocol constants.

Single source of truth for on-disk magic values, header layouts and the
time-code frame shape. Readers, writers and the verifier must stay in sync.
"""

# Classic libpcap magics, as the first four bytes appear on disk
PCAP_MAGIC_US_LE = b"\xd4\xc3\xb2\xa1"
PCAP_MAGIC_US_BE = b"\xa1\xb2\xc3\xd4"
PCAP_MAGIC_NS_LE = b"\x4d\x3c\xb2\xa1"
PCAP_MAGIC_NS_BE = b"\xa1\xb2\x3c\x4d"

PCAP_MAGIC_US = 0xA1B2C3D4
PCAP_MAGIC_NS = 0xA1B23C4D
PCAP_VERSION_MAJOR = 2
PCAP_VERSION_MINOR = 4

# Global header: [Magic(4) | Major(2) | Minor(2) | ThisZone(4) | SigFigs(4) | SnapLen(4) | Network(4)]
PCAP_FILE_HEADER_FMT = "IHHiIII"
PCAP_FILE_HEADER_LEN = 24

# Record header: [TsSec(4) | TsFrac(4) | CapLen(4) | Len(4)]
PCAP_REC_HEADER_FMT = "IIII"
PCAP_REC_HEADER_LEN = 16

# pcapng blocks
PCAPNG_SHB = 0x0A0D0D0A
PCAPNG_SHB_BYTES = b"\x0a\x0d\x0d\x0a"
PCAPNG_IDB = 0x00000001
PCAPNG_EPB = 0x00000006
PCAPNG_BYTE_ORDER_MAGIC = 0x1A2B3C4D
PCAPNG_VERSION_MAJOR = 1
PCAPNG_VERSION_MINOR = 0
PCAPNG_OPT_ENDOFOPT = 0
PCAPNG_OPT_IF_TSRESOL = 9
PCAPNG_DEFAULT_TSRESOL = 6

# Link types
LINKTYPE_ETHERNET = 1
LINKTYPE_USER2 = 149

DEFAULT_SNAPLEN = 65535

# Safety bound on a single captured frame
MAX_CAPTURED_LENGTH = 256 * 1024 * 1024  # 256 MiB

# Time-code frame: [Escape(1) | Data(1)], data = 6-bit counter, top two bits zero
SPW_ESC = 0xFC
TIMECODE_FRAME_LEN = 2
COUNTER_MODULUS = 64
COUNTER_MASK = 0x3F

DEFAULT_FREQUENCY_HZ = 64

US_PER_SECOND = 1_000_000
NS_PER_US = 1_000

# Warn before generating more than this many time-code records
LARGE_SYNTHESIS_WARNING = 10_000_000

# Last second renderable at UTC+9: 9999-12-31 23:59:59 JST
MAX_EPOCH_SECONDS = 253_402_268_399
