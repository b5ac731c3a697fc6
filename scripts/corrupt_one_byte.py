import sys
from pathlib import Path

def main():
    if len(sys.argv) != 2:
        print("Usage: corrupt_one_byte.py <capture.pcap>")
        raise SystemExit(2)

    p = Path(sys.argv[1])
    b = bytearray(p.read_bytes())
    if len(b) < 64:
        print("File too small to corrupt safely.")
        raise SystemExit(2)

    # Flip the top byte of the first record's captured length.
    # Global header is 24 bytes; record header is ts_sec, ts_frac, caplen, len.
    # Little-endian caplen occupies bytes 32..35, so byte 35 is its most significant.
    idx = 24 + 8 + 3
    b[idx] ^= 0x01
    p.write_bytes(bytes(b))
    print(f"Corrupted 1 byte at offset {idx} in {p}")

if __name__ == "__main__":
    main()
