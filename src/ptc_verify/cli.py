import json
from pathlib import Path
import click
from .logic import verify_capture

@click.group()
def main():
    pass

@main.command("capture")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--marker", type=int, default=0xFC, show_default=True, help="Time-code escape marker byte")
def capture_cmd(path: Path, marker: int):
    """Verify ordering and time-codes of a capture.

    In classic pcap output every frame shares one link type, so any two-byte
    frame starting with the marker is taken for a time-code. Merge into
    .pcapng to keep original frames apart.
    """
    result = verify_capture(path, marker=marker)
    click.echo(json.dumps(result, sort_keys=True, separators=(",", ":"), ensure_ascii=False))
    if result["status"] != "PASS":
        raise SystemExit(1)

if __name__ == "__main__":
    main()
