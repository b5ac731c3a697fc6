"""pcap-timecode - capture timing report and time-code merge."""
from __future__ import annotations

from pathlib import Path

import click

from ptc_core.timebase import format_fixed_offset

from .pipeline import OUTPUT_FORMATS, CaptureReport, build_config, process_capture


def render_report(report: CaptureReport) -> list[str]:
    """Console lines for a finished run."""
    stats = report.stats
    lines = [
        f"File: {report.input_path}",
        f"Frame count: {stats.count}",
    ]

    if stats.empty:
        lines += [
            "First frame time: N/A",
            "Last frame time: N/A",
            "Duration: N/A",
        ]
        return lines

    for label, epoch_us in (("First", stats.first_us), ("Last", stats.last_us)):
        lines += [
            f"{label} frame time:",
            f"  JST: {format_fixed_offset(epoch_us)}",
            f"  epoch_us: {epoch_us}",
        ]
    lines.append(f"Duration: {stats.duration_us / 1_000_000:.6f} s")

    if report.timeline_rows is not None and not report.synthesized:
        lines.append(f"Timeline index rows: {report.timeline_rows}")

    if report.synthesized:
        lines += [
            "",
            "Generating TimeCode packets...",
            f"TimeCode frequency: {report.frequency_hz} Hz (period: {report.period_us} us)",
            f"TimeCode packets: {report.synthetic_count}",
            f"Total packets (original + TimeCode): {report.total_count}",
            f"Output {report.output_format} file created: {report.output_path}",
        ]
        if report.timeline_rows is not None:
            lines.append(f"Timeline index rows: {report.timeline_rows}")
    return lines


@click.command()
@click.option("--pcap", "input_path", type=click.Path(path_type=Path), help="Input capture (required)")
@click.option("--start", "start_us", type=int, help="Time-code window start, epoch microseconds")
@click.option("--end", "end_us", type=int, help="Time-code window end, epoch microseconds")
@click.option("--file", "output_path", type=click.Path(path_type=Path), help="Output capture with time-codes merged in")
@click.option("--freq", "frequency_hz", type=int, help="Time-code frequency in Hz (default: 64)")
@click.option("--format", "output_format", type=click.Choice(OUTPUT_FORMATS), default="auto", show_default=True,
              help="Output container; auto picks pcapng for a .pcapng suffix")
@click.option("--timeline", "timeline_path", type=click.Path(path_type=Path), help="Write a parquet timeline index")
def main(
    input_path: Path | None,
    start_us: int | None,
    end_us: int | None,
    output_path: Path | None,
    frequency_hz: int | None,
    output_format: str,
    timeline_path: Path | None,
) -> None:
    """Report capture timing and optionally merge periodic time-code frames into it."""
    try:
        config = build_config(
            input_path,
            start_us=start_us,
            end_us=end_us,
            output_path=output_path,
            frequency_hz=frequency_hz,
            output_format=output_format,
            timeline_path=timeline_path,
        )
        report = process_capture(config)
    except Exception as e:
        # Fail closed with a single-line reason, no stack trace.
        click.echo(f"FATAL: {e}", err=True)
        raise SystemExit(1)

    for line in render_report(report):
        click.echo(line)


if __name__ == "__main__":
    main()
