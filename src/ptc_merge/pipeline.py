"""Capture analysis and time-code merge, end to end."""
from __future__ import annotations

from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from warnings import warn

from ptc_core.errors import ConfigurationError
from ptc_core.protocol import LINKTYPE_USER2
from ptc_core.records import Original
from ptc_core.timebase import to_epoch_us

from .capture import open_capture, open_sink, resolve_format
from .merge import RunningStats, merge_timeline
from .synth import SynthesisConfig, TimeWindow, period_us, synthesize
from .timeline import TimelineIndexWriter

OUTPUT_FORMATS = ("auto", "pcap", "pcapng")


@dataclass(frozen=True)
class RunConfig:
    input_path: Path
    window: TimeWindow | None = None
    output_path: Path | None = None
    synthesis: SynthesisConfig = field(default_factory=SynthesisConfig)
    output_format: str = "auto"
    timeline_path: Path | None = None
    timecode_link_type: int = LINKTYPE_USER2

    @property
    def synthesize(self) -> bool:
        return self.window is not None and self.output_path is not None


def build_config(
    input_path: Path | None,
    start_us: int | None = None,
    end_us: int | None = None,
    output_path: Path | None = None,
    frequency_hz: int | None = None,
    output_format: str = "auto",
    timeline_path: Path | None = None,
) -> RunConfig:
    """Validate raw options into a RunConfig. Raises ConfigurationError; does no I/O."""
    if input_path is None:
        raise ConfigurationError("an input capture is required")
    if (start_us is None) != (end_us is None):
        raise ConfigurationError("start and end must be given together")
    if output_format not in OUTPUT_FORMATS:
        raise ConfigurationError(f"unknown output format {output_format!r}")

    window = None
    if start_us is not None:
        if start_us < 0 or end_us < 0:
            raise ConfigurationError("start and end must be non-negative epoch microseconds")
        window = TimeWindow(start_us, end_us)

    synthesis = SynthesisConfig() if frequency_hz is None else SynthesisConfig(frequency_hz=frequency_hz)

    if window is not None and output_path is None:
        warn("Time window given without an output file; running analysis only")
    elif window is None and output_path is not None:
        warn("Output file given without a time window; running analysis only")

    return RunConfig(
        input_path=Path(input_path),
        window=window,
        output_path=Path(output_path) if output_path is not None else None,
        synthesis=synthesis,
        output_format=output_format,
        timeline_path=Path(timeline_path) if timeline_path is not None else None,
    )


@dataclass
class CaptureReport:
    input_path: Path
    stats: RunningStats
    synthesized: bool = False
    frequency_hz: int | None = None
    period_us: int | None = None
    synthetic_count: int = 0
    total_count: int = 0
    output_path: Path | None = None
    output_format: str | None = None
    timeline_rows: int | None = None


def process_capture(config: RunConfig) -> CaptureReport:
    """Read the capture, gather statistics and, when configured, write the merged capture.

    Analysis-only runs stream the capture without holding frames. Synthesis
    runs buffer every original frame, then every time-code, before sorting.
    """
    stats = RunningStats()
    report = CaptureReport(config.input_path, stats)
    originals: list[Original] | None = [] if config.synthesize else None

    with ExitStack() as stack:
        source = stack.enter_context(open_capture(config.input_path))

        timeline = None
        if config.timeline_path is not None and not config.synthesize:
            timeline = stack.enter_context(TimelineIndexWriter(config.timeline_path))

        for frame in source:
            epoch_us = to_epoch_us(frame.seconds, frame.subsecond, frame.precision)
            stats.update(epoch_us)
            if originals is None and timeline is None:
                continue
            # Readers already reject captured lengths above the declared length.
            record = Original(epoch_us, frame.payload, frame.declared_length)
            if originals is not None:
                originals.append(record)
            if timeline is not None:
                timeline.add(record)
        original_link_type = source.link_type
        if timeline is not None:
            report.timeline_rows = timeline.count

    if stats.regressions:
        warn(f"{stats.regressions} frames in {config.input_path} are earlier than their predecessor")

    if not config.synthesize:
        return report
    if stats.empty:
        warn(f"No frames in {config.input_path}; time-code output not written")
        return report

    report.synthesized = True
    report.frequency_hz = config.synthesis.frequency_hz
    report.period_us = period_us(config.synthesis.frequency_hz)

    synthetics = list(synthesize(config.window, config.synthesis))
    merged = merge_timeline(originals, synthetics)
    report.synthetic_count = len(synthetics)
    report.total_count = len(merged)
    report.output_path = config.output_path
    report.output_format = resolve_format(config.output_path, config.output_format)

    with ExitStack() as stack:
        sink = stack.enter_context(
            open_sink(
                config.output_path,
                config.output_format,
                original_link_type=original_link_type,
                timecode_link_type=config.timecode_link_type,
            )
        )
        timeline = None
        if config.timeline_path is not None:
            timeline = stack.enter_context(TimelineIndexWriter(config.timeline_path))
        for record in merged:
            sink.write(record)
            if timeline is not None:
                timeline.add(record)
        if timeline is not None:
            report.timeline_rows = timeline.count

    return report
