from pathlib import Path
from ptc_core.errors import SourceOpenError, SourceReadError
from ptc_core.protocol import COUNTER_MASK, COUNTER_MODULUS, LINKTYPE_USER2, SPW_ESC, TIMECODE_FRAME_LEN
from ptc_core.timebase import to_epoch_us
from ptc_merge.capture import open_capture
from .const import ERRORS

def _fail(errors, code, **detail):
    errors.append({"code": code, "message": ERRORS[code], **detail})
    return {"status": "FAIL", "error_count": len(errors), "errors": errors}

def _looks_like_timecode(frame, marker: int, timecode_link_type: int) -> bool:
    return (
        frame.link_type == timecode_link_type
        and len(frame.payload) == TIMECODE_FRAME_LEN
        and frame.declared_length == TIMECODE_FRAME_LEN
        and frame.payload[0] == marker
    )

def verify_capture(path: Path, marker: int = SPW_ESC, timecode_link_type: int = LINKTYPE_USER2) -> dict:
    """Check frame ordering and time-code framing, counter sequence and spacing.

    With several interface link types (pcapng output), time-codes are the frames
    on the time-code link type. A capture with a single link type cannot say
    which frames were synthesized; there a time-code is any frame on the
    time-code link type that is two bytes long and starts with the marker, so a
    two-byte original frame that starts with the marker in a merged classic pcap
    is counted as a time-code and can fail the sequence check.
    """
    errors = []
    frame_count = 0
    timecode_count = 0
    prev_ts = None
    prev_tc_ts = None
    prev_counter = None
    tc_period = None

    try:
        source = open_capture(path)
    except SourceOpenError as e:
        return _fail(errors, "E_SOURCE_OPEN", detail=str(e))

    with source:
        # Several interface link types: trust them. One link type: fall back to frame shape.
        by_link_type = len(source.link_types) > 1
        try:
            for frame in source:
                ts = to_epoch_us(frame.seconds, frame.subsecond, frame.precision)
                if prev_ts is not None and ts < prev_ts:
                    return _fail(errors, "E_ORDER", frame=frame_count, timestamp_us=ts, previous_us=prev_ts)
                prev_ts = ts
                frame_count += 1

                if by_link_type:
                    is_timecode = frame.link_type == timecode_link_type
                else:
                    is_timecode = _looks_like_timecode(frame, marker, timecode_link_type)
                if not is_timecode:
                    continue

                p = frame.payload
                if (
                    len(p) != TIMECODE_FRAME_LEN
                    or frame.declared_length != TIMECODE_FRAME_LEN
                    or p[0] != marker
                    or p[1] & ~COUNTER_MASK
                ):
                    return _fail(errors, "E_TIMECODE_FORMAT", frame=frame_count - 1, payload=p.hex())

                counter = p[1]
                if prev_counter is not None and counter != (prev_counter + 1) % COUNTER_MODULUS:
                    return _fail(errors, "E_TIMECODE_SEQUENCE", frame=frame_count - 1,
                                 counter=counter, previous=prev_counter)
                if prev_tc_ts is not None:
                    gap = ts - prev_tc_ts
                    if tc_period is None:
                        tc_period = gap
                    elif gap != tc_period:
                        return _fail(errors, "E_TIMECODE_PERIOD", frame=frame_count - 1,
                                     period_us=tc_period, gap_us=gap)
                prev_counter = counter
                prev_tc_ts = ts
                timecode_count += 1
        except SourceReadError as e:
            return _fail(errors, "E_SOURCE_READ", detail=str(e))

    return {
        "status": "PASS",
        "error_count": 0,
        "errors": [],
        "frame_count": frame_count,
        "timecode_count": timecode_count,
        "timecode_period_us": tc_period,
    }
