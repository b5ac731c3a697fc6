"""Error taxonomy shared by the merge and verify tools."""


class PtcError(Exception):
    """Base class for all fatal pcap-timecode errors."""


class ConfigurationError(PtcError, ValueError):
    """Invalid run configuration, detected before any I/O."""


class SourceOpenError(PtcError):
    """The input capture cannot be opened or is not a capture."""


class SourceReadError(PtcError):
    """The input capture failed mid-stream."""


class SinkOpenError(PtcError):
    """The output capture cannot be created."""


class SinkWriteError(PtcError):
    """A record could not be written to the output capture."""
