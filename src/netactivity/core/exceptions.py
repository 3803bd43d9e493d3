from __future__ import annotations


class NetActivityError(Exception):
    """Base error for the activity daemon."""


class ConfigError(NetActivityError):
    pass


class SampleError(NetActivityError):
    """Counters could not be sampled for this tick."""


class InterfaceNotFound(SampleError):
    def __init__(self, interface: str) -> None:
        super().__init__(f"interface not found: {interface}")
        self.interface = interface


class ReadFailure(SampleError):
    pass


class WriteFailure(NetActivityError):
    pass


class ParseFailure(NetActivityError):
    pass


class FatalLoopError(NetActivityError):
    pass
