"""Everything that aborts a playtime run derives from PlaytimeError."""


class PlaytimeError(Exception):
    """Base class for everything that aborts a playtime run."""

    stage = "run"


class TransportError(PlaytimeError):
    stage = "transport"


class DecodeError(PlaytimeError):
    stage = "decode"


class Cancelled(PlaytimeError):
    """Raised when a blocked caller is released by its cancel signal."""

    stage = "cancelled"


class StageError(PlaytimeError):
    """Wraps the first TransportError/DecodeError/Cancelled raised inside a stage."""

    def __init__(self, cause):
        super().__init__(str(cause))
        self.cause = cause


class ResolutionError(StageError):
    stage = "resolving summoner"


class PaginationError(StageError):
    stage = "retrieving match history"


class AggregationError(StageError):
    stage = "summing up game durations"
