"""
Exception types raised by the converters.

Fatal problems (caller ordering bugs, runaway stages, bad options) raise
one of these. Recoverable problems such as an unparsable re-extracted
artifact are logged and recorded as warnings instead.
"""


class ConverterError(Exception):
    """Base class for all converter failures."""


class PreconditionError(ConverterError):
    """A stage or accessor ran before the state it depends on existed."""


class IterationLimitError(ConverterError):
    """A stage stepped more times than the driver allows without finishing."""

    def __init__(self, stage_name: str, limit: int):
        self.stage_name = stage_name
        self.limit = limit
        super().__init__(
            f"Stage '{stage_name}' exceeded the iteration ceiling of {limit} "
            f"without finishing"
        )


class ConfigurationError(ConverterError):
    """Invalid converter options."""
