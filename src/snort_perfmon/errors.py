"""Exception hierarchy for snort_perfmon."""

from __future__ import annotations


class SnortPerfmonError(Exception):
    """Base exception for snort_perfmon."""
    pass


# ============================================================
# CONFIGURATION
# ============================================================

class ConfigError(SnortPerfmonError):
    """A Metric or Instance block could not be built."""
    pass


class MissingFieldError(ConfigError):
    """A required option was not set."""

    def __init__(self, block: str, field: str) -> None:
        super().__init__(f"{block}: option `{field}' must be set")
        self.block = block
        self.field = field


class UnknownMetricError(ConfigError):
    """`Collect' referenced a metric that is not in the catalog."""

    def __init__(self, metric: str) -> None:
        super().__init__(f"`Collect' argument not found `{metric}'")
        self.metric = metric


class DuplicateNameError(ConfigError):
    """A Metric or Instance name was defined twice."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"{kind} `{name}' is already defined")
        self.kind = kind
        self.name = name


class InvalidOptionError(ConfigError):
    """An option has the wrong arity, type or value."""
    pass


class SchedulerError(SnortPerfmonError):
    """Periodic callback registration failed."""
    pass


# ============================================================
# READ TIME
# ============================================================

class FileAccessError(SnortPerfmonError):
    """The perfmon file could not be opened, stat'ed or mapped."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class FormatError(SnortPerfmonError, ValueError):
    """A row or a field does not have the expected shape."""
    pass


class CommentAsLastLineError(FormatError):
    """The last line of the perfmon file is a comment."""
    pass


class EmptyRowError(FormatError):
    """The file is empty or its last line holds no data."""
    pass


class ColumnIndexError(SnortPerfmonError, IndexError):
    """A configured column index is beyond the row's field count."""

    def __init__(self, index: int, field_count: int) -> None:
        super().__init__(f"index {index} out of range for row with {field_count} fields")
        self.index = index
        self.field_count = field_count
