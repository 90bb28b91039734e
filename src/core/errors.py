"""Exception hierarchy shared by the store, the memory operations and the agent."""

from __future__ import annotations


class FirstResponderError(Exception):
    pass


class NotFoundError(FirstResponderError):
    """A referenced incident or hypothesis does not exist."""


class StorageError(FirstResponderError):
    """The incident record could not be read or written."""


class HypothesisStateError(FirstResponderError):
    """A hypothesis transition was requested out of a terminal state."""


class UnknownToolError(FirstResponderError):
    pass


class InvalidToolInputError(FirstResponderError):
    """A tool input bag did not match the tool's declared schema."""


class ToolExecutionError(FirstResponderError):
    pass


class OracleError(FirstResponderError):
    """The LLM completion request failed or stalled."""


class SessionBusyError(FirstResponderError):
    pass
