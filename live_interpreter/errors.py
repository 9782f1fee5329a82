"""
Error taxonomy shared by every pipeline stage.
"""


class InterpreterError(Exception):
    """Base class for errors raised by pipeline components."""


class ConfigurationError(InterpreterError):
    """A required credential or setting is missing. No network call was made."""


class ConnectivityError(InterpreterError):
    """Handshake, transport failure, or unexpected connection close."""


class ProviderError(InterpreterError):
    """The remote service answered with an explicit error."""


class DecodeError(InterpreterError):
    """An inbound message or response payload could not be understood."""


class PlaybackError(InterpreterError):
    """The local audio device failed."""


class SynthesisBusyError(InterpreterError):
    """A speech request was issued while another one is still playing."""
