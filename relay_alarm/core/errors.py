"""
Command validation errors.

Raised by the command handlers before any state is touched; the HTTP layer
turns them into 400 responses.
"""


class RelayCommandError(ValueError):
    """Base class for rejected relay commands."""


class InvalidShape(RelayCommandError):
    """The payload does not cover exactly the configured relay ids, or a field has the wrong type."""


class InvalidRange(RelayCommandError):
    """A relay timing value is outside its allowed bounds."""


class RelayDisabled(RelayCommandError):
    """The targeted relay is disabled and cannot be tested."""
