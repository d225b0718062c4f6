"""Custom exceptions for the scoreboard server."""


class SyncError(Exception):
    """Base exception for sync-related errors."""
    pass


class ProtocolError(SyncError):
    """Exception raised when an inbound frame cannot be parsed."""
    pass


class UnknownMessageError(ProtocolError):
    """Exception raised for a well-formed message with an unrecognized type."""

    def __init__(self, message_type):
        super().__init__(f"Unknown message type: {message_type}")
        self.message_type = message_type


class PersistenceError(SyncError):
    """Exception raised when the game state cannot be loaded or saved."""
    pass


class ClientError(SyncError):
    """Exception raised for client-related errors."""
    pass
