"""
Intent pipeline exceptions
Location: analytics/errors.py
"""


class IntentError(Exception):
    """Base class for intent pipeline failures."""


class PolicyConfigError(IntentError):
    """The intent policy file could not be read or failed validation."""


class EventProcessingError(IntentError):
    """
    A unit of work for one event failed and was rolled back.

    The original exception is chained as __cause__.
    """

    def __init__(self, session_id: str, message: str = "Event processing failed"):
        self.session_id = session_id
        super().__init__(f"{message} (session_id={session_id})")
