"""
CLOSURE SERVICE ERRORS

Centralized domain errors for the closure engine.

AlreadyClosed is deliberately NOT an exception: a repeated close returns the
existing closure with `created=False` (see closure_writer.WriteResult).
"""


class ClosureServiceError(Exception):
    """Base exception for all closure engine failures."""


class InvalidPeriodConfig(ClosureServiceError):
    """The period key is malformed or the branch has no matching period definition."""


class SourceUnavailable(ClosureServiceError):
    """An event source could not be read; the close attempt is aborted."""


class PostingFailed(ClosureServiceError):
    """
    Secondary records for a discrepancy could not be written.

    The closure itself stays persisted; this is reported for operator
    follow-up, never raised out of a close.
    """


class UnknownSubEntity(ClosureServiceError):
    """A counted sub-entity (ingredient, register) does not exist for the branch."""
