"""Exception hierarchy for the race core and its collaborators."""


class FurlongError(Exception):
    """Base class for all errors raised by furlong."""


class ConfigurationError(FurlongError):
    """Configuration is missing or invalid, or a required collaborator is unset."""


class QuestionSourceError(FurlongError):
    """A question source could not deliver questions.

    Covers transport errors, non-success HTTP status codes, non-zero API
    response codes and malformed payloads.
    """


class SyncWriteError(FurlongError):
    """A write to the shared record store failed."""


class SyncRoleError(FurlongError):
    """A participant without the host role attempted a result write."""
