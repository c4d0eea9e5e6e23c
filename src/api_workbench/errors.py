"""Error taxonomy shared by the stores, the composer and the CLI."""


class WorkbenchError(Exception):
    """Base class for every error raised by api-workbench."""


class ValidationError(WorkbenchError):
    """The request cannot be sent as described (empty URL, unknown mode...)."""


class CompositionError(ValidationError):
    """The request spec could not be translated into a wire request."""


class PersistenceError(WorkbenchError):
    """A write to the collection store or the credential vault failed."""


class CredentialWriteError(PersistenceError):
    """The request was saved but its credentials could not be stored.

    The saved request is kept; ``request_id`` lets the caller retry the
    credential write.
    """

    def __init__(self, request_id: str, message: str):
        super().__init__(message)
        self.request_id = request_id
