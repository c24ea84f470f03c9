"""Pipeline error taxonomy. Routers map these to HTTP status codes."""


class PipelineError(Exception):
    """Base class for trip pipeline failures."""


class InputValidationError(PipelineError, ValueError):
    """Missing or malformed call arguments; raised before any external call."""


class GroupNotFoundError(PipelineError, LookupError):
    pass


class MemberNotFoundError(PipelineError, LookupError):
    pass


class NotReadyError(PipelineError):
    """The data this operation needs has not been produced yet."""


class GenerationError(PipelineError):
    """The text-generation collaborator failed or returned unusable content."""


class PersistenceError(PipelineError):
    """A write did not land. Nothing tied to it may be treated as done."""
