"""Domain exceptions.

Services raise these instead of HTTP errors so they can be used from the API
layer and from background jobs alike. The application registers a single
handler that turns them into JSON responses using ``http_status``.
"""


class TaskHubError(Exception):
    """Base exception for domain errors."""

    http_status: int = 400

    def __init__(self, message: str, code: str = "TASKHUB_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(TaskHubError):
    """A task, collaborator, template, subtask or other resource is absent."""

    http_status = 404

    def __init__(self, resource: str, resource_id: object | None = None):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND",
        )


class ForbiddenError(TaskHubError):
    """The actor lacks the role required for the requested action."""

    http_status = 403

    def __init__(self, message: str = "You don't have permission to access this resource"):
        super().__init__(message=message, code="FORBIDDEN")


class DuplicateCollaboratorError(TaskHubError):
    """A collaborator row for the (task, user) pair already exists."""

    http_status = 409

    def __init__(self):
        super().__init__(
            message="User is already a collaborator for this task",
            code="DUPLICATE_COLLABORATOR",
        )


class InvalidCollaboratorError(TaskHubError):
    """The task owner cannot be added as a collaborator on their own task."""

    def __init__(self):
        super().__init__(
            message="Cannot add the task owner as a collaborator",
            code="INVALID_COLLABORATOR",
        )


class NotRecurringError(TaskHubError):
    """An instance was requested for a task that is not recurring."""

    def __init__(self):
        super().__init__(
            message="This is not a recurring task",
            code="NOT_RECURRING",
        )


class ValidationError(TaskHubError):
    """Malformed input that passed schema validation, e.g. an unknown role."""

    def __init__(self, message: str):
        super().__init__(message=message, code="VALIDATION_ERROR")
