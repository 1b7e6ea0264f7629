"""Domain error taxonomy shared by the API, the stores, and the board controller."""

from __future__ import annotations

STORAGE_UNAVAILABLE_MESSAGE = "Task storage is temporarily unavailable."


class TaskError(Exception):
    """Base class for task domain errors."""

    code = "task_error"

    @property
    def message(self) -> str:
        return str(self)


class TaskValidationError(TaskError):
    """Input rejected before reaching storage."""

    code = "validation_error"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class EmptyTitleError(TaskValidationError):
    def __init__(self) -> None:
        super().__init__("Task title is required.", field="title")


class InvalidDateError(TaskValidationError):
    def __init__(self, value: object, *, field: str = "due_date") -> None:
        super().__init__(f"Invalid due date: {value!r}", field=field)
        self.value = value


class InvalidChoiceError(TaskValidationError):
    def __init__(self, field: str, value: object, choices: tuple[str, ...]) -> None:
        super().__init__(
            f"Invalid {field}: {value!r} (expected one of: {', '.join(choices)})",
            field=field,
        )
        self.value = value
        self.choices = choices


class TaskNotFoundError(TaskError):
    """Operation targeted a task id that does not exist."""

    code = "not_found"

    def __init__(self, task_id: object) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class StorageUnavailableError(TaskError):
    """Connectivity or database failure; the message is always generic."""

    code = "storage_unavailable"

    def __init__(self, message: str = STORAGE_UNAVAILABLE_MESSAGE) -> None:
        super().__init__(message)

    @property
    def message(self) -> str:
        return STORAGE_UNAVAILABLE_MESSAGE
