from __future__ import annotations


class TaskCoreError(Exception):
    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(TaskCoreError):
    def __init__(self, message: str = "Task not found") -> None:
        super().__init__(message)


class UnauthorizedError(TaskCoreError):
    def __init__(self, message: str = "Operation not authorized") -> None:
        super().__init__(message)


class ValidationError(TaskCoreError):
    pass


class InvalidTransitionError(ValidationError):
    def __init__(self, current: object, target: object) -> None:
        super().__init__(f"Invalid status transition from {current} to {target}")
        self.current = current
        self.target = target


class ConflictError(TaskCoreError):
    pass


class InternalError(TaskCoreError):
    # detail lives in __cause__
    def __init__(self, message: str = "Internal error") -> None:
        super().__init__(message)
