from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(ServiceError):
    """A required field is missing or malformed. Nothing has been written."""

    def __init__(self, message: str, field: str = None) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)
        self.field = field


class InvalidPlanError(ValidationError):
    """Plan id or duration is not part of the EMI catalog."""

    def __init__(self, plan: object) -> None:
        super().__init__(f"Unknown EMI plan: {plan}", field="plan_id")
        self.plan = plan


class ForbiddenError(ServiceError):
    def __init__(self, message: str = "You do not have access to this resource") -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class NotFoundError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ConflictError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class DependencyError(ServiceError):
    """An upstream collaborator failed; the upstream message is kept on `detail`."""

    def __init__(self, message: str, detail: str = None) -> None:
        full = f"{message}: {detail}" if detail else message
        super().__init__(full, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.detail = detail
