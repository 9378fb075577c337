"""Domain exceptions raised by the service layer."""


class DomainError(Exception):
    """Base class for all domain-specific errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class NotFoundError(DomainError):
    """A student, class, subject, unit or quiz id did not resolve."""

    def __init__(self, entity: str, entity_id: int | str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class ValidationFailure(DomainError):
    """A mutation was rejected before anything was changed."""
