from typing import List, Optional


class PortalError(Exception):
    """Base class for errors raised by the lifecycle services."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": type(self).__name__}


class ValidationError(PortalError):
    """Malformed input: bad code shape, missing required field, bad dates."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[List[dict]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.errors:
            body["errors"] = self.errors
        return body


class PhaseProgressionError(PortalError):
    """An illegal phase/status transition was attempted."""

    status_code = 409

    def __init__(self, source, target, precondition: str, source_status=None, target_status=None):
        self.source = source
        self.target = target
        self.precondition = precondition
        self.source_status = source_status
        self.target_status = target_status
        super().__init__(
            f"Cannot move from {_label(source)} to {_label(target)}: {precondition}"
        )

    def to_dict(self) -> dict:
        body = super().to_dict()
        body.update({
            "source": _label(self.source),
            "target": _label(self.target),
            "precondition": self.precondition,
        })
        if self.source_status is not None:
            body["source_status"] = _label(self.source_status)
        if self.target_status is not None:
            body["target_status"] = _label(self.target_status)
        return body


class OverlapError(PortalError):
    """The cohort's windows collide with one or more existing cohorts."""

    status_code = 409

    def __init__(self, message: str, conflicts: Optional[List[dict]] = None):
        super().__init__(message)
        self.conflicts = conflicts or []

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["conflicts"] = self.conflicts
        return body


class NotFoundError(PortalError):
    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        if entity_id:
            message = f"{entity} not found: {entity_id}"
        else:
            message = f"{entity} not found"
        super().__init__(message)


def _label(value) -> str:
    return getattr(value, "value", str(value))
