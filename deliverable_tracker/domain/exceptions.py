"""
Domain Exceptions for the Deliverable Variation Lifecycle.

Custom exceptions enforcing business rules:
- Variation immutability once submitted or approved
- Variation state machine transitions
- Entity lookups

Field-level validation failures are not exceptions; they are returned
as ValidationResult objects so callers can position inline messages.
"""


class DomainError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


# =============================================================================
# Lookup Exceptions
# =============================================================================

class DeliverableNotFoundError(DomainError):
    """Raised when a deliverable cannot be found."""

    def __init__(self, deliverable_guid: str):
        message = f"Deliverable with guid '{deliverable_guid}' not found"
        super().__init__(message, code="DELIVERABLE_NOT_FOUND")
        self.deliverable_guid = deliverable_guid


class VariationNotFoundError(DomainError):
    """Raised when a variation cannot be found."""

    def __init__(self, variation_guid: str):
        message = f"Variation with guid '{variation_guid}' not found"
        super().__init__(message, code="VARIATION_NOT_FOUND")
        self.variation_guid = variation_guid


class ProjectNotFoundError(DomainError):
    """Raised when a project cannot be found."""

    def __init__(self, project_guid: str):
        message = f"Project with guid '{project_guid}' not found"
        super().__init__(message, code="PROJECT_NOT_FOUND")
        self.project_guid = project_guid


class GateNotFoundError(DomainError):
    """Raised when a deliverable gate cannot be found."""

    def __init__(self, gate_guid: str):
        message = f"Deliverable gate with guid '{gate_guid}' not found"
        super().__init__(message, code="GATE_NOT_FOUND")
        self.gate_guid = gate_guid


# =============================================================================
# Variation Exceptions
# =============================================================================

class VariationLockedError(DomainError):
    """Raised when modifying deliverables of a submitted or approved variation."""

    def __init__(self, variation_name: str, state: str):
        message = (
            f"Variation {variation_name} has been {state} "
            f"and cannot be modified."
        )
        super().__init__(message, code="VARIATION_LOCKED")
        self.variation_name = variation_name
        self.state = state


class ApprovedDeliverableError(DomainError):
    """Raised when modifying a deliverable that belongs to an approved variation."""

    def __init__(self, deliverable_guid: str, variation_name: str = "an approved variation"):
        message = (
            f"Deliverable '{deliverable_guid}' belongs to {variation_name} "
            f"and cannot be modified. Make changes to the original deliverable instead."
        )
        super().__init__(message, code="APPROVED_DELIVERABLE")
        self.deliverable_guid = deliverable_guid
        self.variation_name = variation_name


class InvalidStateTransitionError(DomainError):
    """Raised when a variation row cannot move to the requested state."""

    def __init__(self, deliverable_guid: str, from_status: str, action: str):
        message = (
            f"Cannot {action} deliverable '{deliverable_guid}' "
            f"while it is in '{from_status}' state"
        )
        super().__init__(message, code="INVALID_STATE_TRANSITION")
        self.deliverable_guid = deliverable_guid
        self.from_status = from_status
        self.action = action
