"""
Domain Exceptions for the Estimate Hierarchy.

Custom exceptions enforcing business rules:
- Allocation targets stay inside their own estimate
- Selections are complete before a target is resolved
- Rollup invariants hold after aggregation

Lookup misses and empty estimates are not exceptions: they are reported
as LocateResult states by the allocation resolver.
"""


class DomainError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


# =============================================================================
# Selection Exceptions
# =============================================================================

class IncompleteSelectionError(DomainError):
    """Raised when the id required by the requested level has not been chosen."""

    def __init__(self, level: str, missing: str):
        message = (
            f"Cannot resolve a '{level}' allocation: "
            f"no {missing} has been selected"
        )
        super().__init__(message, code="INCOMPLETE_SELECTION")
        self.level = level
        self.missing = missing


# =============================================================================
# Allocation Exceptions
# =============================================================================

class AllocationTargetNotFoundError(DomainError):
    """Raised when an allocation references a node missing from the estimate."""

    def __init__(self, target_id: str, estimate_id: str):
        message = f"Node '{target_id}' not found in estimate '{estimate_id}'"
        super().__init__(message, code="ALLOCATION_TARGET_NOT_FOUND")
        self.target_id = target_id
        self.estimate_id = estimate_id


class CrossEstimateAllocationError(DomainError):
    """Raised when a target from one estimate is attached against another."""

    def __init__(self, target_estimate_id: str, estimate_id: str):
        message = (
            f"Allocation target belongs to estimate '{target_estimate_id}' "
            f"and cannot be attached to estimate '{estimate_id}'"
        )
        super().__init__(message, code="CROSS_ESTIMATE_ALLOCATION")
        self.target_estimate_id = target_estimate_id
        self.estimate_id = estimate_id


class ProjectMismatchError(DomainError):
    """Raised when a document's project differs from the estimate's project."""

    def __init__(self, document_project_id: str, estimate_project_id: str):
        message = (
            f"Document project '{document_project_id}' does not match "
            f"estimate project '{estimate_project_id}'"
        )
        super().__init__(message, code="PROJECT_MISMATCH")
        self.document_project_id = document_project_id
        self.estimate_project_id = estimate_project_id


# =============================================================================
# Validation Exceptions
# =============================================================================

class ValidationError(DomainError):
    """Raised when data validation fails."""

    def __init__(self, field: str, message: str):
        super().__init__(f"Validation failed for '{field}': {message}", code="VALIDATION_ERROR")
        self.field = field


# =============================================================================
# Aggregation Exceptions
# =============================================================================

class InvariantViolationError(DomainError):
    """Raised when a rollup invariant is violated."""

    def __init__(self, invariant_name: str, expected: str, actual: str):
        message = (
            f"Invariant '{invariant_name}' violated. "
            f"Expected: {expected}, Actual: {actual}"
        )
        super().__init__(message, code="INVARIANT_VIOLATION")
        self.invariant_name = invariant_name
        self.expected = expected
        self.actual = actual
