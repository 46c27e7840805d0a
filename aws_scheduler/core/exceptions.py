"""
Core exception classes for AWS Scheduler.
"""
from typing import List, Optional


class SchedulerError(Exception):
    """Base exception for all scheduler errors."""

    def __init__(self, message: str, details: str = None):
        super().__init__(message)
        self.message = message
        self.details = details


class AuthenticationError(SchedulerError):
    """Raised when obtaining credentials for an account fails."""
    pass


class ConfigurationError(SchedulerError):
    """Raised when configuration is invalid or missing."""
    pass


class ServiceError(SchedulerError):
    """Raised when AWS service operations fail."""
    pass


class LockStoreError(SchedulerError):
    """Raised when the cold-standby lock store rejects or fails a write."""
    pass


class EnvironmentAuthorityError(SchedulerError):
    """Raised when Environment Manager cannot be queried or returns bad data."""
    pass


class InstanceOperationError(SchedulerError):
    """A single provider or lock call failed for one instance."""

    def __init__(self, instance_id: str, operation: str, cause: Exception):
        super().__init__(
            f"{operation} failed for instance {instance_id}: {cause}",
            details=str(cause)
        )
        self.instance_id = instance_id
        self.operation = operation
        self.cause = cause


class AggregateGroupError(SchedulerError):
    """One or more operations in a batch failed.

    Errors are kept in the order the failing operations completed.
    """

    def __init__(self, errors: List[Exception]):
        super().__init__(f"{len(errors)} operations failed.")
        self.errors = list(errors)

    @property
    def count(self) -> int:
        return len(self.errors)


class AccountPipelineError(SchedulerError):
    """Fetching, filtering or grouping the schedule for an account failed."""

    def __init__(self, account_name: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Scheduling pipeline failed for account {account_name}: {cause}",
            details=str(cause) if cause is not None else None
        )
        self.account_name = account_name
        self.cause = cause
