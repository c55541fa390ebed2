"""Exceptions related to app-deployer."""

__all__ = [
    "AppDeployerException",
    "InputException",
    "InvalidImageReference",
    "StoreException",
    "ObjectNotFoundError",
    "ConflictError",
    "AlreadyExistsError",
    "TransientStoreError",
    "FatalStoreError",
]


class AppDeployerException(Exception):
    """Generic base exception used for this library."""


class InputException(AppDeployerException):
    """Raised when the input objects or values are not formatted as expected."""


class InvalidImageReference(InputException):
    """Raised when an image reference is missing the `:tag` separator."""

    def __init__(self, reference: str) -> None:
        super().__init__(f"Invalid image reference '{reference}': missing ':tag'")
        self.reference = reference


class StoreException(AppDeployerException):
    """Base class for errors returned by the object store."""


class ObjectNotFoundError(StoreException):
    """Raised when an object is not found in the store."""


class ConflictError(StoreException):
    """Raised when an update was made against a stale resource version."""


class AlreadyExistsError(StoreException):
    """Raised when creating an object whose name is already taken."""


class TransientStoreError(StoreException):
    """Raised for store failures that may succeed on retry (e.g. timeouts)."""


class FatalStoreError(StoreException):
    """Raised for store failures that will not succeed on retry."""
