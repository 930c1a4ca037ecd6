"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class SnapshotComputationError(DomainException):
    """Metrics or snapshot could not be derived from stored data"""

    pass


class LedgerEntryNotFoundError(DomainException):
    pass


class CardNotFoundError(DomainException):
    pass


class DealNotFoundError(DomainException):
    """Deal does not exist"""

    pass


class RecommendationNotFoundError(DomainException):
    pass


class ActionNotFoundError(DomainException):
    pass
