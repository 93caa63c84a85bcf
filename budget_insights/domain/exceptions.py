"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class CollaboratorUnavailableError(DomainException):
    """Record source (tasks, ledger, plans) could not be read"""

    pass


class DeliveryError(DomainException):
    """Notification channel rejected or never acknowledged an insight"""

    pass


class InvalidRecordError(DomainException):
    """Stored record is malformed and cannot be turned into a domain record"""

    pass
