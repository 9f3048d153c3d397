"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidCadence(DomainException):
    """Recurrence cadence is not one of the supported values"""

    pass


class InvalidInterval(DomainException):
    """Recurrence interval is not a positive integer"""

    pass


class InvalidCount(DomainException):
    """Recurrence occurrence count is not a positive integer"""

    pass


class InvalidTransactionData(DomainException):
    """Transaction payload violates amount/type/category rules"""

    pass


class OwnerContextMissing(DomainException):
    """No ledger exists for the owner referenced by the operation"""

    pass


class DuplicateOccurrence(DomainException):
    """An occurrence with the same payee, date and provenance already exists"""

    pass


class AccountNotFound(DomainException):
    """Owner has no account of the requested kind"""

    pass


class TransactionNotFound(DomainException):
    pass


class OccurrenceNotFound(DomainException):
    pass


class RuleNotFound(DomainException):
    pass
