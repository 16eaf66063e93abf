"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Profile or transaction data is malformed"""

    pass


class ComputationError(DomainException):
    """A model produced a non-finite or otherwise unusable result"""

    pass


class InsufficientDataError(DomainException):
    """Not enough transaction history to run the requested analysis"""

    pass
