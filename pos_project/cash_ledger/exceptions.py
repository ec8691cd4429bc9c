from django.core.exceptions import ObjectDoesNotExist

# Bad input is reported with django.core.exceptions.ValidationError and
# missing privileges with django.core.exceptions.PermissionDenied.


class NotFoundError(ObjectDoesNotExist):
    """Raised when an account, transaction or advance id does not exist."""
    pass


class InsufficientFundsError(Exception):
    """Raised when a debit would overdraw an account whose policy forbids it."""
    pass


class ConsistencyError(Exception):
    """Raised when a multi-step operation failed halfway and could not be rolled back.
    The ledger may be inconsistent; an operator has to look at it."""
    pass
