"""
Configuration settings for cash_ledger.

Settings can be overridden in your Django settings.py using the CASH_LEDGER dictionary.
"""

from dataclasses import MISSING, dataclass, field
from typing import Any, Tuple

from django.conf import settings as django_settings
from django.core.exceptions import ImproperlyConfigured

ACCOUNT_TYPE_KEYS = ("asset", "liability", "equity", "revenue", "expense")


@dataclass
class LedgerSettings:
    """Settings container for cash_ledger configuration."""

    # Name of the operating cash account used by the daily report
    PETTY_CASH_ACCOUNT_NAME: str = "Kas Kecil"

    # Transfers may overdraw the source account
    ALLOW_TRANSFER_OVERDRAFT: bool = False

    # Account types whose balance may never go negative through any posting
    NO_OVERDRAFT_TYPES: Tuple[str, ...] = field(default_factory=tuple)

    # Run transfers in one database transaction; False selects the
    # step-by-step path with compensation
    ATOMIC_TRANSFERS: bool = True

    # Advance repayments return cash to the funding account
    REPAYMENTS_CREDIT_ACCOUNT: bool = True

    # Roles allowed to write off receivables
    PRIVILEGED_ROLES: Tuple[str, ...] = ("owner",)

    # Expense category used for forgiven receivables
    WRITE_OFF_CATEGORY: str = "Penghapusan Piutang"

    def __init__(self):
        """Initialize settings from Django settings if available."""
        user_settings = getattr(django_settings, "CASH_LEDGER", {})

        for key, field in self.__class__.__dataclass_fields__.items():
            if key in user_settings:
                setattr(self, key, user_settings[key])
            elif field.default_factory is not MISSING:
                setattr(self, key, field.default_factory())
            else:
                setattr(self, key, field.default)

        # tuples are the canonical form; settings files usually hold lists
        self.NO_OVERDRAFT_TYPES = tuple(self.NO_OVERDRAFT_TYPES or ())
        self.PRIVILEGED_ROLES = tuple(self.PRIVILEGED_ROLES or ())

        self._validate_settings()

    def _validate_settings(self):
        """
        Validate user-provided settings and raise ImproperlyConfigured for invalid values.
        """
        if (
            not isinstance(self.PETTY_CASH_ACCOUNT_NAME, str)
            or not self.PETTY_CASH_ACCOUNT_NAME.strip()
        ):
            raise ImproperlyConfigured(
                "CASH_LEDGER['PETTY_CASH_ACCOUNT_NAME'] must be a non-empty string. "
                f"Got: {self.PETTY_CASH_ACCOUNT_NAME!r}"
            )

        for name in (
            "ALLOW_TRANSFER_OVERDRAFT",
            "ATOMIC_TRANSFERS",
            "REPAYMENTS_CREDIT_ACCOUNT",
        ):
            if not isinstance(getattr(self, name), bool):
                raise ImproperlyConfigured(
                    f"CASH_LEDGER['{name}'] must be a boolean. "
                    f"Got: {getattr(self, name)!r}"
                )

        unknown = [t for t in self.NO_OVERDRAFT_TYPES if t not in ACCOUNT_TYPE_KEYS]
        if unknown:
            raise ImproperlyConfigured(
                "CASH_LEDGER['NO_OVERDRAFT_TYPES'] contains unknown account types: "
                f"{unknown}. Allowed: {list(ACCOUNT_TYPE_KEYS)}"
            )

        if not self.PRIVILEGED_ROLES:
            raise ImproperlyConfigured(
                "CASH_LEDGER['PRIVILEGED_ROLES'] must name at least one role."
            )

        if not isinstance(self.WRITE_OFF_CATEGORY, str) or not self.WRITE_OFF_CATEGORY:
            raise ImproperlyConfigured(
                "CASH_LEDGER['WRITE_OFF_CATEGORY'] must be a non-empty string."
            )

    def __getattr__(self, name: str) -> Any:
        """Fallback for attribute access."""
        raise AttributeError(f"'{type(self).__name__}' has no setting '{name}'")


def ledger_settings() -> LedgerSettings:
    # Built per call so override_settings(CASH_LEDGER=...) is honoured
    return LedgerSettings()
