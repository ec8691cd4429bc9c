"""
Point-in-time balances and period cash-flow reports.

Only the current balance is stored. Every earlier balance is rebuilt
backwards from it by reversing the postings dated after the cutoff:

    balance_as_of(D) = current balance - sum(signed postings with posted_at > D)

A posting dated exactly at the cutoff belongs to the "as of" balance.
"""

import datetime
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.utils import timezone

from ..conf import ledger_settings
from ..models import (
    Account,
    AdvanceRepayment,
    CashTransfer,
    EmployeeAdvance,
    Expense,
    TransactionPayment,
)
from .ledger import get_account, get_account_by_name
from .validation import end_of_day, to_cutoff, to_day

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

INCOME_KINDS = ("income", "transfer_in", "repayment")
EXPENSE_KINDS = ("expense", "transfer_out")
ADVANCE_KINDS = ("advance",)
SIGNS = {kind: 1 for kind in INCOME_KINDS} | {kind: -1 for kind in EXPENSE_KINDS + ADVANCE_KINDS}


@dataclass
class Posting:
    kind: str
    posted_at: datetime.datetime
    amount: Decimal  # always positive; see sign
    sign: int
    description: str = ""
    reference: str = ""
    running_balance: Optional[Decimal] = None

    @property
    def signed_amount(self):
        return self.amount * self.sign

    def as_dict(self):
        return {
            "kind": self.kind,
            "posted_at": self.posted_at.isoformat(),
            "amount": str(self.amount),
            "signed_amount": str(self.signed_amount),
            "description": self.description,
            "reference": self.reference,
            "running_balance": None if self.running_balance is None else str(self.running_balance),
        }


@dataclass
class CashFlowReport:
    account: Account
    date_from: datetime.date
    date_to: datetime.date
    opening_balance: Decimal
    income: Decimal
    expense: Decimal
    advances: Decimal
    closing_balance: Decimal
    breakdown: Dict[str, Decimal] = field(default_factory=dict)
    postings: List[Posting] = field(default_factory=list)

    @property
    def net_change(self):
        return self.income - self.expense - self.advances

    def as_dict(self):
        return {
            "account": {"id": self.account.pk, "name": self.account.name},
            "from": self.date_from.isoformat(),
            "to": self.date_to.isoformat(),
            "opening_balance": str(self.opening_balance),
            "income": str(self.income),
            "expense": str(self.expense),
            "advances": str(self.advances),
            "closing_balance": str(self.closing_balance),
            "breakdown": {kind: str(total) for kind, total in self.breakdown.items()},
            "postings": [p.as_dict() for p in self.postings],
        }


@dataclass
class ReconciliationReport:
    account: Account
    postings: List[Posting]
    calculated_balance: Decimal
    actual_balance: Decimal

    @property
    def difference(self):
        # opening balances and manual set_balance corrections end up here
        return self.actual_balance - self.calculated_balance

    @property
    def is_balanced(self):
        return self.difference == ZERO


# ----------------------------
# Posting sources
# ----------------------------
def _sources(account):
    """(kind, sign, queryset) for every record type that moves `account`."""
    return (
        ("income", 1, TransactionPayment.objects.filter(account=account)),
        ("transfer_in", 1, CashTransfer.objects.filter(to_account=account)),
        (
            "repayment",
            1,
            AdvanceRepayment.objects.filter(advance__account=account, credits_account=True),
        ),
        ("expense", -1, Expense.objects.filter(account=account)),
        ("transfer_out", -1, CashTransfer.objects.filter(from_account=account)),
        ("advance", -1, EmployeeAdvance.objects.filter(account=account)),
    )


def _window(qs, after=None, until=None):
    if after is not None:
        qs = qs.after(after)
    if until is not None:
        qs = qs.up_to(until)
    return qs


def _describe(kind, record):
    if kind == "income":
        return f"Pembayaran order {record.transaction_id}"
    if kind == "transfer_in":
        return record.description or f"Transfer dari {record.from_account.name}"
    if kind == "transfer_out":
        return record.description or f"Transfer ke {record.to_account.name}"
    if kind == "repayment":
        return f"Cicilan panjar {record.advance_id}"
    if kind == "advance":
        return f"Panjar {record.employee_name}"
    return record.description


def totals_by_kind(account, after=None, until=None):
    """Sum of posting amounts per kind in (after, until]."""
    result = {}
    for kind, _sign, qs in _sources(account):
        total = _window(qs, after, until).aggregate(total=models.Sum("amount"))["total"]
        result[kind] = total or ZERO
    return result


def _net(totals):
    return sum((SIGNS[kind] * amount for kind, amount in totals.items()), ZERO)


def postings(account, after=None, until=None):
    """Postings on `account` in (after, until], oldest first."""
    account = _resolve(account)
    rows = []
    for kind, sign, qs in _sources(account):
        qs = _window(qs, after, until)
        if kind in ("transfer_in", "transfer_out"):
            qs = qs.select_related("from_account", "to_account")
        date_field = qs.model.posting_date_field
        for record in qs:
            rows.append(
                Posting(
                    kind=kind,
                    posted_at=getattr(record, date_field),
                    amount=record.amount,
                    sign=sign,
                    description=_describe(kind, record),
                    reference=f"{record.__class__.__name__}:{record.pk}",
                )
            )
    rows.sort(key=lambda p: (p.posted_at, p.reference))
    return rows


def _with_running_balance(rows, start):
    running = start
    for posting in rows:
        running += posting.signed_amount
        posting.running_balance = running
    return rows


def _resolve(account):
    # always re-read: the stored balance is the anchor of every computation
    if isinstance(account, Account):
        return get_account(account.pk)
    return get_account(account)


# ----------------------------
# Queries
# ----------------------------
def balance_as_of(account, cutoff=None):
    """
    Balance of `account` as it stood at `cutoff`.
    A date means the end of that day; None means now.
    """
    cutoff = to_cutoff(cutoff)
    with transaction.atomic():
        account = _resolve(account)
        later = _net(totals_by_kind(account, after=cutoff))
    return account.balance - later


def period_cash_flow(account, date_from, date_to):
    """
    Opening, income, expense, advances and closing for whole days
    date_from..date_to (both inclusive).

    closing == opening + income - expense - advances
    """
    date_from = to_day(date_from)
    date_to = to_day(date_to)
    if date_from > date_to:
        raise ValidationError("The start date must not be after the end date.")

    opening_cutoff = end_of_day(date_from - datetime.timedelta(days=1))
    closing_cutoff = end_of_day(date_to)

    with transaction.atomic():
        account = _resolve(account)
        opening = balance_as_of(account, opening_cutoff)
        closing = balance_as_of(account, closing_cutoff)
        breakdown = totals_by_kind(account, after=opening_cutoff, until=closing_cutoff)
        rows = postings(account, after=opening_cutoff, until=closing_cutoff)

    income = sum((breakdown[k] for k in INCOME_KINDS), ZERO)
    expense = sum((breakdown[k] for k in EXPENSE_KINDS), ZERO)
    advances = sum((breakdown[k] for k in ADVANCE_KINDS), ZERO)

    if opening + income - expense - advances != closing:
        # only possible when a posting commits between the reads above
        logger.warning(
            "Cash flow for %s %s..%s does not close: opening %s, closing %s",
            account.name, date_from, date_to, opening, closing,
        )

    return CashFlowReport(
        account=account,
        date_from=date_from,
        date_to=date_to,
        opening_balance=opening,
        income=income,
        expense=expense,
        advances=advances,
        closing_balance=closing,
        breakdown=breakdown,
        postings=_with_running_balance(rows, opening),
    )


def daily_petty_cash_report(day=None):
    """Cash flow of the petty-cash account over one day (default today)."""
    day = timezone.localdate() if day is None else to_day(day)
    account = get_account_by_name(ledger_settings().PETTY_CASH_ACCOUNT_NAME)
    return period_cash_flow(account, day, day)


def reconcile_account(account):
    """
    Replay every posting forward from zero and compare with the stored
    balance.
    """
    with transaction.atomic():
        account = _resolve(account)
        rows = _with_running_balance(postings(account), ZERO)
    calculated = rows[-1].running_balance if rows else ZERO

    report = ReconciliationReport(
        account=account,
        postings=rows,
        calculated_balance=calculated,
        actual_balance=account.balance,
    )
    if not report.is_balanced:
        logger.info(
            "Account %s: stored balance %s differs from replayed %s by %s",
            account.name, report.actual_balance, calculated, report.difference,
        )
    return report
