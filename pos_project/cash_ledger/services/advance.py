import logging
from dataclasses import dataclass
from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models, transaction

from ..conf import ledger_settings
from ..exceptions import NotFoundError
from ..models import AdvanceRepayment, EmployeeAdvance
from .audit_helper import log_action
from .ledger import adjust_balance, get_account
from .validation import to_amount, to_posting_time

logger = logging.getLogger(__name__)


@dataclass
class EmployeeAdvanceSummary:
    employee_id: int
    employee_name: str
    advance_count: int
    total_amount: Decimal
    total_remaining: Decimal


def get_advance(advance_id, *, for_update=False):
    qs = EmployeeAdvance.objects.all()
    if for_update:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=advance_id)
    except (EmployeeAdvance.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Advance {advance_id!r} does not exist.") from None


# ----------------------------
# Advance lifecycle
# ----------------------------
def grant_advance(employee, amount, account_id, notes="", actor=None, *, date=None):
    """Hand cash to an employee out of `account_id`; remaining starts at amount."""
    amount = to_amount(amount)
    posted_at = to_posting_time(date)

    with transaction.atomic():
        account = get_account(account_id)
        adjust_balance(account.pk, -amount)
        advance = EmployeeAdvance.objects.create(
            employee=employee,
            employee_name=employee.get_full_name() or employee.get_username(),
            amount=amount,
            account=account,
            date=posted_at,
            notes=notes or "",
            remaining_amount=amount,
        )
        log_action(
            action="grant_advance",
            instance=advance,
            actor=actor,
            changes={"employee": employee.pk, "account": account.pk, "amount": amount},
        )

    logger.info("Advance %s of %s granted to %s", advance.pk, amount, advance.employee_name)
    return advance


def repay_advance(advance_id, amount, actor=None, *, date=None, credit_account=None):
    """
    Record an installment paid back on an advance.

    The repayment may not exceed what is still owed. When credit_account
    (default REPAYMENTS_CREDIT_ACCOUNT) is true the money goes back into
    the account the advance was drawn from.
    """
    amount = to_amount(amount)
    posted_at = to_posting_time(date)
    if credit_account is None:
        credit_account = ledger_settings().REPAYMENTS_CREDIT_ACCOUNT

    with transaction.atomic():
        advance = get_advance(advance_id, for_update=True)
        if amount > advance.remaining_amount:
            raise ValidationError(
                f"Repayment of {amount} exceeds the remaining advance of {advance.remaining_amount}."
            )

        repayment = AdvanceRepayment.objects.create(
            advance=advance,
            amount=amount,
            date=posted_at,
            recorded_by_name=getattr(actor, "name", "") or "",
            credits_account=credit_account,
        )
        if credit_account:
            adjust_balance(advance.account_id, amount, allow_overdraft=True)

        advance.recalc_remaining()
        advance.save(update_fields=["remaining_amount"])

        log_action(
            action="repay_advance",
            instance=advance,
            actor=actor,
            changes={
                "amount": amount,
                "remaining": advance.remaining_amount,
                "credits_account": credit_account,
            },
        )

    logger.info("Repayment of %s on advance %s, %s remaining", amount, advance.pk, advance.remaining_amount)
    return repayment


def update_remaining_amount(advance_id):
    """Recompute remaining_amount from the repayment rows."""
    with transaction.atomic():
        advance = get_advance(advance_id, for_update=True)
        advance.recalc_remaining()
        advance.save(update_fields=["remaining_amount"])
    return advance.remaining_amount


def delete_advance(advance_id, actor=None):
    """
    Remove an advance and its repayments.

    The funding account gets back what it lost and has not already
    recovered: amount minus the repayments that credited it.
    """
    with transaction.atomic():
        advance = get_advance(advance_id, for_update=True)
        reversal = advance.amount - advance.credited_repayments_total()
        if reversal > 0:
            adjust_balance(advance.account_id, reversal, allow_overdraft=True)

        log_action(
            action="delete_advance",
            instance=advance,
            actor=actor,
            changes={"amount": advance.amount, "reversed": reversal},
        )
        advance.repayments.all().delete()
        advance.delete()

    logger.info("Advance %s deleted, %s returned to account", advance_id, reversal)
    return reversal


def advances_by_employee():
    """Outstanding and historical advance totals grouped per employee."""
    rows = (
        EmployeeAdvance.objects.values("employee_id", "employee_name")
        .annotate(
            advance_count=models.Count("id"),
            total_amount=models.Sum("amount"),
            total_remaining=models.Sum("remaining_amount"),
        )
        .order_by("employee_name", "employee_id")
    )
    return [
        EmployeeAdvanceSummary(
            employee_id=row["employee_id"],
            employee_name=row["employee_name"],
            advance_count=row["advance_count"],
            total_amount=row["total_amount"] or Decimal("0.00"),
            total_remaining=row["total_remaining"] or Decimal("0.00"),
        )
        for row in rows
    ]
