import logging
from decimal import Decimal
from django.db import transaction

from ..exceptions import NotFoundError
from ..models import Expense, Transaction
from .audit_helper import log_action
from .ledger import adjust_balance, get_account
from .validation import to_amount, to_posting_time

logger = logging.getLogger(__name__)


def record_expense(description, amount, account_id, category, actor=None, *, date=None):
    """Spend `amount` out of an account. Overdraft follows the per-type policy."""
    amount = to_amount(amount)
    posted_at = to_posting_time(date)

    with transaction.atomic():
        account = get_account(account_id)
        adjust_balance(account.pk, -amount)
        expense = Expense.objects.create(
            description=description,
            amount=amount,
            account=account,
            date=posted_at,
            category=category,
            created_by_name=getattr(actor, "name", "") or "",
        )
        log_action(
            action="record_expense",
            instance=expense,
            actor=actor,
            changes={"account": account.pk, "amount": amount, "category": category},
        )

    logger.info("Expense %s of %s recorded on %s", expense.pk, amount, account.name)
    return expense


def delete_expense(expense_id, actor=None):
    """
    Remove an expense and give its amount back to the funding account.
    Write-off expenses never touched a balance; deleting one reopens the
    written-off remainder on its sale instead.
    """
    with transaction.atomic():
        try:
            expense = Expense.objects.select_for_update().get(pk=expense_id)
        except (Expense.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Expense {expense_id!r} does not exist.") from None

        if expense.account_id is not None:
            adjust_balance(expense.account_id, expense.amount, allow_overdraft=True)
        elif expense.transaction_id is not None:
            _reopen_receivable(expense)

        log_action(
            action="delete_expense",
            instance=expense,
            actor=actor,
            changes={"account": expense.account_id, "amount": expense.amount},
        )
        expense.delete()

    logger.info("Expense %s deleted, %s returned", expense_id, expense.amount)


def _reopen_receivable(write_off):
    sale = Transaction.objects.select_for_update().get(pk=write_off.transaction_id)
    sale.paid_amount = max(sale.paid_amount - write_off.amount, Decimal("0.00"))
    sale.written_off_at = None
    sale.save(update_fields=["paid_amount", "written_off_at"])
    logger.info("Write-off on transaction #%s undone, %s owed again", sale.pk, sale.remaining_amount)
