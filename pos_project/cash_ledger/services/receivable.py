import logging
from decimal import Decimal
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.utils import timezone

from ..actor import is_privileged
from ..conf import ledger_settings
from ..exceptions import NotFoundError
from ..models import OUTSTANDING, Expense, Transaction, TransactionPayment
from .audit_helper import log_action
from .ledger import adjust_balance, get_account
from .validation import to_amount, to_posting_time

logger = logging.getLogger(__name__)


def get_transaction(transaction_id, *, for_update=False):
    qs = Transaction.objects.all()
    if for_update:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=transaction_id)
    except (Transaction.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Transaction {transaction_id!r} does not exist.") from None


def list_receivables():
    """Sales the customer still owes money on, oldest first."""
    return list(
        Transaction.objects.filter(payment_status=OUTSTANDING)
        .select_related("customer", "payment_account")
        .order_by("order_date", "id")
    )


# ----------------------------
# Sale checkout
# ----------------------------
def record_sale(customer, total, paid_amount, payment_account_id, actor=None, *, order_date=None):
    """
    Create a sale with its down payment.
    The down payment is credited to payment_account in the same database
    transaction; paid_amount=0 leaves the whole total as a receivable.
    """
    total = to_amount(total, field="total")
    paid_amount = to_amount(paid_amount, allow_zero=True, field="paid_amount")
    if paid_amount > total:
        raise ValidationError("Paid amount cannot exceed the transaction total.")
    if paid_amount > 0 and payment_account_id is None:
        raise ValidationError("A payment account is required when money is received.")
    posted_at = to_posting_time(order_date)

    with transaction.atomic():
        account = get_account(payment_account_id) if payment_account_id is not None else None

        sale = Transaction.objects.create(
            customer=customer,
            customer_name=customer.name if customer else "",
            cashier_id=getattr(actor, "id", None),
            cashier_name=getattr(actor, "name", "") or "",
            payment_account=account,
            order_date=posted_at,
            total=total,
            paid_amount=paid_amount,
        )
        if paid_amount > 0:
            TransactionPayment.objects.create(
                transaction=sale,
                account=account,
                amount=paid_amount,
                paid_at=posted_at,
                recorded_by_name=getattr(actor, "name", "") or "",
            )
            adjust_balance(account.pk, paid_amount)

        log_action(
            action="record_sale",
            instance=sale,
            actor=actor,
            changes={"total": total, "paid_amount": paid_amount, "status": sale.payment_status},
        )

    logger.info("Sale #%s recorded: total %s, paid %s", sale.pk, total, paid_amount)
    return sale


# ----------------------------
# Receivable settlement
# ----------------------------
def pay_receivable(transaction_id, amount, account_id, actor=None, *, paid_at=None):
    """
    Apply part (or all) of a customer's payment to an outstanding sale.
    Increments paid_amount, credits `account_id`, recomputes the status.
    Locks the sale row; both updates succeed or fail together.
    """
    amount = to_amount(amount)
    posted_at = to_posting_time(paid_at)

    with transaction.atomic():
        sale = get_transaction(transaction_id, for_update=True)
        account = get_account(account_id)

        remaining = sale.total - sale.paid_amount
        if remaining <= 0:
            raise ValidationError(f"Transaction {sale.pk} is already settled.")
        if amount > remaining:
            raise ValidationError(
                f"Payment of {amount} exceeds the remaining receivable of {remaining}."
            )

        sale.paid_amount += amount
        sale.save(update_fields=["paid_amount"])

        TransactionPayment.objects.create(
            transaction=sale,
            account=account,
            amount=amount,
            paid_at=posted_at,
            recorded_by_name=getattr(actor, "name", "") or "",
        )
        adjust_balance(account.pk, amount)

        log_action(
            action="pay_receivable",
            instance=sale,
            actor=actor,
            changes={
                "amount": amount,
                "account": account.pk,
                "paid_amount": sale.paid_amount,
                "status": sale.payment_status,
            },
        )

    logger.info("Receivable payment of %s applied to transaction #%s", amount, sale.pk)
    return sale


def write_off_receivable(transaction_or_id, actor, *, authorize=None, written_off_at=None):
    """
    Forgive the unpaid remainder of a sale.

    Records an Expense of the remainder under the write-off category and
    marks the sale Lunas. No account balance moves: the cash never
    arrived, so it is booked as a loss rather than as income.

    `authorize` is a predicate taking the actor; it defaults to the
    owner-equivalent role check.
    """
    authorize = authorize or is_privileged
    if not authorize(actor):
        raise PermissionDenied("Only the owner may write off receivables.")

    transaction_id = getattr(transaction_or_id, "pk", transaction_or_id)
    posted_at = to_posting_time(written_off_at)
    category = ledger_settings().WRITE_OFF_CATEGORY

    with transaction.atomic():
        sale = get_transaction(transaction_id, for_update=True)
        remainder = sale.total - sale.paid_amount
        if remainder <= Decimal("0.00"):
            raise ValidationError(f"Transaction {sale.pk} is already settled.")

        expense = Expense.objects.create(
            description=f"Penghapusan piutang order {sale.pk} ({sale.customer_name or '-'})",
            amount=remainder,
            account=None,
            date=posted_at,
            category=category,
            transaction=sale,
            created_by_name=getattr(actor, "name", "") or "",
        )

        sale.paid_amount = sale.total
        sale.written_off_at = timezone.now()
        sale.save(update_fields=["paid_amount", "written_off_at"])

        log_action(
            action="write_off",
            instance=sale,
            actor=actor,
            changes={"written_off": remainder, "expense": expense.pk},
        )

    logger.info("Receivable of %s on transaction #%s written off", remainder, sale.pk)
    return expense
