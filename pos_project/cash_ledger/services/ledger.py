import logging
from django.core.exceptions import ValidationError
from django.db import models, transaction

from ..conf import ledger_settings
from ..exceptions import InsufficientFundsError, NotFoundError
from ..models import AC_TYPES, Account
from .audit_helper import log_action
from .validation import MAX_AMOUNT, to_signed_amount

logger = logging.getLogger(__name__)


# ----------------------------
# Account lookups
# ----------------------------
def list_accounts(payment_only=False):
    qs = Account.objects.all()
    if payment_only:
        qs = qs.payment_accounts()
    return list(qs.order_by("name"))


def get_account(account_id, *, for_update=False):
    """
    Fetch an account or raise NotFoundError.
    for_update=True locks the row; call it inside transaction.atomic().
    """
    qs = Account.objects.all()
    if for_update:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=account_id)
    except (Account.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Account {account_id!r} does not exist.") from None


def get_account_by_name(name):
    account = Account.objects.by_name(name).first()
    if account is None:
        raise NotFoundError(f"No account named {name!r}.")
    return account


def create_account(name, ac_type, *, is_payment_account=False, opening_balance=0, actor=None):
    if ac_type not in dict(AC_TYPES):
        raise ValidationError(f"Unknown account type {ac_type!r}.")
    opening = to_signed_amount(opening_balance, field="opening_balance")

    with transaction.atomic():
        account = Account.objects.create(
            name=name.strip(),
            ac_type=ac_type,
            balance=opening,
            is_payment_account=is_payment_account,
        )
        log_action(
            action="create_account",
            instance=account,
            actor=actor,
            changes={"name": account.name, "ac_type": ac_type, "balance": opening},
        )
    logger.info("Account %s created with opening balance %s", account.name, opening)
    return account


# ----------------------------
# Balance mutation primitives
# ----------------------------
def overdraft_forbidden(account):
    return account.ac_type in ledger_settings().NO_OVERDRAFT_TYPES


def check_balance_limit(account, delta):
    """Refuse a move that would push the balance past what the column holds."""
    if abs(account.balance + delta) > MAX_AMOUNT:
        raise ValidationError(
            f"Balance of {account.name} would exceed {MAX_AMOUNT}."
        )


def adjust_balance(account_id, delta, *, allow_overdraft=None):
    """
    Add `delta` (signed) to an account balance as one atomic
    read-modify-write.

    The row is locked for the duration of the check, and the write itself
    is an UPDATE ... SET balance = balance + delta, so concurrent postings
    to the same account cannot lose each other's updates.

    allow_overdraft=None applies the per-type policy (NO_OVERDRAFT_TYPES).
    """
    delta = to_signed_amount(delta, field="delta")

    with transaction.atomic():
        account = get_account(account_id, for_update=True)

        if allow_overdraft is None:
            allow_overdraft = not overdraft_forbidden(account)

        if delta < 0 and not allow_overdraft and account.balance + delta < 0:
            raise InsufficientFundsError(
                f"Insufficient funds in {account.name}. "
                f"Balance: {account.balance}, Required: {-delta}"
            )
        check_balance_limit(account, delta)

        Account.objects.filter(pk=account.pk).update(
            balance=models.F("balance") + delta
        )
        account.refresh_from_db(fields=["balance"])

    logger.debug("Account %s adjusted by %s, balance now %s", account.pk, delta, account.balance)
    return account


def set_balance(account_id, new_value, *, actor=None):
    """
    Administrative override of an account balance.
    Bypasses the posting history: reports reconstructed backwards from the
    new balance treat the correction as if it had always been there.
    """
    new_value = to_signed_amount(new_value, field="balance")

    with transaction.atomic():
        account = get_account(account_id, for_update=True)
        old_value = account.balance
        Account.objects.filter(pk=account.pk).update(balance=new_value)
        account.balance = new_value
        log_action(
            action="set_balance",
            instance=account,
            actor=actor,
            changes={"old_balance": old_value, "new_balance": new_value},
        )

    logger.warning(
        "Balance of %s manually set from %s to %s by %s",
        account.name, old_value, new_value, getattr(actor, "name", "unknown"),
    )
    return account
