import logging
from django.core.exceptions import ValidationError
from django.db import DatabaseError, models, transaction

from ..conf import ledger_settings
from ..exceptions import ConsistencyError, InsufficientFundsError, NotFoundError
from ..models import Account, CashTransfer
from .audit_helper import log_action
from .ledger import adjust_balance, check_balance_limit, get_account, overdraft_forbidden
from .validation import to_amount, to_posting_time

logger = logging.getLogger(__name__)


class _AlreadyRecorded(Exception):
    """The idempotency key was claimed by another call while this one ran."""


# ----------------------------
# Cash transfer workflows
# ----------------------------
def transfer(
    from_account_id,
    to_account_id,
    amount,
    description="",
    actor=None,
    *,
    allow_overdraft=None,
    idempotency_key=None,
    transfer_date=None,
):
    """
    Move `amount` from one account to another as a unit of work.

    1. debit from_account
    2. credit to_account
    3. append the CashTransfer history row

    Steps 1-2 are all-or-nothing. A database failure in step 3 does not
    undo the movement: it is logged as a warning and the returned
    CashTransfer is unsaved (pk is None). Invalid history data is caught
    before step 1.

    A repeated call with an already recorded idempotency_key returns the
    original record and moves nothing, also when both calls race.
    Accounts whose type is in NO_OVERDRAFT_TYPES are never overdrawn,
    whatever allow_overdraft says.
    """
    # Validate before touching any balance
    amount = to_amount(amount)
    if str(from_account_id) == str(to_account_id):
        raise ValidationError("Source and destination accounts must differ.")

    conf = ledger_settings()
    if allow_overdraft is None:
        allow_overdraft = conf.ALLOW_TRANSFER_OVERDRAFT
    posted_at = to_posting_time(transfer_date)

    existing = _find_by_key(idempotency_key)
    if existing is not None:
        return existing

    run = _transfer_atomic if conf.ATOMIC_TRANSFERS else _transfer_with_compensation
    try:
        record = run(
            from_account_id, to_account_id, amount, description, actor,
            allow_overdraft, idempotency_key, posted_at,
        )
    except _AlreadyRecorded:
        return CashTransfer.objects.get(idempotency_key=idempotency_key)

    logger.info(
        "Transferred %s from account %s to account %s (record #%s)",
        amount, from_account_id, to_account_id, record.pk,
    )
    return record


def _find_by_key(idempotency_key):
    if not idempotency_key:
        return None
    existing = CashTransfer.objects.filter(idempotency_key=idempotency_key).first()
    if existing is not None:
        logger.info("Transfer with key %s already recorded as #%s", idempotency_key, existing.pk)
    return existing


def _transfer_atomic(from_id, to_id, amount, description, actor,
                     allow_overdraft, idempotency_key, posted_at):
    with transaction.atomic():
        # Lock both rows in pk order so two opposite transfers cannot deadlock
        ids = [from_id, to_id]
        try:
            accounts = {
                account.pk: account
                for account in Account.objects.select_for_update()
                .filter(pk__in=ids)
                .order_by("pk")
            }
        except (ValueError, TypeError):
            raise NotFoundError(f"Unknown account id in {ids!r}.") from None
        sender = _pick(accounts, from_id)
        receiver = _pick(accounts, to_id)

        # a racing call with the same key may have committed while we waited
        if _find_by_key(idempotency_key) is not None:
            raise _AlreadyRecorded(idempotency_key)

        record = _history_row(sender, receiver, amount, description, actor,
                              idempotency_key, posted_at)
        _check_funds(sender, amount, allow_overdraft)
        check_balance_limit(receiver, amount)

        Account.objects.filter(pk=sender.pk).update(balance=models.F("balance") - amount)
        Account.objects.filter(pk=receiver.pk).update(balance=models.F("balance") + amount)

        # history gets its own savepoint inside _record_history;
        # _AlreadyRecorded leaving this block rolls the legs back
        return _record_history(record, actor)


def _transfer_with_compensation(from_id, to_id, amount, description, actor,
                                allow_overdraft, idempotency_key, posted_at):
    """
    Step-by-step variant for stores without multi-row transactions.
    If the credit fails the debit is compensated before the error is
    re-raised; if the compensation fails too, ConsistencyError.
    """
    sender = get_account(from_id)
    receiver = get_account(to_id)
    record = _history_row(sender, receiver, amount, description, actor,
                          idempotency_key, posted_at)
    if overdraft_forbidden(sender):
        allow_overdraft = False

    # Step 1: deduct from source account
    adjust_balance(sender.pk, -amount, allow_overdraft=allow_overdraft)

    # Step 2: add to destination account
    try:
        adjust_balance(receiver.pk, amount, allow_overdraft=True)
    except Exception as exc:
        logger.error("Credit of %s to %s failed, rolling back debit: %s", amount, receiver.name, exc)
        _compensate(sender, amount, receiver)
        raise

    # Step 3: record history after successful balance updates
    try:
        return _record_history(record, actor)
    except (_AlreadyRecorded, ValidationError) as exc:
        logger.error("Transfer history rejected, reversing %s -> %s: %s", sender.name, receiver.name, exc)
        adjust_balance(receiver.pk, -amount, allow_overdraft=True)
        _compensate(sender, amount, receiver)
        raise


def _compensate(sender, amount, receiver):
    try:
        adjust_balance(sender.pk, amount, allow_overdraft=True)
    except Exception as rollback_exc:
        logger.critical(
            "Rollback failed: %s was debited %s but %s was never credited",
            sender.name, amount, receiver.name,
        )
        raise ConsistencyError(
            f"Transfer of {amount} from {sender.name} to {receiver.name} failed "
            f"and the debit could not be rolled back."
        ) from rollback_exc


def _check_funds(sender, amount, allow_overdraft):
    if overdraft_forbidden(sender):
        allow_overdraft = False
    if not allow_overdraft and sender.balance < amount:
        raise InsufficientFundsError(
            f"Insufficient funds in {sender.name}. "
            f"Balance: {sender.balance}, Required: {amount}"
        )
    check_balance_limit(sender, -amount)


def _pick(accounts, account_id):
    for pk, account in accounts.items():
        if str(pk) == str(account_id):
            return account
    raise NotFoundError(f"Account {account_id!r} does not exist.")


def _history_row(sender, receiver, amount, description, actor,
                 idempotency_key, posted_at):
    """Build and validate the history row before any balance moves."""
    record = CashTransfer(
        from_account=sender,
        to_account=receiver,
        amount=amount,
        description=description or "",
        transferred_by_id=getattr(actor, "id", None),
        transferred_by_name=getattr(actor, "name", "") or "",
        transfer_date=posted_at,
        idempotency_key=idempotency_key or None,
    )
    # uniqueness is settled at insert time, see _record_history
    record.full_clean(validate_unique=False)
    return record


def _record_history(record, actor):
    try:
        with transaction.atomic():
            record.save()
            log_action(
                action="transfer",
                instance=record,
                actor=actor,
                changes={
                    "from_account": record.from_account_id,
                    "to_account": record.to_account_id,
                    "amount": record.amount,
                },
            )
    except (DatabaseError, ValidationError) as exc:
        key = record.idempotency_key
        if key and CashTransfer.objects.filter(idempotency_key=key).exists():
            raise _AlreadyRecorded(key) from exc
        if isinstance(exc, ValidationError):
            raise
        # funds already moved; warn and hand back the unsaved record
        logger.warning(
            "Transfer %s -> %s of %s completed but history recording failed: %s",
            record.from_account.name, record.to_account.name, record.amount, exc,
        )
        record.pk = None
    return record


def list_transfers(account_id=None):
    """Transfer history, newest first; optionally only those touching one account."""
    qs = CashTransfer.objects.select_related("from_account", "to_account")
    if account_id is not None:
        qs = qs.filter(models.Q(from_account_id=account_id) | models.Q(to_account_id=account_id))
    return list(qs)
