"""
Collection-style access to the ledger tables.

LedgerGateway is the thin record store other layers (import scripts,
the JSON views, tests) talk to when they want dicts instead of model
instances. All-or-nothing work goes through call_atomic(), which runs a
registered procedure inside one database transaction.
"""

import logging
from django.core.exceptions import FieldError, ValidationError
from django.db import transaction
from django.forms.models import model_to_dict

from ..exceptions import NotFoundError
from ..models import (
    Account,
    AdvanceRepayment,
    CashTransfer,
    EmployeeAdvance,
    Expense,
    Transaction,
    TransactionPayment,
)
from . import advance as advance_service
from . import receivable as receivable_service
from . import transfer as transfer_service

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "accounts": Account,
    "cash_transfers": CashTransfer,
    "transactions": Transaction,
    "transaction_payments": TransactionPayment,
    "expenses": Expense,
    "employee_advances": EmployeeAdvance,
    "advance_repayments": AdvanceRepayment,
}

# Fields that only the ledger services may write
PROTECTED_FIELDS = {
    "accounts": {"balance"},
    "transactions": {"paid_amount", "payment_status"},
    "employee_advances": {"remaining_amount"},
}

# Collections that are append-only history
IMMUTABLE = {"cash_transfers", "transaction_payments", "advance_repayments"}

# Rows that each stand for a balance movement; only the services create them
POSTING_COLLECTIONS = {
    "cash_transfers",
    "transaction_payments",
    "expenses",
    "employee_advances",
    "advance_repayments",
}

# Fields that decide how a posting moves a balance
POSTING_FIELDS = {"amount", "account", "account_id", "date", "transaction", "transaction_id"}


def _transfer_cash(params, actor):
    record = transfer_service.transfer(
        params["from_account_id"],
        params["to_account_id"],
        params["amount"],
        params.get("description", ""),
        actor,
        idempotency_key=params.get("idempotency_key"),
        transfer_date=params.get("transfer_date"),
    )
    return _to_dict(record) if record.pk else None


def _pay_receivable(params, actor):
    sale = receivable_service.pay_receivable(
        params["transaction_id"],
        params["amount"],
        params["account_id"],
        actor,
        paid_at=params.get("paid_at"),
    )
    return _to_dict(sale)


def _update_remaining_amount(params, actor):
    return advance_service.update_remaining_amount(params["advance_id"])


# name -> (procedure, required parameters)
PROCEDURES = {
    "transfer_cash": (_transfer_cash, ("from_account_id", "to_account_id", "amount")),
    "pay_receivable": (_pay_receivable, ("transaction_id", "amount", "account_id")),
    "update_remaining_amount": (_update_remaining_amount, ("advance_id",)),
}


def _to_dict(instance):
    data = model_to_dict(instance)
    data["id"] = instance.pk
    return data


class LedgerGateway:
    """
    get / insert / update / call_atomic over the ledger collections.
    `actor` is recorded on every procedure call made through this gateway.
    """

    def __init__(self, actor=None):
        self.actor = actor

    def _model(self, collection):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValidationError(f"Unknown collection {collection!r}.") from None

    def get(self, collection, filter=None):
        model = self._model(collection)
        try:
            qs = model.objects.filter(**(filter or {}))
        except FieldError as exc:
            raise ValidationError(str(exc)) from None
        return [_to_dict(obj) for obj in qs]

    def insert(self, collection, record):
        model = self._model(collection)
        if collection in POSTING_COLLECTIONS:
            raise ValidationError(
                f"{collection} rows are created by the ledger commands, use call_atomic()."
            )
        protected = PROTECTED_FIELDS.get(collection, set()) & set(record)
        if collection == "accounts":
            # an opening balance is allowed, later moves are not
            protected.discard("balance")
        if protected:
            raise ValidationError(f"Fields {sorted(protected)} of {collection} are managed by the ledger.")
        with transaction.atomic():
            instance = model(**record)
            instance.save()
        return _to_dict(instance)

    def update(self, collection, id, patch):
        model = self._model(collection)
        if collection in IMMUTABLE:
            raise ValidationError(f"{collection} is append-only.")
        protected = PROTECTED_FIELDS.get(collection, set()) & set(patch)
        if collection in POSTING_COLLECTIONS:
            protected |= POSTING_FIELDS & set(patch)
        if protected:
            raise ValidationError(f"Fields {sorted(protected)} of {collection} are managed by the ledger.")

        with transaction.atomic():
            try:
                instance = model.objects.select_for_update().get(pk=id)
            except (model.DoesNotExist, ValueError, TypeError):
                raise NotFoundError(f"{collection} record {id!r} does not exist.") from None
            for key, value in patch.items():
                setattr(instance, key, value)
            instance.save()
        return _to_dict(instance)

    def call_atomic(self, procedure_name, params):
        try:
            procedure, required = PROCEDURES[procedure_name]
        except KeyError:
            raise ValidationError(f"Unknown procedure {procedure_name!r}.") from None
        missing = [key for key in required if key not in params]
        if missing:
            raise ValidationError(f"{procedure_name} is missing parameters {missing}.")

        logger.debug("call_atomic %s(%s)", procedure_name, params)
        with transaction.atomic():
            return procedure(params, self.actor)
