from decimal import Decimal
from unittest import mock
from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.test import TestCase, override_settings

from ..exceptions import ConsistencyError, InsufficientFundsError, NotFoundError
from ..models import AuditLog, CashTransfer
from ..services import ledger, list_transfers, transfer
from .utils import make_account, make_actor


class CashTransferTests(TestCase):
    def setUp(self):
        self.actor = make_actor()
        self.bank = make_account("Bank BCA", "1000000")
        self.kas = make_account("Kas Kecil", "200000")

    def balances(self):
        self.bank.refresh_from_db()
        self.kas.refresh_from_db()
        return self.bank.balance, self.kas.balance

    def test_transfer_conserves_money(self):
        before_bank, before_kas = self.balances()
        record = transfer(self.bank.pk, self.kas.pk, "250000", "Isi kas", self.actor)
        after_bank, after_kas = self.balances()

        self.assertEqual(after_bank + after_kas, before_bank + before_kas)
        self.assertEqual(after_kas - before_kas, Decimal("250000"))
        self.assertEqual(before_bank - after_bank, Decimal("250000"))

        self.assertIsNotNone(record.pk)
        self.assertEqual(record.transferred_by_name, self.actor.name)
        self.assertTrue(AuditLog.objects.filter(action="transfer", object_id=str(record.pk)).exists())

    def test_zero_and_negative_amounts_are_rejected(self):
        for amount in ("0", "-5", 0, -5):
            with self.assertRaises(ValidationError):
                transfer(self.bank.pk, self.kas.pk, amount, "", self.actor)
        self.assertEqual(self.balances(), (Decimal("1000000.00"), Decimal("200000.00")))
        self.assertFalse(CashTransfer.objects.exists())

    def test_same_account_is_rejected(self):
        with self.assertRaises(ValidationError):
            transfer(self.bank.pk, self.bank.pk, "100", "", self.actor)
        self.assertEqual(self.balances()[0], Decimal("1000000.00"))

    def test_insufficient_funds_blocks_by_default(self):
        with self.assertRaises(InsufficientFundsError):
            transfer(self.kas.pk, self.bank.pk, "500000", "", self.actor)
        self.assertEqual(self.balances(), (Decimal("1000000.00"), Decimal("200000.00")))

    def test_overdraft_can_be_allowed_per_call(self):
        transfer(self.kas.pk, self.bank.pk, "500000", "", self.actor, allow_overdraft=True)
        self.assertEqual(self.balances(), (Decimal("1500000.00"), Decimal("-300000.00")))

    @override_settings(CASH_LEDGER={"ALLOW_TRANSFER_OVERDRAFT": True})
    def test_overdraft_can_be_allowed_by_setting(self):
        transfer(self.kas.pk, self.bank.pk, "500000", "", self.actor)
        self.assertEqual(self.balances()[1], Decimal("-300000.00"))

    def test_unknown_account_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            transfer(self.bank.pk, 999999, "100", "", self.actor)
        self.assertEqual(self.balances()[0], Decimal("1000000.00"))

    def test_idempotency_key_moves_money_once(self):
        first = transfer(self.bank.pk, self.kas.pk, "1000", "", self.actor, idempotency_key="abc-1")
        second = transfer(self.bank.pk, self.kas.pk, "1000", "", self.actor, idempotency_key="abc-1")
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(CashTransfer.objects.count(), 1)
        self.assertEqual(self.balances(), (Decimal("999000.00"), Decimal("201000.00")))

    def test_racing_retry_with_same_key_moves_money_once(self):
        first = transfer(self.bank.pk, self.kas.pk, "1000", "", self.actor, idempotency_key="abc-2")
        # the second call misses the stored row, as a concurrent retry would
        with mock.patch("cash_ledger.services.transfer._find_by_key", return_value=None):
            second = transfer(self.bank.pk, self.kas.pk, "1000", "", self.actor, idempotency_key="abc-2")

        self.assertEqual(second.pk, first.pk)
        self.assertEqual(CashTransfer.objects.count(), 1)
        self.assertEqual(self.balances(), (Decimal("999000.00"), Decimal("201000.00")))

    def test_amount_too_large_for_the_ledger_is_rejected_up_front(self):
        for amount in ("10000000000000000", "1e30"):
            with self.assertRaises(ValidationError):
                transfer(self.bank.pk, self.kas.pk, amount, "", self.actor, allow_overdraft=True)
        self.assertEqual(self.balances(), (Decimal("1000000.00"), Decimal("200000.00")))
        self.assertFalse(CashTransfer.objects.exists())

    def test_receiver_balance_limit(self):
        full = make_account("Brankas", "9999999999999999.00")
        with self.assertRaises(ValidationError):
            transfer(self.kas.pk, full.pk, "1", "", self.actor)
        full.refresh_from_db()
        self.assertEqual(full.balance, Decimal("9999999999999999.00"))
        self.assertEqual(self.balances()[1], Decimal("200000.00"))

    @override_settings(CASH_LEDGER={"NO_OVERDRAFT_TYPES": ["asset"], "ALLOW_TRANSFER_OVERDRAFT": True})
    def test_no_overdraft_types_win_over_transfer_overdraft(self):
        with self.assertRaises(InsufficientFundsError):
            transfer(self.kas.pk, self.bank.pk, "205000", "", self.actor)
        with self.assertRaises(InsufficientFundsError):
            transfer(self.kas.pk, self.bank.pk, "205000", "", self.actor, allow_overdraft=True)
        self.assertEqual(self.balances(), (Decimal("1000000.00"), Decimal("200000.00")))

    def test_invalid_history_row_rolls_the_transfer_back(self):
        with mock.patch.object(CashTransfer, "save", side_effect=ValidationError("bad row")):
            with self.assertRaises(ValidationError):
                transfer(self.bank.pk, self.kas.pk, "1000", "", self.actor)
        self.assertEqual(self.balances(), (Decimal("1000000.00"), Decimal("200000.00")))

    def test_history_failure_keeps_the_movement(self):
        with mock.patch.object(CashTransfer, "save", side_effect=DatabaseError("disk full")):
            with self.assertLogs("cash_ledger.services.transfer", level="WARNING") as logs:
                record = transfer(self.bank.pk, self.kas.pk, "1000", "", self.actor)

        self.assertIsNone(record.pk)
        self.assertTrue(any("history recording failed" in line for line in logs.output))
        self.assertEqual(self.balances(), (Decimal("999000.00"), Decimal("201000.00")))
        self.assertFalse(CashTransfer.objects.exists())

    def test_list_transfers_newest_first(self):
        other = make_account("Bank Mandiri", "0")
        t1 = transfer(self.bank.pk, self.kas.pk, "100", "", self.actor)
        t2 = transfer(self.bank.pk, other.pk, "200", "", self.actor)
        t3 = transfer(self.kas.pk, self.bank.pk, "50", "", self.actor)

        self.assertEqual([t.pk for t in list_transfers()], [t3.pk, t2.pk, t1.pk])
        self.assertEqual([t.pk for t in list_transfers(self.kas.pk)], [t3.pk, t1.pk])


@override_settings(CASH_LEDGER={"ATOMIC_TRANSFERS": False})
class CompensatingTransferTests(TestCase):
    """Step-by-step transfer path used when the store has no multi-row transactions."""

    def setUp(self):
        self.actor = make_actor()
        self.bank = make_account("Bank BCA", "1000000")
        self.kas = make_account("Kas Kecil", "200000")

    def flaky_adjust(self, failing_calls):
        real = ledger.adjust_balance
        calls = []

        def adjust(account_id, delta, **kwargs):
            calls.append((account_id, delta))
            if len(calls) in failing_calls:
                raise DatabaseError("connection lost")
            return real(account_id, delta, **kwargs)

        return adjust

    def test_successful_transfer(self):
        record = transfer(self.bank.pk, self.kas.pk, "300000", "", self.actor)
        self.bank.refresh_from_db()
        self.kas.refresh_from_db()
        self.assertIsNotNone(record.pk)
        self.assertEqual(self.bank.balance, Decimal("700000.00"))
        self.assertEqual(self.kas.balance, Decimal("500000.00"))

    def test_failed_credit_rolls_back_debit(self):
        with mock.patch(
            "cash_ledger.services.transfer.adjust_balance",
            side_effect=self.flaky_adjust(failing_calls={2}),
        ):
            with self.assertRaises(DatabaseError):
                transfer(self.bank.pk, self.kas.pk, "300000", "", self.actor)

        self.bank.refresh_from_db()
        self.kas.refresh_from_db()
        self.assertEqual(self.bank.balance, Decimal("1000000.00"))
        self.assertEqual(self.kas.balance, Decimal("200000.00"))
        self.assertFalse(CashTransfer.objects.exists())

    def test_failed_rollback_raises_consistency_error(self):
        with mock.patch(
            "cash_ledger.services.transfer.adjust_balance",
            side_effect=self.flaky_adjust(failing_calls={2, 3}),
        ):
            with self.assertLogs("cash_ledger.services.transfer", level="CRITICAL"):
                with self.assertRaises(ConsistencyError):
                    transfer(self.bank.pk, self.kas.pk, "300000", "", self.actor)

        # the debit stuck: this is the state an operator has to repair
        self.bank.refresh_from_db()
        self.kas.refresh_from_db()
        self.assertEqual(self.bank.balance, Decimal("700000.00"))
        self.assertEqual(self.kas.balance, Decimal("200000.00"))

    def test_insufficient_funds_moves_nothing(self):
        with self.assertRaises(InsufficientFundsError):
            transfer(self.kas.pk, self.bank.pk, "300000", "", self.actor)
        self.kas.refresh_from_db()
        self.assertEqual(self.kas.balance, Decimal("200000.00"))

    def test_racing_retry_with_same_key_is_reversed(self):
        first = transfer(self.bank.pk, self.kas.pk, "1000", "", self.actor, idempotency_key="abc-3")
        with mock.patch("cash_ledger.services.transfer._find_by_key", return_value=None):
            with self.assertLogs("cash_ledger.services.transfer", level="ERROR"):
                second = transfer(self.bank.pk, self.kas.pk, "1000", "", self.actor, idempotency_key="abc-3")

        self.assertEqual(second.pk, first.pk)
        self.assertEqual(CashTransfer.objects.count(), 1)
        self.bank.refresh_from_db()
        self.kas.refresh_from_db()
        self.assertEqual(self.bank.balance, Decimal("999000.00"))
        self.assertEqual(self.kas.balance, Decimal("201000.00"))

    @override_settings(CASH_LEDGER={
        "ATOMIC_TRANSFERS": False,
        "NO_OVERDRAFT_TYPES": ["asset"],
        "ALLOW_TRANSFER_OVERDRAFT": True,
    })
    def test_no_overdraft_types_win_over_transfer_overdraft(self):
        with self.assertRaises(InsufficientFundsError):
            transfer(self.kas.pk, self.bank.pk, "300000", "", self.actor, allow_overdraft=True)
        self.kas.refresh_from_db()
        self.assertEqual(self.kas.balance, Decimal("200000.00"))
