from decimal import Decimal
from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from ..exceptions import InsufficientFundsError, NotFoundError
from ..models import Account, AuditLog
from ..services import (
    adjust_balance,
    get_account,
    get_account_by_name,
    list_accounts,
    record_expense,
    set_balance,
)
from .utils import make_account, make_actor


class AccountLedgerTests(TestCase):
    def setUp(self):
        self.actor = make_actor()
        self.kas = make_account("Kas Kecil", "100000", is_payment_account=True, actor=self.actor)
        self.bank = make_account("Bank BCA", "2500000")

    def test_create_account_sets_opening_balance_and_audits(self):
        self.assertEqual(self.kas.balance, Decimal("100000.00"))
        log = AuditLog.objects.get(action="create_account", object_id=str(self.kas.pk))
        self.assertEqual(log.user_id, self.actor.id)
        self.assertEqual(log.changes["balance"], "100000.00")

    def test_account_names_are_unique_ignoring_case(self):
        with self.assertRaises(ValidationError):
            make_account("kas kecil")
        self.assertEqual(Account.objects.count(), 2)

    def test_unknown_account_type_is_rejected(self):
        with self.assertRaises(ValidationError):
            make_account("Kas Besar", ac_type="cash")

    def test_adjust_balance_adds_signed_delta(self):
        adjust_balance(self.kas.pk, Decimal("25000"))
        adjust_balance(self.kas.pk, Decimal("-5000.50"))
        self.kas.refresh_from_db()
        self.assertEqual(self.kas.balance, Decimal("119999.50"))

    def test_adjust_balance_may_go_negative_by_default(self):
        account = adjust_balance(self.kas.pk, Decimal("-150000"))
        self.assertEqual(account.balance, Decimal("-50000.00"))

    @override_settings(CASH_LEDGER={"NO_OVERDRAFT_TYPES": ["asset"]})
    def test_no_overdraft_policy_blocks_negative_balance(self):
        with self.assertRaises(InsufficientFundsError):
            adjust_balance(self.kas.pk, Decimal("-150000"))
        self.kas.refresh_from_db()
        self.assertEqual(self.kas.balance, Decimal("100000.00"))

    @override_settings(CASH_LEDGER={"NO_OVERDRAFT_TYPES": ["asset"]})
    def test_no_overdraft_policy_applies_to_expenses(self):
        with self.assertRaises(InsufficientFundsError):
            record_expense("Sewa", "200000", self.kas.pk, "Sewa", self.actor)
        self.assertFalse(self.kas.expenses.exists())

    def test_adjust_unknown_account_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            adjust_balance(999999, Decimal("1"))
        with self.assertRaises(NotFoundError):
            get_account("not-an-id")

    def test_adjust_rejects_sub_cent_precision(self):
        with self.assertRaises(ValidationError):
            adjust_balance(self.kas.pk, "0.001")

    def test_set_balance_overrides_and_warns(self):
        with self.assertLogs("cash_ledger.services.ledger", level="WARNING") as logs:
            account = set_balance(self.kas.pk, "42000", actor=self.actor)
        self.assertEqual(account.balance, Decimal("42000.00"))
        self.assertIn("manually set", logs.output[0])
        log = AuditLog.objects.get(action="set_balance")
        self.assertEqual(log.changes, {"old_balance": "100000.00", "new_balance": "42000.00"})

    def test_lookup_by_name_ignores_case_and_spaces(self):
        self.assertEqual(get_account_by_name("  kas KECIL ").pk, self.kas.pk)
        with self.assertRaises(NotFoundError):
            get_account_by_name("Kas Besar")

    def test_list_accounts_payment_only(self):
        self.assertEqual([a.name for a in list_accounts()], ["Bank BCA", "Kas Kecil"])
        self.assertEqual([a.name for a in list_accounts(payment_only=True)], ["Kas Kecil"])

    def test_account_with_postings_cannot_be_deleted(self):
        record_expense("Beli tinta", "5000", self.kas.pk, "Bahan", self.actor)
        with self.assertRaises(ValidationError):
            self.kas.delete()
        self.assertTrue(Account.objects.filter(pk=self.kas.pk).exists())

        # an unused account can go
        self.bank.delete()
        self.assertFalse(Account.objects.filter(pk=self.bank.pk).exists())
