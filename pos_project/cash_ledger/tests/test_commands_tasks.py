from decimal import Decimal
from io import StringIO
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from ..models import Account, AccountBalanceSnapshot, User
from ..services import balance_as_of, record_expense
from ..tasks import snapshot_closing_balances
from .utils import days_ago, make_account, make_actor


class SeedDemoCommandTests(TestCase):
    def test_seed_creates_accounts_users_and_activity(self):
        out = StringIO()
        call_command("seed_demo", stdout=out)

        kas = Account.objects.get(name="Kas Kecil")
        # 500000 + 200000 sale + 250000 transfer - 50000 expense - 100000 advance
        self.assertEqual(kas.balance, Decimal("800000.00"))
        self.assertEqual(User.objects.get(username="owner").role, "owner")
        self.assertIn("Demo data seeded", out.getvalue())

    def test_seed_is_repeatable(self):
        call_command("seed_demo", stdout=StringIO())
        call_command("seed_demo", stdout=StringIO())
        self.assertEqual(Account.objects.filter(name="Kas Kecil").count(), 1)
        self.assertEqual(Account.objects.get(name="Kas Kecil").balance, Decimal("800000.00"))

    def test_seed_without_activity(self):
        call_command("seed_demo", "--no-activity", stdout=StringIO())
        self.assertEqual(Account.objects.get(name="Kas Kecil").balance, Decimal("500000.00"))


class CashFlowReportCommandTests(TestCase):
    def setUp(self):
        self.actor = make_actor()
        self.kas = make_account("Kas Kecil", "100000")
        record_expense("Beli tinta", "25000", self.kas.pk, "Bahan", self.actor, date=days_ago(1))

    def test_report_prints_opening_and_closing(self):
        out = StringIO()
        day = days_ago(1).isoformat()
        call_command("cash_flow_report", "--account", "kas kecil", "--from", day, "--to", day, stdout=out)

        output = out.getvalue()
        self.assertIn("Saldo awal", output)
        self.assertIn("100000.00", output)
        self.assertIn("75000.00", output)
        self.assertIn("Beli tinta", output)

    def test_unknown_account(self):
        with self.assertRaises(CommandError):
            call_command("cash_flow_report", "--account", "Kas Besar", stdout=StringIO())

    def test_bad_range(self):
        with self.assertRaises(CommandError):
            call_command(
                "cash_flow_report", "--from", days_ago(0).isoformat(), "--to", days_ago(3).isoformat(),
                stdout=StringIO(),
            )


class SnapshotTaskTests(TestCase):
    def setUp(self):
        self.actor = make_actor()
        self.kas = make_account("Kas Kecil", "100000")
        self.bank = make_account("Bank BCA", "0")
        record_expense("Beli tinta", "25000", self.kas.pk, "Bahan", self.actor, date=days_ago(0))

    def test_snapshot_stores_closing_balance_per_account(self):
        yesterday = days_ago(1)
        count = snapshot_closing_balances(yesterday.isoformat())

        self.assertEqual(count, 2)
        snapshot = AccountBalanceSnapshot.objects.get(account=self.kas, snapshot_date=yesterday)
        self.assertEqual(snapshot.balance, Decimal("100000.00"))
        self.assertEqual(snapshot.balance, balance_as_of(self.kas, yesterday))

    def test_snapshot_defaults_to_yesterday_and_overwrites(self):
        snapshot_closing_balances()
        snapshot_closing_balances()
        self.assertEqual(AccountBalanceSnapshot.objects.filter(snapshot_date=days_ago(1)).count(), 2)
