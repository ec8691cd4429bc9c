import json
from decimal import Decimal
from django.test import TestCase
from django.urls import reverse

from ..actor import Actor
from ..models import EmployeeAdvance
from ..services import grant_advance, record_sale
from .utils import days_ago, make_account, make_user


class LedgerViewTests(TestCase):
    def setUp(self):
        self.owner = make_user("owner", role="owner", first_name="Pemilik")
        self.cashier = make_user("kasir", role="cashier")
        self.employee = make_user("budi", role="operator")
        self.kas = make_account("Kas Kecil", "500000", is_payment_account=True)
        self.bank = make_account("Bank BCA", "1000000")
        self.client.force_login(self.owner)

    def post_json(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type="application/json")

    def test_anonymous_requests_are_forbidden(self):
        self.client.logout()
        response = self.client.get(reverse("cash_ledger:account-list"))
        self.assertEqual(response.status_code, 403)
        response = self.post_json(
            reverse("cash_ledger:transfer"),
            {"from_account_id": self.bank.pk, "to_account_id": self.kas.pk, "amount": "1"},
        )
        self.assertEqual(response.status_code, 403)

    def test_account_list(self):
        response = self.client.get(reverse("cash_ledger:account-list"), {"payment_only": "1"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([a["name"] for a in response.json()["accounts"]], ["Kas Kecil"])

    def test_balance_as_of(self):
        url = reverse("cash_ledger:balance-as-of", args=[self.kas.pk])
        response = self.client.get(url, {"as_of": days_ago(1).isoformat()})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Decimal(response.json()["balance"]), Decimal("500000"))

    def test_cash_flow_requires_range(self):
        url = reverse("cash_ledger:cash-flow", args=[self.kas.pk])
        self.assertEqual(self.client.get(url, {"from": "2024-01-01"}).status_code, 400)

        response = self.client.get(url, {"from": days_ago(1).isoformat(), "to": days_ago(0).isoformat()})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["closing_balance"], "500000.00")

    def test_transfer(self):
        response = self.post_json(
            reverse("cash_ledger:transfer"),
            {"from_account_id": self.bank.pk, "to_account_id": self.kas.pk, "amount": "200000"},
        )
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.json()["history_recorded"])
        self.kas.refresh_from_db()
        self.assertEqual(self.kas.balance, Decimal("700000.00"))

    def test_transfer_error_statuses(self):
        url = reverse("cash_ledger:transfer")
        same = self.post_json(url, {"from_account_id": self.kas.pk, "to_account_id": self.kas.pk, "amount": "1"})
        self.assertEqual(same.status_code, 400)

        missing = self.post_json(url, {"from_account_id": self.kas.pk, "to_account_id": 999999, "amount": "1"})
        self.assertEqual(missing.status_code, 404)

        too_much = self.post_json(url, {"from_account_id": self.kas.pk, "to_account_id": self.bank.pk, "amount": "900000"})
        self.assertEqual(too_much.status_code, 409)

        no_amount = self.post_json(url, {"from_account_id": self.kas.pk, "to_account_id": self.bank.pk})
        self.assertEqual(no_amount.status_code, 400)

        huge = self.post_json(url, {"from_account_id": self.bank.pk, "to_account_id": self.kas.pk, "amount": "1e30"})
        self.assertEqual(huge.status_code, 400)

    def test_transfer_accepts_form_posts(self):
        response = self.client.post(
            reverse("cash_ledger:transfer"),
            {"from_account_id": self.bank.pk, "to_account_id": self.kas.pk, "amount": "1000"},
        )
        self.assertEqual(response.status_code, 201)

    def test_get_on_command_is_not_allowed(self):
        self.assertEqual(self.client.get(reverse("cash_ledger:transfer")).status_code, 405)

    def test_pay_receivable(self):
        sale = record_sale(None, "100000", "40000", self.kas.pk, Actor.from_user(self.cashier))
        url = reverse("cash_ledger:pay-receivable", args=[sale.pk])

        over = self.post_json(url, {"amount": "70000", "account_id": self.kas.pk})
        self.assertEqual(over.status_code, 400)

        response = self.post_json(url, {"amount": "60000", "account_id": self.kas.pk})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["payment_status"], "Lunas")

    def test_write_off_is_owner_only(self):
        sale = record_sale(None, "100000", "40000", self.kas.pk, Actor.from_user(self.cashier))
        url = reverse("cash_ledger:write-off", args=[sale.pk])

        self.client.force_login(self.cashier)
        self.assertEqual(self.client.post(url).status_code, 403)

        self.client.force_login(self.owner)
        response = self.client.post(url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["written_off"], "60000.00")

    def test_advance_lifecycle(self):
        response = self.post_json(
            reverse("cash_ledger:grant-advance"),
            {"employee_id": self.employee.pk, "amount": "100000", "account_id": self.kas.pk, "notes": "Panjar"},
        )
        self.assertEqual(response.status_code, 201)
        advance_id = response.json()["advance_id"]

        repay = self.post_json(reverse("cash_ledger:repay-advance", args=[advance_id]), {"amount": "40000"})
        self.assertEqual(repay.status_code, 200)
        self.assertEqual(repay.json()["remaining"], "60000.00")

        delete = self.client.post(reverse("cash_ledger:delete-advance", args=[advance_id]))
        self.assertEqual(delete.status_code, 200)
        self.assertEqual(delete.json()["reversed"], "60000.00")
        self.assertFalse(EmployeeAdvance.objects.exists())
        self.kas.refresh_from_db()
        self.assertEqual(self.kas.balance, Decimal("500000.00"))

    def test_grant_advance_unknown_employee(self):
        response = self.post_json(
            reverse("cash_ledger:grant-advance"),
            {"employee_id": 999999, "amount": "100", "account_id": self.kas.pk},
        )
        self.assertEqual(response.status_code, 404)

    def test_repay_overpayment_is_bad_request(self):
        advance = grant_advance(self.employee, "1000", self.kas.pk, "", Actor.from_user(self.owner))
        response = self.post_json(reverse("cash_ledger:repay-advance", args=[advance.pk]), {"amount": "2000"})
        self.assertEqual(response.status_code, 400)
