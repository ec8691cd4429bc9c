import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from cash_ledger.actor import Actor
from cash_ledger.conf import ledger_settings
from cash_ledger.models import Account, Customer
from cash_ledger.services import (
    create_account,
    grant_advance,
    record_expense,
    record_sale,
    transfer,
)

User = get_user_model()


class Command(BaseCommand):
    help = "Seed a petty-cash account, a bank account, users and a few days of activity."

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--owner", default="owner", help="Username for the demo owner."
        )
        parser.add_argument(
            "--password", default="demo123", help="Password for the demo users."
        )
        parser.add_argument(
            "--no-activity",
            action="store_true",
            help="Only create users and accounts, no sales or expenses.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        owner_name = options["owner"]
        password = options["password"]
        petty_cash_name = ledger_settings().PETTY_CASH_ACCOUNT_NAME

        # 1. Users: one owner, one cashier
        owner = self._user(owner_name, password, role="owner", first_name="Pemilik")
        cashier = self._user("kasir", password, role="cashier", first_name="Kasir")
        actor = Actor.from_user(owner)

        # 2. Accounts, reused when the command runs twice
        petty_cash = Account.objects.by_name(petty_cash_name).first()
        if petty_cash is None:
            petty_cash = create_account(
                petty_cash_name, "asset", is_payment_account=True,
                opening_balance=Decimal("500000.00"), actor=actor,
            )
        bank = Account.objects.by_name("Bank BCA").first()
        if bank is None:
            bank = create_account(
                "Bank BCA", "asset", is_payment_account=True,
                opening_balance=Decimal("5000000.00"), actor=actor,
            )
        self.stdout.write(self.style.SUCCESS(f"Accounts: {petty_cash}, {bank}"))

        if options["no_activity"] or petty_cash.has_postings():
            self.stdout.write(self.style.NOTICE("Skipping sample activity."))
            return

        # 3. Two days of activity
        today = timezone.localdate()
        yesterday = today - datetime.timedelta(days=1)
        customer, _ = Customer.objects.get_or_create(name="Toko Maju", defaults={"phone": "0812000000"})

        record_sale(customer, "350000", "200000", petty_cash.pk, actor, order_date=yesterday)
        transfer(bank.pk, petty_cash.pk, "250000", "Isi ulang kas kecil", actor, transfer_date=yesterday)
        record_expense("Beli tinta", "50000", petty_cash.pk, "Bahan", actor, date=today)
        grant_advance(cashier, "100000", petty_cash.pk, "Panjar makan", actor, date=today)

        petty_cash.refresh_from_db()
        self.stdout.write(
            self.style.SUCCESS(f"Demo data seeded. {petty_cash.name} balance: {petty_cash.balance}")
        )

    def _user(self, username, password, *, role, first_name):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com", "role": role, "first_name": first_name},
        )
        if created:  # if user newly created
            user.set_password(password)
            user.save()
            self.stdout.write(self.style.SUCCESS(f"Created user: {username} ({role})"))
        return user
