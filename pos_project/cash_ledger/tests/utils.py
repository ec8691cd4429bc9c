import datetime
from decimal import Decimal

from django.utils import timezone

from cash_ledger.actor import Actor
from cash_ledger.models import User
from cash_ledger.services import create_account


def make_user(username, role="cashier", **extra):
    return User.objects.create_user(username=username, password="secret", role=role, **extra)


def make_actor(username="owner", role="owner"):
    return Actor.from_user(make_user(username, role=role))


def make_account(name="Kas Kecil", balance="0", ac_type="asset", **kwargs):
    return create_account(name, ac_type, opening_balance=Decimal(balance), **kwargs)


def days_ago(n):
    return timezone.localdate() - datetime.timedelta(days=n)
