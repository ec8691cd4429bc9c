from django.contrib.auth.models import AbstractUser
from django.db import models

# Roles used by the shop; only privileged roles may write off receivables
ROLE_CHOICES = [
    ("owner", "Owner"),
    ("admin", "Admin"),
    ("supervisor", "Supervisor"),
    ("cashier", "Cashier"),
    ("designer", "Designer"),
    ("operator", "Operator"),
]


# ---------- Custom User ----------
class User(AbstractUser):
    """
    Employees log in as users; an employee advance points at one.
    Before running the first migrate, settings.py needs
    AUTH_USER_MODEL = "cash_ledger.User".
    """

    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default="cashier",
    )
    # Optional contact number, can be left empty in forms
    phone = models.CharField(max_length=32, blank=True)
    address = models.TextField(blank=True)

    class Meta:
        indexes = [models.Index(fields=["role"], name="user_role_idx")]

    # Controls how user is displayed
    def __str__(self):
        return self.get_full_name() or self.username
