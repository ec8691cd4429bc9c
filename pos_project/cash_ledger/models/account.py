from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import AccountManager

# Choice Lists
AC_TYPES = [
    # The five basic accounting types
    ("asset", "Aset"),
    ("liability", "Kewajiban"),
    ("equity", "Modal"),
    ("revenue", "Pendapatan"),
    ("expense", "Beban"),
]


class Account(models.Model):
    """
    Named financial account with a stored current balance.
    - name is the business key used by reports ("Kas Kecil")
    - balance only moves through services.ledger (never edited directly)
    - is_payment_account marks accounts the POS may receive money into
    """

    name = models.CharField(max_length=200, unique=True)

    ac_type = models.CharField(
        max_length=10,
        choices=AC_TYPES,
    )

    # Signed: liability-style accounts may legitimately go negative
    balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )

    is_payment_account = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    objects = AccountManager()

    class Meta:
        indexes = [
            # For reports grouped by type and for the POS account picker
            models.Index(fields=["ac_type"], name="account_ac_type_idx"),
            models.Index(fields=["is_payment_account"], name="account_payment_idx"),
        ]
        ordering = ("name",)

    def __str__(self):
        return f"{self.name} ({self.get_ac_type_display()})"

    def clean(self):
        if not self.name or not self.name.strip():
            raise ValidationError("Account name is required.")

        # case-insensitive uniqueness, report lookups use iexact
        clash = Account.objects.by_name(self.name).exclude(pk=self.pk)
        if clash.exists():
            raise ValidationError(f"An account named {self.name!r} already exists.")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        # the PROTECT foreign keys would refuse too, but with ProtectedError
        if self.has_postings():
            raise ValidationError(
                f"Cannot delete account {self.name!r}: it has ledger postings."
            )
        return super().delete(*args, **kwargs)

    def has_postings(self):
        """True when any ledger record references this account."""
        return (
            self.receipts.exists()
            or self.expenses.exists()
            or self.transfers_out.exists()
            or self.transfers_in.exists()
            or self.advances.exists()
        )
