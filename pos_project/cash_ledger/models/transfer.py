from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from ..managers import DatedManager
from .account import Account


# ---------- Cash transfer between two accounts ----------
class CashTransfer(models.Model):
    """
    Append-only history of money moved between two accounts.
    One row stands for exactly one debit on from_account and one credit
    of the same amount on to_account.
    """

    posting_date_field = "transfer_date"

    # PROTECT: an account with transfer history cannot be deleted
    from_account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="transfers_out"
    )
    to_account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="transfers_in"
    )
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    description = models.TextField(blank=True)

    # Who initiated the transfer; the name is kept if the user is removed
    transferred_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="cash_transfers",
    )
    transferred_by_name = models.CharField(max_length=150, blank=True)

    transfer_date = models.DateTimeField(default=timezone.now)

    # Optional client-supplied key; a retry with the same key is a no-op
    idempotency_key = models.CharField(
        max_length=100, null=True, blank=True, unique=True
    )

    created_at = models.DateTimeField(auto_now_add=True)

    objects = DatedManager()

    class Meta:
        indexes = [
            models.Index(fields=["from_account", "transfer_date"], name="ct_from_date_idx"),
            models.Index(fields=["to_account", "transfer_date"], name="ct_to_date_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="ct_amount_positive",
            ),
            models.CheckConstraint(
                condition=~models.Q(from_account=models.F("to_account")),
                name="ct_distinct_accounts",
            ),
        ]
        ordering = ("-created_at", "-id")

    def __str__(self):
        return f"{self.from_account.name} -> {self.to_account.name}: {self.amount}"

    def clean(self):
        if self.amount is None or self.amount <= 0:
            raise ValidationError("Transfer amount must be positive.")
        if self.from_account_id == self.to_account_id:
            raise ValidationError("Source and destination accounts must differ.")

    def save(self, *args, **kwargs):
        # history is immutable once recorded
        if self.pk:
            raise ValidationError("Cash transfers cannot be edited.")
        self.full_clean()
        return super().save(*args, **kwargs)
