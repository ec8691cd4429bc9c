from decimal import Decimal
from django.db import models
from .account import Account


# ---------- Account Balance Snapshot ----------
class AccountBalanceSnapshot(models.Model):
    """
    Closing balance of an account at the end of a day, as reconstructed
    from the postings. Written by tasks.snapshot_closing_balances.
    """

    # on_delete= CASCADE: snapshots are derived data
    account = models.ForeignKey(
        Account, on_delete=models.CASCADE, related_name="snapshots"
    )
    snapshot_date = models.DateField()
    balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    created_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [models.Index(fields=["snapshot_date"], name="snapshot_date_idx")]
        constraints = [
            # Do not store duplicate snapshots for the same account/date
            models.UniqueConstraint(
                fields=["account", "snapshot_date"],
                name="uq_account_snapshot_date",
            ),
        ]
        ordering = ("-snapshot_date", "account__name")

    def __str__(self):
        return f"{self.snapshot_date} | {self.account.name}: {self.balance}"
