from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from ..managers import DatedManager
from .account import Account


# ---------- Employee cash advance ("panjar") ----------
class EmployeeAdvance(models.Model):
    """
    Cash handed to an employee out of a funding account.
    remaining_amount = amount - sum(repayments.amount), kept in a column
    so the advance list can show what is still owed without a join.
    """

    posting_date_field = "date"

    employee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="advances",
    )
    employee_name = models.CharField(max_length=150, blank=True)

    amount = models.DecimalField(max_digits=18, decimal_places=2)

    account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="advances"
    )
    date = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True)

    remaining_amount = models.DecimalField(max_digits=18, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)

    objects = DatedManager()

    class Meta:
        indexes = [
            models.Index(fields=["employee"], name="adv_employee_idx"),
            models.Index(fields=["account", "date"], name="adv_account_date_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="adv_amount_positive",
            ),
            # 0 <= remaining_amount <= amount
            models.CheckConstraint(
                condition=models.Q(remaining_amount__gte=0)
                & models.Q(remaining_amount__lte=models.F("amount")),
                name="adv_remaining_within_amount",
            ),
        ]
        ordering = ("-date", "-id")

    def __str__(self):
        return f"Advance {self.pk} to {self.employee_name}: {self.amount}"

    def repaid_total(self):
        total = self.repayments.aggregate(total=models.Sum("amount"))["total"]
        return total or Decimal("0.00")

    def credited_repayments_total(self):
        # repayments that returned cash to the funding account
        total = self.repayments.filter(credits_account=True).aggregate(
            total=models.Sum("amount")
        )["total"]
        return total or Decimal("0.00")

    def recalc_remaining(self):
        self.remaining_amount = self.amount - self.repaid_total()
        return self.remaining_amount

    def clean(self):
        if self.amount is None or self.amount <= 0:
            raise ValidationError("Advance amount must be positive.")
        if self.remaining_amount is not None and not (
            Decimal("0.00") <= self.remaining_amount <= self.amount
        ):
            raise ValidationError("Remaining amount must lie between 0 and the advance amount.")

    def save(self, *args, **kwargs):
        if self.remaining_amount is None:
            self.remaining_amount = self.amount
        self.full_clean()
        return super().save(*args, **kwargs)


class AdvanceRepayment(models.Model):
    """One installment paid back against an advance."""

    posting_date_field = "date"

    advance = models.ForeignKey(
        EmployeeAdvance, on_delete=models.CASCADE, related_name="repayments"
    )
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    date = models.DateTimeField(default=timezone.now)
    recorded_by_name = models.CharField(max_length=150, blank=True)

    # Whether this repayment credited advance.account; deleting the advance
    # must not hand that money back a second time
    credits_account = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    objects = DatedManager()

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="advrep_amount_positive",
            ),
        ]
        ordering = ("date", "id")

    def __str__(self):
        return f"Repayment {self.amount} on advance {self.advance_id}"
