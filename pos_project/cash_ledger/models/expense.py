from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from ..managers import DatedManager
from .account import Account
from .sale import Transaction


class Expense(models.Model):
    """
    Money spent from an account.
    Receivable write-offs are also recorded here, but without an account:
    no cash left the business, so they never touch a balance.
    """

    posting_date_field = "date"

    description = models.CharField(max_length=255)
    amount = models.DecimalField(max_digits=18, decimal_places=2)

    # Funding source; NULL only for write-offs
    account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="expenses",
    )
    date = models.DateTimeField(default=timezone.now)
    category = models.CharField(max_length=100)

    # The forgiven sale, for write-off expenses
    transaction = models.ForeignKey(
        Transaction,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="write_offs",
    )
    created_by_name = models.CharField(max_length=150, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = DatedManager()

    class Meta:
        indexes = [
            models.Index(fields=["account", "date"], name="exp_account_date_idx"),
            models.Index(fields=["category"], name="exp_category_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="exp_amount_positive",
            ),
        ]
        ordering = ("-date", "-id")

    def __str__(self):
        return f"{self.description}: {self.amount}"

    @property
    def is_write_off(self):
        return self.account_id is None

    def clean(self):
        if self.amount is None or self.amount <= 0:
            raise ValidationError("Expense amount must be positive.")
        if self.account_id is None and self.transaction_id is None:
            raise ValidationError(
                "An expense needs a funding account unless it writes off a receivable."
            )

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
