from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from ..managers import DatedManager
from .account import Account
from .customer import Customer

PAID = "Lunas"
OUTSTANDING = "Belum Lunas"

PAYMENT_STATUS_CHOICES = [
    (PAID, "Lunas"),
    (OUTSTANDING, "Belum Lunas"),
]


class Transaction(models.Model):  # A sale at the POS
    """
    Only the receivable side of a sale lives here: what it costs, how much
    was paid, and which account took the money. Line items and production
    status belong to the order screens.
    """

    customer = models.ForeignKey(
        Customer,
        null=True,
        blank=True,
        # prevent deleting a customer who still has sales
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    customer_name = models.CharField(max_length=200, blank=True)

    cashier = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="sales",
    )
    cashier_name = models.CharField(max_length=150, blank=True)

    # Account that received the down payment
    payment_account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="sales",
    )

    order_date = models.DateTimeField(default=timezone.now)

    total = models.DecimalField(max_digits=18, decimal_places=2)
    paid_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    payment_status = models.CharField(
        max_length=12, choices=PAYMENT_STATUS_CHOICES, default=OUTSTANDING
    )
    """ Workflow:
        Belum Lunas = customer still owes total - paid_amount.
        Lunas = fully paid, or the remainder was written off. """

    # Set when the unpaid remainder was forgiven instead of collected
    written_off_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["payment_status"], name="tx_status_idx"),
            models.Index(fields=["customer"], name="tx_customer_idx"),
            models.Index(fields=["order_date"], name="tx_order_date_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total__gt=0),
                name="tx_total_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(paid_amount__gte=0)
                & models.Q(paid_amount__lte=models.F("total")),
                name="tx_paid_within_total",
            ),
        ]
        ordering = ("-created_at", "-id")

    def __str__(self):
        return f"Order {self.pk} ({self.customer_name or 'walk-in'})"

    @property
    def remaining_amount(self):
        return max(self.total - self.paid_amount, Decimal("0.00"))

    def refresh_payment_status(self):
        # derived field, kept in a column so receivable lists can filter on it
        self.payment_status = PAID if self.paid_amount >= self.total else OUTSTANDING
        return self.payment_status

    def clean(self):
        if self.total is None or self.total <= 0:
            raise ValidationError("Transaction total must be positive.")
        if self.paid_amount < 0:
            raise ValidationError("Paid amount cannot be negative.")
        if self.paid_amount > self.total:
            raise ValidationError("Paid amount cannot exceed the transaction total.")

    def save(self, *args, **kwargs):
        self.refresh_payment_status()
        # keep payment_status in the written columns
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "paid_amount" in update_fields:
            kwargs["update_fields"] = set(update_fields) | {"payment_status"}
        self.full_clean()
        return super().save(*args, **kwargs)


class TransactionPayment(models.Model):
    """
    One receipt of money against a sale: the down payment at checkout or a
    later receivable payment. This is the income posting on `account`.
    """

    posting_date_field = "paid_at"

    transaction = models.ForeignKey(
        Transaction, on_delete=models.CASCADE, related_name="payments"
    )
    account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="receipts"
    )
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    paid_at = models.DateTimeField(default=timezone.now)
    recorded_by_name = models.CharField(max_length=150, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = DatedManager()

    class Meta:
        indexes = [models.Index(fields=["account", "paid_at"], name="txp_account_paid_idx")]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="txp_amount_positive",
            ),
        ]
        ordering = ("paid_at", "id")

    def __str__(self):
        return f"Payment {self.amount} for order {self.transaction_id}"
