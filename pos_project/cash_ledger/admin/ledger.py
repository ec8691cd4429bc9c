from django.contrib import admin

from cash_ledger.models import CashTransfer, Expense, Transaction, TransactionPayment

from .ReadOnly import ReadOnlyAdmin


@admin.register(CashTransfer)
class CashTransferAdmin(ReadOnlyAdmin):
    list_display = (
        "id",
        "transfer_date",
        "from_account",
        "to_account",
        "amount",
        "transferred_by_name",
        "description",
    )
    date_hierarchy = "transfer_date"

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("from_account", "to_account")


class TransactionPaymentInline(admin.TabularInline):
    """Receipts against a sale, shown under the sale (read-only)."""

    model = TransactionPayment
    extra = 0
    fields = ("paid_at", "account", "amount", "recorded_by_name")
    readonly_fields = fields
    can_delete = False
    ordering = ("paid_at", "id")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Transaction)
class TransactionAdmin(ReadOnlyAdmin):
    list_display = (
        "id",
        "order_date",
        "customer_name",
        "total",
        "paid_amount",
        "payment_status",
        "written_off_at",
    )
    list_filter = ("payment_status", "payment_account")
    search_fields = ("customer_name", "customer__name")
    inlines = [TransactionPaymentInline]

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("customer", "payment_account")


@admin.register(TransactionPayment)
class TransactionPaymentAdmin(ReadOnlyAdmin):
    list_display = ("id", "paid_at", "transaction", "account", "amount", "recorded_by_name")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("transaction", "account")


@admin.register(Expense)
class ExpenseAdmin(ReadOnlyAdmin):
    list_display = ("id", "date", "description", "category", "account", "amount", "is_write_off")
    date_hierarchy = "date"

    @admin.display(boolean=True, description="Write-off")
    def is_write_off(self, obj):
        return obj.is_write_off

    def get_list_filter(self, request):
        return super().get_list_filter(request) + ("category",)

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("account", "transaction")
