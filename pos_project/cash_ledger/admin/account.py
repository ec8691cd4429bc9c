from django.contrib import admin
from cash_ledger.models import Account, AccountBalanceSnapshot
from .ReadOnly import ReadOnlyAdmin


# Register `Account` model
@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "name",
        "ac_type",
        "balance",
        "is_payment_account",
        "created_at",
    )
    list_filter = ("ac_type", "is_payment_account")
    search_fields = ("name",)
    ordering = ("name",)
    fieldsets = (
        (
            None,
            {
                "fields": (
                    "name",
                    "ac_type",
                    "balance",
                    "is_payment_account",
                )
            },
        ),
    )

    # The opening balance is typed in once; afterwards only the
    # ledger services move it
    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return ("balance",)
        return ()


# Register `AccountBalanceSnapshot` model
@admin.register(AccountBalanceSnapshot)
class AccountBalanceSnapshotAdmin(ReadOnlyAdmin):
    list_display = ("id", "account", "snapshot_date", "balance", "created_at")
    list_filter = ("snapshot_date", "account")

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("account")
