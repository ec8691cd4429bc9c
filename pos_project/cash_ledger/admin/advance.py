from django.contrib import admin, messages

from cash_ledger.models import AdvanceRepayment, EmployeeAdvance
from cash_ledger.services.advance import update_remaining_amount

from .ReadOnly import ReadOnlyAdmin


class AdvanceRepaymentInline(admin.TabularInline):
    """Show repayment rows on the advance page"""

    model = AdvanceRepayment
    extra = 0  # don't show "empty" rows by default
    fields = ("date", "amount", "credits_account", "recorded_by_name")
    # repayments only come from the advance service
    readonly_fields = fields
    can_delete = False
    ordering = ("date", "id")  # installments appear in payment order

    def has_add_permission(self, request, obj=None):
        return False


@admin.action(description="Recalculate remaining amount from repayments")
def recalc_remaining(modeladmin, request, queryset):
    for advance in queryset:
        update_remaining_amount(advance.pk)
    messages.success(request, f"Recalculated {queryset.count()} advance(s).")


@admin.register(EmployeeAdvance)
class EmployeeAdvanceAdmin(ReadOnlyAdmin):
    list_display = (
        "id",
        "date",
        "employee_name",
        "account",
        "amount",
        "remaining_amount",
    )
    search_fields = ("employee_name", "employee__username", "notes")
    inlines = [AdvanceRepaymentInline]

    def get_actions(self, request):
        # ReadOnlyAdmin drops every action; keep the recalculation
        return {
            "recalc_remaining": (
                recalc_remaining,
                "recalc_remaining",
                recalc_remaining.short_description,
            )
        }

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("employee", "account")
