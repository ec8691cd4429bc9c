from django.urls import path

from . import views

app_name = "cash_ledger"

urlpatterns = [
    path("accounts/", views.account_list_view, name="account-list"),
    path("accounts/<int:account_id>/balance/", views.balance_as_of_view, name="balance-as-of"),
    path("accounts/<int:account_id>/cash-flow/", views.cash_flow_view, name="cash-flow"),
    path("transfers/", views.transfer_view, name="transfer"),
    path("receivables/<int:transaction_id>/pay/", views.pay_receivable_view, name="pay-receivable"),
    path("receivables/<int:transaction_id>/write-off/", views.write_off_view, name="write-off"),
    path("advances/", views.grant_advance_view, name="grant-advance"),
    path("advances/<int:advance_id>/repay/", views.repay_advance_view, name="repay-advance"),
    path("advances/<int:advance_id>/delete/", views.delete_advance_view, name="delete-advance"),
]
