from .advance import (
    advances_by_employee,
    delete_advance,
    grant_advance,
    repay_advance,
    update_remaining_amount,
)
from .balance import (
    balance_as_of,
    daily_petty_cash_report,
    period_cash_flow,
    postings,
    reconcile_account,
)
from .expense import delete_expense, record_expense
from .gateway import LedgerGateway
from .ledger import (
    adjust_balance,
    create_account,
    get_account,
    get_account_by_name,
    list_accounts,
    set_balance,
)
from .receivable import list_receivables, pay_receivable, record_sale, write_off_receivable
from .transfer import list_transfers, transfer
