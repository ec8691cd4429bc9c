from .account import AccountAdmin, AccountBalanceSnapshotAdmin
from .advance import AdvanceRepaymentInline, EmployeeAdvanceAdmin, recalc_remaining
from .auditlog import AuditLogAdmin
from .ledger import (CashTransferAdmin, ExpenseAdmin, TransactionAdmin,
                     TransactionPaymentAdmin, TransactionPaymentInline)
from .ReadOnly import ReadOnlyAdmin
from .user import CustomerAdmin, UserAdmin
