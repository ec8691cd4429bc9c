from .account import AC_TYPES, Account
from .advance import AdvanceRepayment, EmployeeAdvance
from .auditlog import AuditLog
from .customer import Customer
from .expense import Expense
from .sale import OUTSTANDING, PAID, Transaction, TransactionPayment
from .snapshot import AccountBalanceSnapshot
from .transfer import CashTransfer
from .user import ROLE_CHOICES, User
