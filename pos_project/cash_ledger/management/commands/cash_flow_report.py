from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from cash_ledger.conf import ledger_settings
from cash_ledger.exceptions import NotFoundError
from cash_ledger.services import get_account_by_name, period_cash_flow


class Command(BaseCommand):
    help = "Print the opening/closing cash-flow report of one account for a date range."

    def add_arguments(self, parser):
        parser.add_argument(
            "--account",
            default=None,
            help="Account name (default: the petty-cash account).",
        )
        parser.add_argument("--from", dest="date_from", default=None, help="First day, YYYY-MM-DD (default: today).")
        parser.add_argument("--to", dest="date_to", default=None, help="Last day, YYYY-MM-DD (default: --from).")

    def handle(self, *args, **options):
        name = options["account"] or ledger_settings().PETTY_CASH_ACCOUNT_NAME
        date_from = options["date_from"] or timezone.localdate().isoformat()
        date_to = options["date_to"] or date_from

        try:
            account = get_account_by_name(name)
            report = period_cash_flow(account, date_from, date_to)
        except NotFoundError as exc:
            raise CommandError(str(exc))
        except ValidationError as exc:
            raise CommandError("; ".join(exc.messages))

        self.stdout.write(self.style.NOTICE(
            f"{report.account.name}: {report.date_from} .. {report.date_to}"
        ))
        for posting in report.postings:
            self.stdout.write(
                f"  {timezone.localtime(posting.posted_at):%Y-%m-%d %H:%M}  "
                f"{posting.kind:<13} {posting.signed_amount:>15}  "
                f"{posting.running_balance:>15}  {posting.description}"
            )
        self.stdout.write(f"Saldo awal      {report.opening_balance:>15}")
        self.stdout.write(f"Pemasukan       {report.income:>15}")
        self.stdout.write(f"Pengeluaran     {report.expense:>15}")
        self.stdout.write(f"Panjar          {report.advances:>15}")
        self.stdout.write(self.style.SUCCESS(f"Saldo akhir     {report.closing_balance:>15}"))
