from django.apps import AppConfig


class CashLedgerConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "cash_ledger"
    verbose_name = "Cash ledger"

    # ensure receivers are registered
    def ready(self):
        import cash_ledger.signals  # noqa: F401
