import datetime
import logging

from celery import shared_task
from django.utils import timezone

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def snapshot_closing_balances(day_iso=None):
    """
    Store every account's closing balance for `day_iso` (default yesterday).
    Re-running for the same day overwrites that day's snapshot.
    """
    # import lazily to avoid circular imports at module import time
    from .models import Account, AccountBalanceSnapshot
    from .services.balance import balance_as_of

    if day_iso:
        day = datetime.date.fromisoformat(day_iso)
    else:
        day = timezone.localdate() - datetime.timedelta(days=1)

    count = 0
    for account in Account.objects.all():
        closing = balance_as_of(account, day)
        AccountBalanceSnapshot.objects.update_or_create(
            account=account,
            snapshot_date=day,
            defaults={"balance": closing},
        )
        count += 1

    logger.info("Stored %s closing balance snapshots for %s", count, day)
    return count
