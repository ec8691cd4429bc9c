from django.db import models


# -----------------------------------------
# Account lookups
# -----------------------------------------
class AccountQuerySet(models.QuerySet):
    def payment_accounts(self):
        # accounts a cashier may pick as the POS payment target
        return self.filter(is_payment_account=True)

    def by_name(self, name):
        # report lookups ("Kas Kecil") ignore case like the cashier screens do
        return self.filter(name__iexact=name.strip())


class AccountManager(models.Manager):
    def get_queryset(self):
        return AccountQuerySet(self.model, using=self._db)

    def payment_accounts(self):
        return self.get_queryset().payment_accounts()

    def by_name(self, name):
        return self.get_queryset().by_name(name)


# -----------------------------------------
# Dated ledger records (payments, expenses,
# transfers, advances, repayments)
# -----------------------------------------
class DatedQuerySet(models.QuerySet):
    """
    Models using this queryset name their posting timestamp in
    `posting_date_field` so the balance report can filter any of them
    the same way.
    """

    def _date_field(self):
        return self.model.posting_date_field

    def after(self, cutoff):
        # strictly after: cutoff-dated rows belong to the "as of" balance
        return self.filter(**{f"{self._date_field()}__gt": cutoff})

    def up_to(self, cutoff):
        return self.filter(**{f"{self._date_field()}__lte": cutoff})

    def within(self, start, end):
        # half-open window (start, end], matching after()/up_to()
        return self.after(start).up_to(end)


class DatedManager(models.Manager):
    def get_queryset(self):
        return DatedQuerySet(self.model, using=self._db)

    def after(self, cutoff):
        return self.get_queryset().after(cutoff)

    def up_to(self, cutoff):
        return self.get_queryset().up_to(cutoff)

    def within(self, start, end):
        return self.get_queryset().within(start, end)
