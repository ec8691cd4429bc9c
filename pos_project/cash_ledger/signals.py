from django.core.exceptions import ValidationError
from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .models import Transaction

"""Block deletion of a sale whose payments already reached an account."""


# pre_delete fires just before Django deletes the instance, inside the
# delete transaction, so raising here aborts the delete
@receiver(pre_delete, sender=Transaction)
def prevent_delete_transaction_with_payments(sender, instance, **kwargs):
    if instance.payments.exists():
        raise ValidationError("Cannot delete a transaction with recorded payments.")
