from django.conf import settings  # To access global project settings
from django.db import models


# ---------- Audit / Event log ----------
class AuditLog(models.Model):  # Trail of every ledger command
    # Which user performed the action
    # (Nullable for scheduled jobs and management commands)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    # Name as known when the action ran; survives user deletion
    actor_name = models.CharField(max_length=150, blank=True)
    # Common choices: transfer, pay_receivable, write_off, grant_advance
    action = models.CharField(max_length=50)
    # What kind of object was affected (e.g. "CashTransfer", "Account")
    object_type = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    # Amounts and before/after values, in JSON format
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["object_type", "object_id"], name="audit_object_idx"),
            models.Index(fields=["created_at"], name="audit_created_idx"),
        ]
        ordering = ("-created_at", "-id")

    def __str__(self):
        time = self.created_at
        return f"[{time:%Y-%m-%d %H:%M}] {self.actor_name} {self.action} {self.object_type}({self.object_id})"
