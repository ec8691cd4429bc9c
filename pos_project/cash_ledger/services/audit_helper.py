from ..models import AuditLog


def log_action(
    *,
    action: str,
    instance,
    actor=None,
    changes: dict | None = None,
):
    """
    Central audit logger.
    Call it inside the same transaction.atomic() block as the change it
    describes so the log row commits or rolls back with it.
    """

    AuditLog.objects.create(
        user_id=getattr(actor, "id", None),
        actor_name=getattr(actor, "name", "") or "",
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(instance.pk),
        changes=_jsonable(changes),
    )


def _jsonable(changes):
    # Decimals and datetimes are stored as strings in the JSON column
    if changes is None:
        return None
    return {
        key: value if isinstance(value, (int, bool, type(None))) else str(value)
        for key, value in changes.items()
    }
