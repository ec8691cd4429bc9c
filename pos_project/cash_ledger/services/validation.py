import datetime
from decimal import Decimal, InvalidOperation
from django.core.exceptions import ValidationError
from django.utils import timezone

CENT = Decimal("0.01")
# DecimalField(max_digits=18, decimal_places=2) on every money column
MAX_AMOUNT = Decimal("9999999999999999.99")


# ------------------------------------
# Input normalisation shared by every
# ledger workflow
# ------------------------------------
def _to_decimal(value, field):
    """Parse `value` into a two-decimal Decimal that fits a money column."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number.")
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            raise ValidationError(f"{field} must be a finite number.")
        if abs(amount) > MAX_AMOUNT:
            raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}.")
        rounded = amount.quantize(CENT)
    except (ValueError, InvalidOperation):
        raise ValidationError(f"{field} must be a number.") from None

    if amount != rounded:
        raise ValidationError(f"{field} cannot have more than two decimal places.")
    return rounded


def to_amount(value, *, allow_zero=False, field="amount"):
    """
    Ensures value is a Decimal with at most two decimal places and is positive.
    Floats go through str() first so 0.1 stays 0.1.
    Extra precision is rejected rather than rounded away.
    """
    amount = _to_decimal(value, field)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{field} must be positive.")
    return amount


def to_signed_amount(value, field="amount"):
    """Like to_amount() but allows zero and negative values (balance deltas)."""
    return _to_decimal(value, field)


def end_of_day(day):
    """Last instant of `day` in the current time zone."""
    naive = datetime.datetime.combine(day, datetime.time.max)
    return timezone.make_aware(naive)


def to_cutoff(value):
    """
    Normalise a report cutoff.
    A date means "end of that day"; naive datetimes are read in the current
    time zone; None means now.
    """
    if value is None:
        return timezone.now()
    if isinstance(value, datetime.datetime):
        if timezone.is_naive(value):
            return timezone.make_aware(value)
        return value
    if isinstance(value, datetime.date):
        return end_of_day(value)
    if isinstance(value, str):
        parsed = _parse_date_or_datetime(value)
        return to_cutoff(parsed)
    raise ValidationError(f"Unsupported cutoff value: {value!r}")


def to_posting_time(value):
    """Timestamp for a new posting; a bare date is stored at the start of that day."""
    if value is None:
        return timezone.now()
    if isinstance(value, datetime.datetime):
        return timezone.make_aware(value) if timezone.is_naive(value) else value
    if isinstance(value, datetime.date):
        return timezone.make_aware(datetime.datetime.combine(value, datetime.time.min))
    if isinstance(value, str):
        return to_posting_time(_parse_date_or_datetime(value))
    raise ValidationError(f"Unsupported date value: {value!r}")


def _parse_date_or_datetime(text):
    text = text.strip()
    try:
        if len(text) == 10:
            return datetime.date.fromisoformat(text)
        return datetime.datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid date: {text!r}") from None


def to_day(value):
    """Calendar day of a report boundary; datetimes are read in the current time zone."""
    if isinstance(value, datetime.datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        return to_day(_parse_date_or_datetime(value))
    raise ValidationError(f"Unsupported date value: {value!r}")
