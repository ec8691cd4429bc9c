import json
from functools import wraps

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied, ValidationError
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from cash_ledger import services
from .exceptions import InsufficientFundsError, NotFoundError


def _error_message(exc):
    # ValidationError carries a list of messages; keep them readable
    if isinstance(exc, ValidationError):
        return "; ".join(exc.messages)
    return str(exc)


def ledger_view(view):
    """
    Require request.actor (set by CurrentActorMiddleware) and map ledger
    errors to JSON responses with a matching status code.
    """

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if getattr(request, "actor", None) is None:
            return JsonResponse({"ok": False, "error": "Authentication required."}, status=403)
        try:
            return view(request, *args, **kwargs)
        except ValidationError as exc:
            return JsonResponse({"ok": False, "error": _error_message(exc)}, status=400)
        except NotFoundError as exc:
            return JsonResponse({"ok": False, "error": str(exc)}, status=404)
        except InsufficientFundsError as exc:
            return JsonResponse({"ok": False, "error": str(exc)}, status=409)
        except PermissionDenied as exc:
            return JsonResponse({"ok": False, "error": str(exc) or "Forbidden."}, status=403)

    return wrapper


def _payload(request):
    # Accept JSON bodies and plain form posts
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except ValueError:
            raise ValidationError("Request body is not valid JSON.") from None
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object.")
        return data
    return request.POST.dict()


def _required(data, key):
    value = data.get(key)
    if value in (None, ""):
        raise ValidationError(f"{key} is required.")
    return value


def _account_json(account):
    return {
        "id": account.pk,
        "name": account.name,
        "ac_type": account.ac_type,
        "balance": str(account.balance),
        "is_payment_account": account.is_payment_account,
    }


# ----------------------------
# Queries
# ----------------------------
@require_GET
@ledger_view
def account_list_view(request):
    payment_only = request.GET.get("payment_only") in ("1", "true", "yes")
    accounts = services.list_accounts(payment_only=payment_only)
    return JsonResponse({"ok": True, "accounts": [_account_json(a) for a in accounts]})


@require_GET
@ledger_view
def balance_as_of_view(request, account_id):
    as_of = request.GET.get("as_of") or None
    balance = services.balance_as_of(account_id, as_of)
    return JsonResponse({"ok": True, "account_id": account_id, "as_of": as_of, "balance": str(balance)})


@require_GET
@ledger_view
def cash_flow_view(request, account_id):
    report = services.period_cash_flow(
        account_id, _required(request.GET, "from"), _required(request.GET, "to")
    )
    return JsonResponse({"ok": True, **report.as_dict()})


# ----------------------------
# Commands
# ----------------------------
@require_POST
@ledger_view
def transfer_view(request):
    data = _payload(request)
    record = services.transfer(
        _required(data, "from_account_id"),
        _required(data, "to_account_id"),
        _required(data, "amount"),
        data.get("description", ""),
        request.actor,
        idempotency_key=data.get("idempotency_key") or None,
    )
    return JsonResponse(
        {
            "ok": True,
            "transfer_id": record.pk,
            "history_recorded": record.pk is not None,
            "amount": str(record.amount),
        },
        status=201,
    )


@require_POST
@ledger_view
def pay_receivable_view(request, transaction_id):
    data = _payload(request)
    sale = services.pay_receivable(
        transaction_id, _required(data, "amount"), _required(data, "account_id"), request.actor
    )
    return JsonResponse(
        {
            "ok": True,
            "paid_amount": str(sale.paid_amount),
            "remaining": str(sale.remaining_amount),
            "payment_status": sale.payment_status,
        }
    )


@require_POST
@ledger_view
def write_off_view(request, transaction_id):
    expense = services.write_off_receivable(transaction_id, request.actor)
    return JsonResponse(
        {"ok": True, "expense_id": expense.pk, "written_off": str(expense.amount)}
    )


@require_POST
@ledger_view
def grant_advance_view(request):
    data = _payload(request)
    User = get_user_model()
    employee_id = _required(data, "employee_id")
    try:
        employee = User.objects.get(pk=employee_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Employee {employee_id!r} does not exist.") from None

    advance = services.grant_advance(
        employee,
        _required(data, "amount"),
        _required(data, "account_id"),
        data.get("notes", ""),
        request.actor,
    )
    return JsonResponse(
        {"ok": True, "advance_id": advance.pk, "remaining": str(advance.remaining_amount)},
        status=201,
    )


@require_POST
@ledger_view
def repay_advance_view(request, advance_id):
    data = _payload(request)
    repayment = services.repay_advance(advance_id, _required(data, "amount"), request.actor)
    return JsonResponse(
        {
            "ok": True,
            "repayment_id": repayment.pk,
            "remaining": str(repayment.advance.remaining_amount),
        }
    )


@require_POST
@ledger_view
def delete_advance_view(request, advance_id):
    reversed_amount = services.delete_advance(advance_id, request.actor)
    return JsonResponse({"ok": True, "reversed": str(reversed_amount)})
