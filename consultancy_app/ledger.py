# ledger.py
"""
Money ledgers.

Student payments: staff collect a payment, then hand it over to the
administration in one or more partial transfers.  A payment's
handover_amount is a running total that never exceeds its amount, and the
PaymentHandover rows for a payment always add up to that running total.

Supplier expenses: the outbound mirror.  ExpensePayment rows are partial
payments against an expense and never add up to more than its amount.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import NamedTuple

from django.db import transaction
from django.db.models import DecimalField, F, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from .exceptions import InvalidAmountError, NotFoundError
from .models import ExpensePayment, PaymentHandover, StudentPayment, SupplierExpense

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
ZERO = Decimal('0')
# largest value a DecimalField(max_digits=12, decimal_places=2) holds
MAX_AMOUNT = Decimal('9999999999.99')


def parse_amount(value, message, record_id=None):
    """Positive money amount with at most two decimals, else InvalidAmountError."""
    try:
        amount = Decimal(str(value).strip())
        valid = (
            amount.is_finite()
            and ZERO < amount <= MAX_AMOUNT
            and amount == amount.quantize(CENT)
        )
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(message, record_id)

    if not valid:
        raise InvalidAmountError(message, record_id)
    return amount


# ==================== STUDENT PAYMENT HANDOVERS ====================
class HandoverEntry(NamedTuple):
    payment_id: int
    amount: object


def approved_by_staff():
    """Distinct staff names that have collected payments."""
    return list(
        StudentPayment.objects.exclude(approved_by__isnull=True)
        .exclude(approved_by='')
        .order_by('approved_by')
        .values_list('approved_by', flat=True)
        .distinct()
    )


def list_payments_by_staff(staff_name):
    """Payments collected by staff_name that still have money left to hand over."""
    return (
        StudentPayment.objects.filter(approved_by=staff_name)
        .filter(handover_amount__lt=F('amount'))
        .annotate(remaining=F('amount') - F('handover_amount'))
        .select_related('student', 'student__course', 'student__college', 'student_academic')
        .order_by('-received_date', '-id')
    )


def add_to_handover_total(payment, amount, modify_by=None, now=None):
    """
    Raise payment.handover_amount by amount.

    The new total is computed in Decimal from the row as read and written only
    if the stored total still matches it. Returns False when the total would
    pass payment.amount or the row changed underneath.
    """
    new_total = payment.handover_amount + amount
    if new_total > payment.amount:
        return False
    updated = (
        StudentPayment.objects
        .filter(pk=payment.pk, handover_amount=payment.handover_amount)
        .update(handover_amount=new_total, modify_by=modify_by, modify_on=now or timezone.now())
    )
    return bool(updated)


@transaction.atomic
def create_handovers(entries, handed_over_to, handover_date, remarks=None, created_by=None):
    """
    Hand over part of one or more payments.

    The batch is all-or-nothing: a missing payment or an amount above what is
    left on any payment rolls back every entry.  Rows are locked before the
    running total is raised.
    """
    if not entries:
        raise InvalidAmountError('No payments selected for handover')

    now = timezone.now()
    handovers = []
    for entry in entries:
        try:
            payment = StudentPayment.objects.select_for_update().get(pk=entry.payment_id)
        except (StudentPayment.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Payment with ID {entry.payment_id} not found")

        amount = parse_amount(
            entry.amount, f"Invalid handover amount for payment ID {payment.id}", payment.id
        )

        if not add_to_handover_total(payment, amount, modify_by=created_by, now=now):
            logger.warning(f"Rejected handover of {amount} for payment {payment.id}: exceeds remaining amount")
            raise InvalidAmountError(
                f"Cannot hand over more than the available amount for payment ID {payment.id}",
                payment.id,
            )

        handovers.append(PaymentHandover.objects.create(
            payment=payment,
            student_id=payment.student_id,
            amount=amount,
            # whoever collected the payment, never the caller
            received_by=payment.approved_by,
            handed_over_to=handed_over_to,
            handover_date=handover_date,
            remarks=remarks,
            verified=True,
            verified_by=created_by,
            verified_on=now,
            created_by=created_by,
            created_on=now,
        ))

    logger.info(f"Created {len(handovers)} handover(s) to {handed_over_to} by {created_by}")
    return handovers


def list_handovers():
    return PaymentHandover.objects.select_related(
        'payment', 'student', 'student__course', 'student__college'
    ).order_by('-created_on', '-id')


def verify_handover(handover_id, verified_by):
    try:
        handover = PaymentHandover.objects.get(pk=handover_id)
    except PaymentHandover.DoesNotExist:
        raise NotFoundError('Handover not found')

    handover.verified = True
    handover.verified_by = verified_by
    handover.verified_on = timezone.now()
    handover.save(update_fields=['verified', 'verified_by', 'verified_on'])
    return handover


def has_handovers(payment_id):
    return PaymentHandover.objects.filter(payment_id=payment_id).exists()


# ==================== SUPPLIER EXPENSES ====================
def _paid_total(expense_id):
    total = ExpensePayment.objects.filter(expense_id=expense_id).aggregate(total=Sum('paid_amount'))['total']
    return total or ZERO


@transaction.atomic
def record_expense_payment(expense_id, paid_amount, payment_mode, payment_date, transaction_id='',
                           comment=None, is_approved=False, approve_by=None,
                           payment_image=None, payment_public_id=None, created_by=None):
    """Single partial payment against an expense, bounded by what is still unpaid."""
    try:
        expense = SupplierExpense.objects.select_for_update().get(pk=expense_id, is_deleted=False)
    except (SupplierExpense.DoesNotExist, ValueError):
        raise NotFoundError('Expense not found')

    amount = parse_amount(paid_amount, f"Invalid payment amount for expense ID {expense.id}", expense.id)
    remaining = expense.amount - _paid_total(expense.id)
    if amount > remaining:
        logger.warning(f"Rejected payment of {amount} for expense {expense.id}: remaining {remaining}")
        raise InvalidAmountError('Payment amount exceeds remaining amount', expense.id)

    payment = ExpensePayment.objects.create(
        expense=expense,
        supplier_id=expense.supplier_id,
        paid_amount=amount,
        payment_mode=payment_mode,
        transaction_id='' if payment_mode == 'Cash' else (transaction_id or ''),
        payment_date=payment_date,
        is_approved=is_approved,
        approve_by=approve_by,
        comment=comment,
        payment_image=payment_image,
        payment_public_id=payment_public_id,
        created_by=created_by,
    )
    logger.info(f"Recorded payment {payment.id} of {amount} for expense {expense.id}")
    return payment


@transaction.atomic
def update_expense(expense_id, reason=None, amount=None, modify_by=None):
    try:
        expense = SupplierExpense.objects.select_for_update().get(pk=expense_id)
    except (SupplierExpense.DoesNotExist, ValueError):
        raise NotFoundError('Expense not found')

    if amount is not None:
        amount = parse_amount(amount, f"Invalid amount for expense ID {expense.id}", expense.id)
        paid = _paid_total(expense.id)
        if amount < paid:
            raise InvalidAmountError(f"Amount cannot be less than the {paid} already paid", expense.id)
        expense.amount = amount
    if reason is not None:
        expense.reason = reason

    expense.modify_by = modify_by
    expense.modify_on = timezone.now()
    expense.save()
    return expense


def toggle_expense_deleted(expense_id, modify_by=None):
    try:
        expense = SupplierExpense.objects.get(pk=expense_id)
    except (SupplierExpense.DoesNotExist, ValueError):
        raise NotFoundError('Expense not found')

    expense.is_deleted = not expense.is_deleted
    expense.modify_by = modify_by
    expense.modify_on = timezone.now()
    expense.save(update_fields=['is_deleted', 'modify_by', 'modify_on'])
    return expense


def expenses_with_totals(supplier_id=None, status=None):
    expenses = SupplierExpense.objects.select_related('supplier').annotate(
        total_paid=Coalesce(
            Sum('payments__paid_amount'),
            Value(ZERO),
            output_field=DecimalField(max_digits=12, decimal_places=2),
        ),
    ).annotate(remaining=F('amount') - F('total_paid'))

    if supplier_id is not None:
        expenses = expenses.filter(supplier_id=supplier_id)
    if status == 'active':
        expenses = expenses.filter(is_deleted=False)
    elif status == 'inactive':
        expenses = expenses.filter(is_deleted=True)
    return expenses.order_by('-created_on', '-id')


def supplier_summary(supplier, status=None):
    expenses = list(expenses_with_totals(supplier.id, status))
    total_amount = sum((e.amount for e in expenses), ZERO)
    total_paid = sum((e.total_paid for e in expenses), ZERO)
    return {
        'supplier_id': supplier.id,
        'supplier_name': supplier.name,
        'expenses': [
            {
                'id': e.id,
                'reason': e.reason,
                'amount': e.amount,
                'total_paid': e.total_paid,
                'remaining': e.amount - e.total_paid,
                'is_deleted': e.is_deleted,
                'created_on': e.created_on,
            }
            for e in expenses
        ],
        'total_amount': total_amount,
        'total_paid': total_paid,
        'total_remaining': total_amount - total_paid,
    }
