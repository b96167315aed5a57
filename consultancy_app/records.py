# records.py
import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from . import blob_store
from .exceptions import ConflictError, NotFoundError
from .models import (
    EMIDetails, ExpensePayment, PaymentHandover, Student, StudentAcademicDetails,
    StudentDocument, StudentPayment, Supplier, SupplierDocument, SupplierExpense,
)

logger = logging.getLogger(__name__)


# ==================== STUDENT PAYMENTS ====================
def create_student_payment(data, receipt=None, created_by=None):
    transaction_number = (data.get('transaction_number') or '').strip() or None
    if transaction_number and StudentPayment.objects.filter(transaction_number=transaction_number).exists():
        raise ConflictError('Transaction number already exists')

    # upload first; drop the blob again if the row never lands
    uploaded = blob_store.upload(receipt, 'StudentPayment') if receipt else None
    try:
        with transaction.atomic():
            payment = StudentPayment.objects.create(
                student=data['student'],
                student_academic=data.get('student_academic'),
                payment_mode=data['payment_mode'],
                transaction_number=transaction_number,
                amount=data['amount'],
                received_date=data['received_date'],
                approved_by=data.get('approved_by'),
                amount_type=data.get('amount_type'),
                course_year=data.get('course_year'),
                session_year=data.get('session_year'),
                receipt_url=uploaded['url'] if uploaded else None,
                receipt_public_id=uploaded['public_id'] if uploaded else None,
                created_by=created_by,
                created_on=timezone.now(),
            )
    except Exception:
        if uploaded:
            blob_store.delete(uploaded['public_id'])
        raise

    logger.info(f"Recorded payment {payment.id} of {payment.amount} for student {payment.student_id}")
    return payment


@transaction.atomic
def delete_student_payment(payment_id):
    try:
        payment = StudentPayment.objects.select_for_update().get(pk=payment_id)
    except (StudentPayment.DoesNotExist, ValueError):
        raise NotFoundError('Payment not found')

    if PaymentHandover.objects.filter(payment=payment).exists():
        raise ConflictError('Payment has handover history and cannot be deleted')

    blob_store.delete_on_commit(payment.receipt_public_id)
    payment.delete()
    logger.info(f"Deleted payment {payment_id}")


# ==================== STUDENTS ====================
@transaction.atomic
def delete_student(student_id):
    """
    Delete a student with documents, EMI details, payments and academic
    details in one transaction. Refused while any payment has handovers.
    """
    try:
        student = Student.objects.select_for_update().get(pk=student_id)
    except (Student.DoesNotExist, ValueError):
        raise NotFoundError('Student not found')

    # handovers lock the payment row, not the student
    payment_ids = list(StudentPayment.objects.select_for_update().filter(student=student).values_list('pk', flat=True))
    if PaymentHandover.objects.filter(Q(student=student) | Q(payment_id__in=payment_ids)).exists():
        raise ConflictError('Student has payment handover history and cannot be deleted')

    documents = StudentDocument.objects.filter(student=student)
    payments = StudentPayment.objects.filter(student=student)
    for public_id in list(documents.values_list('public_id', flat=True)) + \
            list(payments.values_list('receipt_public_id', flat=True)):
        blob_store.delete_on_commit(public_id)

    documents.delete()
    EMIDetails.objects.filter(student=student).delete()
    payments.delete()
    StudentAcademicDetails.objects.filter(student=student).delete()
    student.delete()
    logger.info(f"Deleted student {student_id}")


# ==================== ACADEMIC DETAILS & EMI ====================
def academic_details(student_id):
    """Academic records of a student, newest first, with their EMI schedules."""
    return (
        StudentAcademicDetails.objects.filter(student_id=student_id)
        .prefetch_related('emi_details')
        .order_by('-created_on', '-id')
    )


def latest_academic_details(student_id):
    academic = academic_details(student_id).first()
    if academic is None:
        raise NotFoundError('No academic records found')
    return academic


def emi_schedule(student_id, academic_id):
    if not StudentAcademicDetails.objects.filter(pk=academic_id, student_id=student_id).exists():
        raise NotFoundError('Academic record not found for the specified student')
    return EMIDetails.objects.filter(student_id=student_id, student_academic_id=academic_id).order_by('emi_number')


@transaction.atomic
def create_academic_details(student, data, emis=()):
    """Academic record plus its EMI schedule, numbered from 1 in the given order."""
    academic = StudentAcademicDetails.objects.create(student=student, number_of_emi=len(emis), **data)
    EMIDetails.objects.bulk_create([
        EMIDetails(student=student, student_academic=academic, emi_number=number,
                   amount=emi['amount'], due_date=emi['due_date'])
        for number, emi in enumerate(emis, start=1)
    ])
    logger.info(f"Added academic record {academic.id} with {len(emis)} EMI(s) for student {student.id}")
    return academic


# ==================== SUPPLIERS ====================
@transaction.atomic
def delete_supplier(supplier_id):
    try:
        supplier = Supplier.objects.select_for_update().get(pk=supplier_id)
    except (Supplier.DoesNotExist, ValueError):
        raise NotFoundError('Supplier not found')

    if ExpensePayment.objects.filter(expense__supplier=supplier).exists():
        raise ConflictError('Supplier has expense payments and cannot be deleted')

    for public_id in supplier.documents.values_list('public_id', flat=True):
        blob_store.delete_on_commit(public_id)

    SupplierExpense.objects.filter(supplier=supplier).delete()
    supplier.delete()
    logger.info(f"Deleted supplier {supplier_id}")


def add_supplier_documents(supplier, files):
    uploaded = [blob_store.upload(file, 'SupplierDocs') for file in files]
    try:
        with transaction.atomic():
            documents = [
                SupplierDocument.objects.create(supplier=supplier, document_url=blob['url'],
                                                public_id=blob['public_id'])
                for blob in uploaded
            ]
    except Exception:
        for blob in uploaded:
            blob_store.delete(blob['public_id'])
        raise

    logger.info(f"Stored {len(documents)} document(s) for supplier {supplier.id}")
    return documents
