import datetime
from decimal import Decimal

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.files.storage import default_storage

from consultancy_app import ledger, records
from consultancy_app.exceptions import ConflictError, NotFoundError
from consultancy_app.models import (
    EMIDetails, ExpensePayment, Page, PaymentHandover, Permission, RoleName, Student, StudentAcademicDetails,
    StudentPayment, Supplier, SupplierExpense,
)

pytestmark = pytest.mark.django_db


def handover(payment, amount='10'):
    return ledger.create_handovers([ledger.HandoverEntry(payment.id, amount)], 'Accounts',
                                   datetime.date(2024, 4, 10), created_by='Root')


def test_student_with_handovers_cannot_be_deleted(student, make_payment):
    handover(make_payment('100'))
    with pytest.raises(ConflictError):
        records.delete_student(student.id)
    assert Student.objects.filter(pk=student.id).exists()


def test_student_delete_removes_dependents(student, make_payment):
    academic = StudentAcademicDetails.objects.create(student=student, session_year='2024-25')
    EMIDetails.objects.create(student=student, student_academic=academic, emi_number=1,
                              amount=Decimal('500'), due_date=datetime.date(2024, 6, 1))
    make_payment('100')

    records.delete_student(student.id)

    assert not Student.objects.filter(pk=student.id).exists()
    assert not StudentPayment.objects.exists()
    assert not EMIDetails.objects.exists()
    assert not StudentAcademicDetails.objects.exists()


def test_delete_missing_student_is_not_found():
    with pytest.raises(NotFoundError):
        records.delete_student(424242)


def test_payment_with_handovers_cannot_be_deleted(make_payment):
    payment = make_payment('100')
    handover(payment)
    with pytest.raises(ConflictError):
        records.delete_student_payment(payment.id)


def test_payment_delete_removes_receipt(django_capture_on_commit_callbacks, student):
    receipt = SimpleUploadedFile('receipt.pdf', b'%PDF-1.4 receipt', content_type='application/pdf')
    payment = records.create_student_payment({
        'student': student,
        'payment_mode': 'upi',
        'transaction_number': 'UPI-1',
        'amount': Decimal('250'),
        'received_date': datetime.date(2024, 4, 2),
    }, receipt=receipt, created_by='Clerk')
    assert payment.receipt_public_id.startswith('StudentPayment/')
    assert default_storage.exists(payment.receipt_public_id)

    with django_capture_on_commit_callbacks(execute=True):
        records.delete_student_payment(payment.id)

    assert not StudentPayment.objects.filter(pk=payment.id).exists()
    assert not default_storage.exists(payment.receipt_public_id)


def test_duplicate_transaction_number_conflicts(student, make_payment):
    data = {
        'student': student, 'payment_mode': 'upi', 'transaction_number': 'UPI-7',
        'amount': Decimal('10'), 'received_date': datetime.date(2024, 4, 2),
    }
    records.create_student_payment(data)
    with pytest.raises(ConflictError):
        records.create_student_payment(data)


def test_supplier_with_payments_cannot_be_deleted(supplier, expense):
    ledger.record_expense_payment(expense.id, '10', 'Cash', datetime.date(2024, 5, 1))
    with pytest.raises(ConflictError):
        records.delete_supplier(supplier.id)
    assert ExpensePayment.objects.count() == 1


def test_supplier_without_payments_is_deleted_with_expenses(supplier, expense):
    records.delete_supplier(supplier.id)
    assert not Supplier.objects.exists()
    assert not SupplierExpense.objects.exists()


def test_page_delete_cascades_permissions(roles, make_page, grant):
    page = make_page('/student')
    grant(roles[RoleName.REGISTERED], page, read=True)
    page.delete()
    assert not Permission.objects.exists()
    assert not Page.objects.exists()


def test_student_payment_endpoint(admin_client, student):
    response = admin_client.post('/api/student-payments/', {
        'student': student.id, 'payment_mode': 'Bank Transfer', 'transaction_number': 'NEFT-9',
        'amount': '1500.00', 'received_date': '2024-04-03', 'approved_by': 'Clerk',
    }, format='json')
    assert response.status_code == 201
    assert response.json()['data']['payment_mode'] == 'bank transfer'

    response = admin_client.get('/api/student-payments/', {'student_id': student.id})
    assert len(response.json()) == 1


def test_handover_filed_under_another_student_still_blocks_delete(student, make_payment):
    payment = make_payment('100')
    other = Student.objects.create(first_name='Ravi', last_name='K', roll_number='R-002')
    PaymentHandover.objects.create(payment=payment, student=other, amount=Decimal('10'),
                                   handed_over_to='Accounts', handover_date=datetime.date(2024, 4, 10))

    with pytest.raises(ConflictError):
        records.delete_student(student.id)
    assert StudentPayment.objects.filter(pk=payment.pk).exists()


@pytest.mark.parametrize('url', ['/api/students/abc/', '/api/student-payments/abc/', '/api/suppliers/abc/'])
def test_delete_with_non_numeric_id_is_not_found(admin_client, url):
    response = admin_client.delete(url)
    assert response.status_code == 404
    assert response.json()['code'] == 'not_found'
