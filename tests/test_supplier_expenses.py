import datetime
from decimal import Decimal

import pytest
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile

from consultancy_app import ledger, records
from consultancy_app.exceptions import InvalidAmountError, NotFoundError
from consultancy_app.models import ExpensePayment, SupplierDocument, SupplierExpense

pytestmark = pytest.mark.django_db

PAID_ON = datetime.date(2024, 5, 2)


def pay(expense, amount, mode='Cash', transaction_id=''):
    return ledger.record_expense_payment(expense.id, amount, mode, PAID_ON,
                                         transaction_id=transaction_id, created_by='Root')


def test_partial_payments_up_to_expense_amount(expense):
    pay(expense, '600')
    pay(expense, '400')

    with pytest.raises(InvalidAmountError) as excinfo:
        pay(expense, '0.01')
    assert excinfo.value.message == 'Payment amount exceeds remaining amount'
    assert ExpensePayment.objects.filter(expense=expense).count() == 2


def test_cash_payment_drops_transaction_id(expense):
    payment = pay(expense, '100', mode='Cash', transaction_id='IGNORED')
    assert payment.transaction_id == ''
    assert payment.supplier_id == expense.supplier_id


def test_payment_against_inactive_expense_is_not_found(expense):
    ledger.toggle_expense_deleted(expense.id)
    with pytest.raises(NotFoundError):
        pay(expense, '100')


def test_update_cannot_go_below_paid(expense):
    pay(expense, '700')

    with pytest.raises(InvalidAmountError):
        ledger.update_expense(expense.id, amount='699.99')

    updated = ledger.update_expense(expense.id, reason='Paper and ink', amount='700', modify_by='Root')
    assert updated.amount == Decimal('700')
    assert updated.reason == 'Paper and ink'


def test_toggle_is_reversible(expense):
    assert ledger.toggle_expense_deleted(expense.id).is_deleted
    assert not ledger.toggle_expense_deleted(expense.id).is_deleted


def test_expenses_with_totals_filters_status(supplier, expense):
    closed = SupplierExpense.objects.create(supplier=supplier, reason='Old invoice',
                                            amount=Decimal('50'), is_deleted=True)
    pay(expense, '250')

    active = list(ledger.expenses_with_totals(supplier.id, 'active'))
    assert [e.id for e in active] == [expense.id]
    assert active[0].total_paid == Decimal('250')
    assert active[0].remaining == Decimal('750')

    assert [e.id for e in ledger.expenses_with_totals(supplier.id, 'inactive')] == [closed.id]
    assert len(ledger.expenses_with_totals(supplier.id)) == 2


def test_supplier_summary_totals(supplier, expense):
    SupplierExpense.objects.create(supplier=supplier, reason='Chairs', amount=Decimal('500'))
    pay(expense, '300')

    summary = ledger.supplier_summary(supplier)
    assert summary['total_amount'] == Decimal('1500')
    assert summary['total_paid'] == Decimal('300')
    assert summary['total_remaining'] == Decimal('1200')
    assert len(summary['expenses']) == 2


def test_non_cash_payment_needs_transaction_id(admin_client, expense):
    body = {'expense': expense.id, 'paid_amount': '100', 'payment_mode': 'UPI', 'payment_date': '2024-05-02'}
    response = admin_client.post('/api/expense-payments/', body, format='json')
    assert response.status_code == 400
    assert 'transaction_id' in response.json()['errors']

    body['transaction_id'] = 'UPI-778'
    response = admin_client.post('/api/expense-payments/', body, format='json')
    assert response.status_code == 201
    assert response.json()['data']['transaction_id'] == 'UPI-778'


def test_overpayment_endpoint_is_rejected(admin_client, expense):
    body = {'expense': expense.id, 'paid_amount': '1000.01', 'payment_mode': 'Cash', 'payment_date': '2024-05-02'}
    response = admin_client.post('/api/expense-payments/', body, format='json')
    assert response.status_code == 400
    assert response.json()['error'] == 'Payment amount exceeds remaining amount'


def test_expense_update_and_toggle_endpoints(admin_client, expense):
    pay(expense, '400')

    response = admin_client.patch(f'/api/supplier-expenses/{expense.id}/', {'amount': '300'}, format='json')
    assert response.status_code == 400

    response = admin_client.patch(f'/api/supplier-expenses/{expense.id}/', {'amount': '450'}, format='json')
    assert response.status_code == 200
    assert response.json()['data']['remaining'] == 50

    response = admin_client.put(f'/api/supplier-expenses/{expense.id}/toggle-delete/')
    assert response.json()['data']['is_deleted'] is True


def test_expense_for_inactive_supplier_is_rejected(admin_client, supplier):
    supplier.is_deleted = True
    supplier.save()
    response = admin_client.post('/api/supplier-expenses/',
                                 {'supplier': supplier.id, 'reason': 'Desk', 'amount': '90'}, format='json')
    assert response.status_code == 400


def test_supplier_validation(admin_client):
    response = admin_client.post('/api/suppliers/', {'name': 'Bad Phone', 'phone_no': '12ab'}, format='json')
    assert response.status_code == 400

    response = admin_client.post('/api/suppliers/', {'name': 'Good Bank', 'ifsc_code': 'sbin0001234'}, format='json')
    assert response.status_code == 201
    assert response.json()['data']['ifsc_code'] == 'SBIN0001234'

    response = admin_client.post('/api/suppliers/', {'name': 'good bank'}, format='json')
    assert response.status_code == 409


def test_supplier_documents_upload_and_list(admin_client, supplier):
    url = f'/api/suppliers/{supplier.id}/documents/'
    files = [
        SimpleUploadedFile('invoice.pdf', b'%PDF-1.4 invoice', content_type='application/pdf'),
        SimpleUploadedFile('gst.pdf', b'%PDF-1.4 gst', content_type='application/pdf'),
    ]
    response = admin_client.post(url, {'files': files}, format='multipart')
    assert response.status_code == 201

    documents = admin_client.get(url).json()['data']
    assert len(documents) == 2
    for document in documents:
        assert document['public_id'].startswith('SupplierDocs/')
        assert default_storage.exists(document['public_id'])


def test_supplier_documents_need_a_file(admin_client, supplier):
    response = admin_client.post(f'/api/suppliers/{supplier.id}/documents/', {}, format='multipart')
    assert response.status_code == 400
    assert not SupplierDocument.objects.exists()


def test_supplier_delete_removes_documents(django_capture_on_commit_callbacks, supplier):
    document, = records.add_supplier_documents(
        supplier, [SimpleUploadedFile('contract.pdf', b'%PDF-1.4 contract')]
    )
    with django_capture_on_commit_callbacks(execute=True):
        records.delete_supplier(supplier.id)

    assert not SupplierDocument.objects.exists()
    assert not default_storage.exists(document.public_id)
