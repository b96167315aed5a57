import datetime
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from consultancy_app import ledger
from consultancy_app.exceptions import InvalidAmountError, NotFoundError
from consultancy_app.ledger import HandoverEntry, parse_amount
from consultancy_app.models import PaymentHandover, StudentPayment

pytestmark = pytest.mark.django_db

TODAY = datetime.date(2024, 4, 10)


def hand_over(*entries):
    return ledger.create_handovers(
        [HandoverEntry(payment_id, amount) for payment_id, amount in entries],
        handed_over_to='Accounts', handover_date=TODAY, created_by='Root',
    )


def ledger_total(payment):
    return PaymentHandover.objects.filter(payment=payment).aggregate(total=Sum('amount'))['total']


@pytest.mark.parametrize('value', ['0', '-5', 'abc', '', '10.005', 'NaN', 'Infinity', None, '1e30', '10000000000'])
def test_parse_amount_rejects(value):
    with pytest.raises(InvalidAmountError):
        parse_amount(value, 'bad amount')


def test_parse_amount_accepts_two_decimals():
    assert parse_amount('2500.50', 'bad amount') == Decimal('2500.50')
    assert parse_amount(2000, 'bad amount') == Decimal('2000')


def test_partial_handovers_until_settled(make_payment):
    payment = make_payment('5000')

    hand_over((payment.id, '3000'))
    payment.refresh_from_db()
    assert payment.handover_amount == Decimal('3000')
    assert payment.remaining_amount == Decimal('2000')

    with pytest.raises(InvalidAmountError) as excinfo:
        hand_over((payment.id, '2500'))
    assert excinfo.value.message == f'Cannot hand over more than the available amount for payment ID {payment.id}'
    payment.refresh_from_db()
    assert payment.handover_amount == Decimal('3000')

    hand_over((payment.id, '2000'))
    payment.refresh_from_db()
    assert payment.remaining_amount == Decimal('0')
    assert ledger_total(payment) == payment.handover_amount
    assert list(ledger.list_payments_by_staff('Clerk')) == []


@pytest.mark.parametrize('total, first, second', [
    ('1000.30', '500.10', '500.20'),
    ('0.30', '0.10', '0.20'),
])
def test_fractional_handovers_settle_exactly(make_payment, total, first, second):
    payment = make_payment(total)

    hand_over((payment.id, first))
    worklist = list(ledger.list_payments_by_staff('Clerk'))
    assert worklist[0].remaining == Decimal(second)

    hand_over((payment.id, second))
    payment.refresh_from_db()
    assert payment.handover_amount == Decimal(total)
    assert payment.remaining_amount == Decimal('0')
    assert ledger_total(payment) == Decimal(total)
    assert list(ledger.list_payments_by_staff('Clerk')) == []

    with pytest.raises(InvalidAmountError):
        hand_over((payment.id, '0.01'))


def test_handover_row_records_collector(make_payment):
    payment = make_payment('1200', approved_by='Meera')
    handover, = hand_over((payment.id, '200'))

    assert handover.received_by == 'Meera'
    assert handover.handed_over_to == 'Accounts'
    assert handover.student_id == payment.student_id
    assert handover.verified and handover.verified_by == 'Root'


def test_sequential_overallocation_is_rejected(make_payment):
    payment = make_payment('5000')
    hand_over((payment.id, '3000'))

    with pytest.raises(InvalidAmountError):
        hand_over((payment.id, '3000'))

    payment.refresh_from_db()
    assert payment.handover_amount == Decimal('3000')
    assert PaymentHandover.objects.filter(payment=payment).count() == 1


@pytest.mark.django_db(transaction=True)
def test_stale_read_does_not_overwrite_committed_handover(make_payment):
    payment = make_payment('5000')
    stale = StudentPayment.objects.get(pk=payment.pk)
    hand_over((payment.id, '3000'))

    # 0 + 2500 fits, but the stored total moved to 3000 since the read
    assert not ledger.add_to_handover_total(stale, Decimal('2500'), 'Root', timezone.now())

    payment.refresh_from_db()
    assert payment.handover_amount == Decimal('3000')
    assert ledger_total(payment) == Decimal('3000')


def test_batch_is_all_or_nothing(make_payment):
    first = make_payment('1000')
    second = make_payment('500')

    with pytest.raises(InvalidAmountError) as excinfo:
        hand_over((first.id, '400'), (second.id, '600'))
    assert excinfo.value.record_id == second.id

    first.refresh_from_db()
    assert first.handover_amount == Decimal('0')
    assert not PaymentHandover.objects.exists()


def test_missing_payment_rolls_back_batch(make_payment):
    payment = make_payment('1000')
    with pytest.raises(NotFoundError) as excinfo:
        hand_over((payment.id, '100'), (987654, '100'))
    assert excinfo.value.message == 'Payment with ID 987654 not found'

    payment.refresh_from_db()
    assert payment.handover_amount == Decimal('0')


def test_invalid_amount_names_payment(make_payment):
    payment = make_payment('1000')
    with pytest.raises(InvalidAmountError) as excinfo:
        hand_over((payment.id, '-1'))
    assert excinfo.value.message == f'Invalid handover amount for payment ID {payment.id}'


def test_empty_batch_is_rejected():
    with pytest.raises(InvalidAmountError):
        hand_over()


def test_worklist_lists_only_open_payments_of_staff(make_payment):
    open_payment = make_payment('700')
    make_payment('300', handover_amount='300')
    make_payment('900', approved_by='Someone Else')

    payments = list(ledger.list_payments_by_staff('Clerk'))
    assert [p.id for p in payments] == [open_payment.id]
    assert payments[0].remaining == Decimal('700')


def test_approved_by_staff_is_distinct(make_payment):
    make_payment('100', approved_by='Meera')
    make_payment('100', approved_by='Meera')
    make_payment('100', approved_by='Anil')
    make_payment('100', approved_by='')
    assert ledger.approved_by_staff() == ['Anil', 'Meera']


def test_handover_endpoint(admin_client, make_payment):
    payment = make_payment('5000')
    body = {
        'payments': [{'id': payment.id, 'handover_amount': 3000}],
        'handed_over_to': 'Accounts',
        'handover_date': '2024-04-10',
        'remarks': 'Evening cash',
    }
    response = admin_client.post('/api/payment-handovers/', body, format='json')
    assert response.status_code == 201
    assert response.json()['data'][0]['amount'] == '3000.00'

    body['payments'][0]['handover_amount'] = 2500
    response = admin_client.post('/api/payment-handovers/', body, format='json')
    assert response.status_code == 400
    assert response.json()['code'] == 'invalid_amount'

    worklist = admin_client.get('/api/payments-by-staff/Clerk/').json()['data']
    assert worklist[0]['remaining'] == '2000.00'

    check = admin_client.get(f'/api/payment-handovers/check/{payment.id}/').json()['data']
    assert check == {'has_handover': True}


def test_handover_endpoint_rejects_oversized_amount(admin_client, make_payment):
    payment = make_payment('5000')
    response = admin_client.post('/api/payment-handovers/', {
        'payments': [{'id': payment.id, 'handover_amount': '1e30'}],
        'handed_over_to': 'Accounts',
        'handover_date': '2024-04-10',
    }, format='json')
    assert response.status_code == 400
    assert response.json()['error'] == f'Invalid handover amount for payment ID {payment.id}'


def test_verify_handover(admin_client, make_payment):
    handover, = hand_over((make_payment('100').id, '100'))
    response = admin_client.put(f'/api/payment-handovers/{handover.id}/verify/',
                                {'verified_by': 'Auditor'}, format='json')
    assert response.status_code == 200
    handover.refresh_from_db()
    assert handover.verified_by == 'Auditor'

    assert admin_client.put('/api/payment-handovers/999999/verify/', {}, format='json').status_code == 404


def test_export_is_an_excel_workbook(admin_client, make_payment):
    hand_over((make_payment('100').id, '50'))
    response = admin_client.get('/api/payment-handovers/export/')
    assert response.status_code == 200
    assert response['Content-Type'] == 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    assert response.content[:2] == b'PK'


def test_handover_amount_cannot_exceed_amount_at_database_level(make_payment):
    payment = make_payment('100')
    with pytest.raises(IntegrityError), transaction.atomic():
        StudentPayment.objects.filter(pk=payment.pk).update(handover_amount=Decimal('150'))
