import datetime
from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from consultancy_app import auth_gate
from consultancy_app.models import (
    Page, Permission, Role, RoleName, Student, StudentPayment, Supplier, SupplierExpense, User,
)

PASSWORD = 'secret-pass-1'


@pytest.fixture(autouse=True)
def fresh_matrix(settings, tmp_path):
    settings.PERMISSION_MATRIX_CACHE_SECONDS = 0
    settings.MEDIA_ROOT = str(tmp_path)
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def roles(db):
    return {name: Role.objects.create(name=name) for name in RoleName.values}


def make_user(role, email, name='Staff'):
    user = User(username=email, email=email, name=name, role=role)
    user.set_password(PASSWORD)
    user.save()
    return user


@pytest.fixture
def administrator(roles):
    return make_user(roles[RoleName.ADMINISTRATOR], 'root@example.com', 'Root')


@pytest.fixture
def registered(roles):
    return make_user(roles[RoleName.REGISTERED], 'clerk@example.com', 'Clerk')


def client_for(user):
    result = auth_gate.login(user.email, PASSWORD)
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {result.access}')
    client.login_result = result
    return client


@pytest.fixture
def admin_client(administrator):
    return client_for(administrator)


@pytest.fixture
def clerk_client(registered):
    return client_for(registered)


@pytest.fixture
def make_page(db):
    def _make(url, name=None):
        return Page.objects.create(page_name=name or url.strip('/'), page_url=url)
    return _make


@pytest.fixture
def grant():
    def _grant(role, page, create=False, read=False, update=False, delete=False):
        permission, _ = Permission.objects.update_or_create(
            role=role, page=page,
            defaults={'can_create': create, 'can_read': read, 'can_update': update, 'can_delete': delete},
        )
        return permission
    return _grant


@pytest.fixture
def student(db):
    return Student.objects.create(first_name='Asha', last_name='Rao', roll_number='R-001')


@pytest.fixture
def make_payment(student):
    def _make(amount, approved_by='Clerk', handover_amount=Decimal('0')):
        return StudentPayment.objects.create(
            student=student,
            payment_mode='cash',
            amount=Decimal(amount),
            handover_amount=Decimal(handover_amount),
            received_date=datetime.date(2024, 4, 1),
            approved_by=approved_by,
        )
    return _make


@pytest.fixture
def supplier(db):
    return Supplier.objects.create(name='Paper Mart', phone_no='9876543210')


@pytest.fixture
def expense(supplier):
    return SupplierExpense.objects.create(supplier=supplier, reason='Stationery', amount=Decimal('1000.00'))
