# route_guard.py
"""
Server-side route guard.

Every guarded API route is mapped to the frontend page that owns it. A request
is allowed when the caller's role may enter that page and, for writes, holds
the CRUD flag matching the HTTP method. Routes missing from the table are
denied for everyone but the Administrator.
"""
import logging

from rest_framework import permissions

from .models import RoleName
from .permission_engine import load_matrix

logger = logging.getLogger(__name__)

DENIED_MESSAGE = 'You do not have access to this page'

# url name -> page_url
ROUTE_PAGES = {
    # user management
    'user-list': '/adduser',
    'user-detail': '/adduser',
    'user-sessions': '/adduser',

    # configuration
    'page-list': '/page-management',
    'page-detail': '/page-management',
    'permission-save': '/assign-page-to-role',
    'permission-stage': '/assign-page-to-role',

    # students
    'student-list': '/student',
    'student-detail': '/student',
    'student-academic-details': '/student',
    'student-latest-academic-details': '/student',
    'student-academic-emi': '/student',
    'student-payment-list': '/managePayment',
    'student-payment-detail': '/managePayment',

    # handovers
    'approved-by': '/paymenthandover',
    'payments-by-staff': '/paymenthandover',
    'handover-list': '/paymenthandover',
    'handover-verify': '/paymenthandover',
    'handover-check': '/paymenthandover',
    'handover-export': '/paymenthandover',

    # suppliers
    'supplier-list': '/managesupplier',
    'supplier-detail': '/managesupplier',
    'supplier-summary': '/managesupplier',
    'supplier-documents': '/managesupplier',
    'supplier-expense-list': '/manageExpense',
    'supplier-expense-detail': '/manageExpense',
    'supplier-expense-toggle-delete': '/manageExpense',
    'supplier-expense-payments': '/manageExpense',
    'expense-payment-list': '/manageExpense',
    'expense-payment-detail': '/manageExpense',
}

METHOD_FLAGS = {
    'POST': 'can_create',
    'PUT': 'can_update',
    'PATCH': 'can_update',
    'DELETE': 'can_delete',
}

# routes whose write does not follow the method convention
ROUTE_FLAGS = {
    'permission-save': 'can_update',
    'permission-stage': 'can_update',
    'supplier-expense-toggle-delete': 'can_delete',
}


def required_flag(url_name, method):
    return ROUTE_FLAGS.get(url_name) or METHOD_FLAGS.get(method)


class HasPagePermission(permissions.BasePermission):
    message = DENIED_MESSAGE

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        matrix = load_matrix()
        role_name = user.role_name
        if role_name == RoleName.ADMINISTRATOR or matrix.is_administrator(user.role_id):
            return True

        match = request.resolver_match
        url_name = match.url_name if match else None
        page_url = ROUTE_PAGES.get(url_name)
        if page_url is None:
            logger.warning(f"Access denied for {user.email}: route {url_name} is not mapped to a page")
            return False

        decision = matrix.resolve(user.role_id, page_url, role_name)
        if not decision.granted:
            logger.warning(f"Access denied for {user.email} on {page_url}: {decision.reason}")
            return False

        flag = required_flag(url_name, request.method)
        if flag and not decision.capabilities.allows(flag):
            logger.warning(f"Access denied for {user.email} on {page_url}: {request.method} needs {flag}")
            return False

        return True
