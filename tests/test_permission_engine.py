import pytest
from django.db import DatabaseError

from consultancy_app import permission_engine
from consultancy_app.models import Permission, RoleName
from consultancy_app.permission_engine import (
    Capabilities, PermissionDraft, PermissionEntry, PermissionMatrix, StageEdit,
    load_matrix, page_path, save_permissions,
)

ADMINISTRATOR, REGISTERED = 1, 2
STUDENT_PAGE, REPORT_PAGE = 10, 11


@pytest.fixture
def matrix():
    return PermissionMatrix(
        roles=[(ADMINISTRATOR, RoleName.ADMINISTRATOR), (REGISTERED, RoleName.REGISTERED)],
        pages=[(STUDENT_PAGE, '/student'), (REPORT_PAGE, '/reports')],
        permissions=[
            (REGISTERED, STUDENT_PAGE, Capabilities(can_read=True, can_update=True)),
            (REGISTERED, REPORT_PAGE, Capabilities()),
        ],
    )


def test_page_path_normalises_segments():
    assert page_path('student') == '/student'
    assert page_path('/student') == '/student'
    assert page_path('') == '/'
    assert page_path(None) == '/'


def test_root_is_always_readable(matrix):
    decision = matrix.resolve(REGISTERED, '/')
    assert decision.granted
    assert decision.capabilities == Capabilities(can_read=True)


def test_administrator_holds_every_flag(matrix):
    decision = matrix.resolve(ADMINISTRATOR, '/anything-at-all')
    assert decision.granted
    assert decision.capabilities == Capabilities.all()


def test_administrator_by_role_name_survives_empty_matrix():
    decision = PermissionMatrix().resolve(99, '/student', role_name=RoleName.ADMINISTRATOR)
    assert decision.granted
    assert decision.reason == 'administrator'


def test_unknown_page_is_denied(matrix):
    decision = matrix.resolve(REGISTERED, '/nowhere')
    assert not decision.granted
    assert decision.reason == 'unknown_page'


def test_missing_row_is_denied(matrix):
    decision = matrix.resolve(3, '/student')
    assert not decision.granted
    assert decision.reason == 'no_permission'


def test_row_without_flags_is_denied(matrix):
    decision = matrix.resolve(REGISTERED, 'reports')
    assert not decision.granted
    assert decision.reason == 'no_flags'


def test_granted_page_returns_row_flags(matrix):
    decision = matrix.resolve(REGISTERED, 'student')
    assert decision.granted
    assert decision.capabilities.allows('can_update')
    assert not decision.capabilities.allows('can_delete')


def test_resolution_is_deterministic(matrix):
    assert matrix.resolve(REGISTERED, '/student') == matrix.resolve(REGISTERED, '/student')


def test_draft_toggles_and_bulk_actions(matrix):
    draft = PermissionDraft(matrix)

    assert draft.stage(StageEdit(REGISTERED, STUDENT_PAGE, 'Add')) == \
        Capabilities(can_create=True, can_read=True, can_update=True)
    assert draft.stage(StageEdit(REGISTERED, STUDENT_PAGE, 'View')) == \
        Capabilities(can_create=True, can_update=True)
    assert draft.stage(StageEdit(REGISTERED, REPORT_PAGE, 'selectall')) == Capabilities.all()
    assert draft.stage(StageEdit(REGISTERED, REPORT_PAGE, 'deselect')) == Capabilities()

    assert sorted(draft.touched) == [(REGISTERED, STUDENT_PAGE), (REGISTERED, REPORT_PAGE)]
    # the snapshot itself is untouched
    assert matrix.grants(REGISTERED, STUDENT_PAGE) == Capabilities(can_read=True, can_update=True)


def test_draft_rejects_unknown_action(matrix):
    with pytest.raises(ValueError):
        PermissionDraft(matrix).stage(StageEdit(REGISTERED, STUDENT_PAGE, 'Approve'))


@pytest.mark.django_db
def test_save_permissions_upserts_idempotently(roles, make_page):
    role = roles[RoleName.REGISTERED]
    page = make_page('/student')
    entry = PermissionEntry(role.id, page.id, Capabilities(can_read=True, can_delete=True))

    save_permissions([entry], actor='Root')
    save_permissions([entry], actor='Root')

    permission = Permission.objects.get(role=role, page=page)
    assert Permission.objects.count() == 1
    assert (permission.can_create, permission.can_read, permission.can_update, permission.can_delete) == \
        (False, True, False, True)
    assert permission.created_by == 'Root'
    assert permission.modify_by == 'Root'


@pytest.mark.django_db
def test_draft_save_writes_only_touched_keys(roles, make_page, grant):
    role = roles[RoleName.REGISTERED]
    student_page = make_page('/student')
    other_page = make_page('/reports')
    grant(role, other_page, read=True)

    draft = PermissionDraft(PermissionMatrix.from_database())
    draft.stage(StageEdit(role.id, student_page.id, 'Edit'))
    draft.save(actor='Root')

    assert Permission.objects.get(role=role, page=student_page).can_update
    untouched = Permission.objects.get(role=role, page=other_page)
    assert untouched.can_read and untouched.modify_by is None
    assert draft.touched == []


@pytest.mark.django_db
def test_load_matrix_reflects_saved_rows(roles, make_page, grant):
    role = roles[RoleName.REGISTERED]
    page = make_page('/student')
    assert not load_matrix().resolve(role.id, '/student').granted

    grant(role, page, read=True)
    assert load_matrix().resolve(role.id, '/student').granted


@pytest.mark.django_db
def test_cached_matrix_is_invalidated_on_change(settings, roles, make_page, grant):
    settings.PERMISSION_MATRIX_CACHE_SECONDS = 60
    role = roles[RoleName.REGISTERED]
    page = make_page('/student')
    assert not load_matrix().resolve(role.id, '/student').granted

    grant(role, page, read=True)
    assert load_matrix().resolve(role.id, '/student').granted


@pytest.mark.django_db
def test_load_matrix_fails_closed(monkeypatch, roles):
    def broken():
        raise DatabaseError('connection lost')

    monkeypatch.setattr(permission_engine.PermissionMatrix, 'from_database', broken)
    matrix = load_matrix()
    assert len(matrix) == 0
    assert not matrix.resolve(roles[RoleName.REGISTERED].id, '/student').granted
