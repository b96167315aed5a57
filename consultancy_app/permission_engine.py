# permission_engine.py
"""
Role x page permission matrix.

The matrix answers one question: may a role enter a page, and which of the
four CRUD capabilities does it hold there.  Snapshots are immutable and
resolution is a pure function of (snapshot, role, path), so the same snapshot
can be shared between requests and cached for a few seconds.

Edits are staged on a PermissionDraft and written with save_permissions(),
which upserts each touched (role, page) key independently.
"""
import logging
from typing import NamedTuple, Optional

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError
from django.utils import timezone

from .models import Page, Permission, Role, RoleName

logger = logging.getLogger(__name__)

MATRIX_CACHE_KEY = 'consultancy_app:permission_matrix'
ROOT_PATH = '/'

FLAGS = ('can_create', 'can_read', 'can_update', 'can_delete')

# UI action names -> matrix flag
ACTION_FLAGS = {
    'Add': 'can_create',
    'View': 'can_read',
    'Edit': 'can_update',
    'Delete': 'can_delete',
}
SELECT_ALL = 'selectall'
DESELECT = 'deselect'
STAGE_ACTIONS = tuple(ACTION_FLAGS) + (SELECT_ALL, DESELECT)


def page_path(segment):
    """Normalise a route or bare segment to the stored page_url form ('/segment')."""
    segment = (segment or '').strip()
    return '/' + segment.lstrip('/')


class Capabilities(NamedTuple):
    can_create: bool = False
    can_read: bool = False
    can_update: bool = False
    can_delete: bool = False

    @classmethod
    def all(cls):
        return cls(True, True, True, True)

    def has_any(self):
        return any(self)

    def allows(self, flag):
        return bool(getattr(self, flag))

    def toggled(self, flag):
        return self._replace(**{flag: not getattr(self, flag)})


class AccessDecision(NamedTuple):
    granted: bool
    capabilities: Capabilities
    # internal only, never sent to clients
    reason: str


class PermissionMatrix:
    """Immutable snapshot of roles, pages and permission rows."""

    def __init__(self, roles=(), pages=(), permissions=()):
        self._role_names = dict(roles)
        self._page_ids = {page_url: page_id for page_id, page_url in pages}
        self._grants = {
            (role_id, page_id): capabilities
            for role_id, page_id, capabilities in permissions
        }

    @classmethod
    def from_database(cls):
        roles = list(Role.objects.values_list('id', 'name'))
        pages = list(Page.objects.values_list('id', 'page_url'))
        permissions = [
            (role_id, page_id, Capabilities(*flags))
            for role_id, page_id, *flags in Permission.objects.values_list('role_id', 'page_id', *FLAGS)
        ]
        return cls(roles, pages, permissions)

    def __len__(self):
        return len(self._grants)

    def is_administrator(self, role_id):
        return self._role_names.get(role_id) == RoleName.ADMINISTRATOR

    def page_id(self, path):
        return self._page_ids.get(page_path(path))

    def grants(self, role_id, page_id):
        return self._grants.get((role_id, page_id), Capabilities())

    def resolve(self, role_id, path, role_name: Optional[str] = None) -> AccessDecision:
        path = page_path(path)
        if path == ROOT_PATH:
            return AccessDecision(True, Capabilities(can_read=True), 'root')

        if role_name == RoleName.ADMINISTRATOR or self.is_administrator(role_id):
            return AccessDecision(True, Capabilities.all(), 'administrator')

        page_id = self._page_ids.get(path)
        if page_id is None:
            return AccessDecision(False, Capabilities(), 'unknown_page')

        capabilities = self._grants.get((role_id, page_id))
        if capabilities is None:
            return AccessDecision(False, Capabilities(), 'no_permission')
        if not capabilities.has_any():
            return AccessDecision(False, capabilities, 'no_flags')

        return AccessDecision(True, capabilities, 'granted')


def load_matrix():
    """
    Current matrix snapshot, served from the cache for
    PERMISSION_MATRIX_CACHE_SECONDS. A database failure yields an empty
    matrix, so every non-administrator request is denied.
    """
    timeout = getattr(settings, 'PERMISSION_MATRIX_CACHE_SECONDS', 5)
    try:
        if timeout:
            return cache.get_or_set(MATRIX_CACHE_KEY, PermissionMatrix.from_database, timeout)
        return PermissionMatrix.from_database()
    except DatabaseError as e:
        logger.error(f"Error loading permission matrix: {str(e)}")
        return PermissionMatrix()


def invalidate_matrix():
    cache.delete(MATRIX_CACHE_KEY)


# ==================== SAVING ====================
class PermissionEntry(NamedTuple):
    role_id: int
    page_id: int
    capabilities: Capabilities


def save_permissions(entries, actor=None):
    """
    Upsert one Permission row per entry.

    Each key is written in its own atomic update_or_create (row locked when it
    exists), so a failure on one key leaves the keys saved before it in place.
    Saving the same entries twice leaves the same flags behind.
    """
    saved = []
    try:
        for entry in entries:
            now = timezone.now()
            flags = entry.capabilities._asdict()
            permission, created = Permission.objects.update_or_create(
                role_id=entry.role_id,
                page_id=entry.page_id,
                defaults={**flags, 'modify_by': actor, 'modify_on': now},
                create_defaults={**flags, 'created_by': actor, 'created_on': now},
            )
            saved.append(permission)
    finally:
        invalidate_matrix()

    logger.info(f"Saved {len(saved)} permission entries by {actor}")
    return saved


class StageEdit(NamedTuple):
    role_id: int
    page_id: int
    action: str


class PermissionDraft:
    """
    Local working copy of the matrix.

    Edits are applied with stage(); nothing is persisted until save(), which
    writes the full flag set of every touched key and nothing else.
    """

    def __init__(self, matrix):
        self._matrix = matrix
        self._staged = {}

    def capabilities(self, role_id, page_id):
        key = (role_id, page_id)
        if key in self._staged:
            return self._staged[key]
        return self._matrix.grants(role_id, page_id)

    def stage(self, edit):
        current = self.capabilities(edit.role_id, edit.page_id)
        if edit.action == SELECT_ALL:
            updated = Capabilities.all()
        elif edit.action == DESELECT:
            updated = Capabilities()
        elif edit.action in ACTION_FLAGS:
            updated = current.toggled(ACTION_FLAGS[edit.action])
        else:
            raise ValueError(f"Unknown permission action: {edit.action}")

        self._staged[(edit.role_id, edit.page_id)] = updated
        return updated

    @property
    def touched(self):
        return list(self._staged)

    def entries(self):
        return [
            PermissionEntry(role_id, page_id, capabilities)
            for (role_id, page_id), capabilities in self._staged.items()
        ]

    def save(self, actor=None):
        saved = save_permissions(self.entries(), actor)
        self._staged.clear()
        return saved
