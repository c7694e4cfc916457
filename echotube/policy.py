# echotube/policy.py
"""
권한 정책

(역할, 요청자 id, 리소스 소유자 id, 동작) 만으로 허용 여부를 결정한다.
HTTP 나 저장소에 대해서는 전혀 알지 못하므로 단독으로 테스트할 수 있다.

규칙 (우선순위 순):
1. admin 은 모든 동작 허용
2. update/delete 는 author 본인 소유 리소스만 허용
3. create 는 admin/author 만 허용 (user, viewer 는 읽기 전용)
4. read 는 인증된 모든 역할 허용, check_in 은 viewer 제외
5. 계정 관리, 백업, 설정 저장은 admin 전용
"""
from enum import Enum

ADMIN = 'admin'
AUTHOR = 'author'
USER = 'user'
VIEWER = 'viewer'

KNOWN_ROLES = frozenset((ADMIN, AUTHOR, USER, VIEWER))


class Action(str, Enum):
    CREATE = 'create'
    READ = 'read'
    UPDATE = 'update'
    DELETE = 'delete'
    CHECK_IN = 'check_in'
    CONFIGURE = 'configure'
    MANAGE_ACCOUNTS = 'manage_accounts'
    BACKUP = 'backup'


ADMIN_ONLY = frozenset((Action.CONFIGURE, Action.MANAGE_ACCOUNTS, Action.BACKUP))
MUTATIONS = frozenset((Action.UPDATE, Action.DELETE))


class Decision:
    """정책 결정 결과 (허용 시 truthy)"""

    __slots__ = ('allowed', 'reason')

    def __init__(self, allowed, reason=''):
        self.allowed = allowed
        self.reason = reason

    def __bool__(self):
        return self.allowed

    def __eq__(self, other):
        if isinstance(other, Decision):
            return (self.allowed, self.reason) == (other.allowed, other.reason)
        return NotImplemented

    def __repr__(self):
        return f"Decision(allowed={self.allowed!r}, reason={self.reason!r})"


ALLOW = Decision(True)


def deny(reason):
    return Decision(False, reason)


def decide(actor_role, actor_id, resource_owner_id, action):
    """요청자가 리소스에 대해 action 을 수행할 수 있는지 결정"""
    action = Action(action)

    if actor_role not in KNOWN_ROLES:
        return deny('unknown role')

    if actor_role == ADMIN:
        return ALLOW

    if action in ADMIN_ONLY:
        return deny('admin role required')

    if action in MUTATIONS:
        if actor_role == AUTHOR and actor_id is not None and str(actor_id) == str(resource_owner_id):
            return ALLOW
        return deny('insufficient ownership')

    if action == Action.CREATE:
        if actor_role == AUTHOR:
            return ALLOW
        return deny('role cannot create resources')

    if action == Action.CHECK_IN:
        if actor_role == VIEWER:
            return deny('viewer role is read-only')
        return ALLOW

    # Action.READ
    return ALLOW


def listing_owner(actor_role, actor_id):
    """목록 조회 시 적용할 소유자 필터 (author 는 본인 것만)"""
    if actor_role == AUTHOR:
        return actor_id
    return None
