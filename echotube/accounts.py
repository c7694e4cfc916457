# echotube/accounts.py
"""
계정 저장소

비밀번호는 bcrypt 해시로만 저장되며, 외부로 나가는 모든 계정 표현은
public_account() 를 거쳐 passwordHash 가 제거된다.
"""
from flask_bcrypt import Bcrypt
import logging

from .config import ROLES, ROLE_ALIASES, DEFAULT_ROLE
from .database import ACCOUNTS, snapshot_to_dict
from .errors import (
    UnknownUsername, BadPassword, AccountExpired, InvalidToken,
    DuplicateUsername, NotFound, MalformedInput
)
from .utils import now_iso, isoformat, parse_datetime, is_past

logger = logging.getLogger(__name__)

bcrypt = Bcrypt()

SECRET_FIELDS = ('passwordHash',)


def public_account(account):
    """비밀번호 해시를 제외한 계정 정보"""
    return {key: value for key, value in account.items() if key not in SECRET_FIELDS}


def normalize_role(role):
    """역할 검증 (student → user)"""
    if role is None or role == '':
        return DEFAULT_ROLE
    if not isinstance(role, str):
        raise MalformedInput(f"Invalid role: {role!r}")
    role = ROLE_ALIASES.get(role.strip().lower(), role.strip().lower())
    if role not in ROLES:
        raise MalformedInput(f"Invalid role: {role}")
    return role


def normalize_expiry(value):
    return isoformat(parse_datetime(value, field='expiryDate'))


class AccountStore:
    """accounts 컬렉션 위의 인증/계정 관리"""

    def __init__(self, db, hasher=None):
        self.db = db
        self.collection = db.collection(ACCOUNTS)
        self.hasher = hasher or bcrypt
        self._dummy_hash = None

    # ── 내부 헬퍼 ──
    def _hash(self, password):
        return self.hasher.generate_password_hash(password).decode('utf-8')

    def _find_by_username(self, username):
        for doc in self.collection.where('username', '==', username).limit(1).stream():
            return snapshot_to_dict(doc)
        return None

    def _burn_password_check(self, password):
        """존재하지 않는 사용자도 같은 비용의 해시 비교를 수행"""
        if self._dummy_hash is None:
            self._dummy_hash = self._hash('echotube-dummy-password')
        self.hasher.check_password_hash(self._dummy_hash, password)

    # ── 인증 ──
    def authenticate(self, username, password):
        """사용자명/비밀번호 확인 후 계정 반환"""
        username = username.strip() if isinstance(username, str) else ''
        password = password if isinstance(password, str) else ''

        account = self._find_by_username(username) if username else None
        if account is None:
            self._burn_password_check(password)
            raise UnknownUsername()

        if not self.hasher.check_password_hash(account.get('passwordHash', ''), password):
            raise BadPassword()

        if is_past(account.get('expiryDate')):
            raise AccountExpired()

        return public_account(account)

    def get_active(self, account_id):
        """토큰 소유 계정을 다시 조회하고 만료 여부를 매 요청마다 확인"""
        doc = self.collection.document(str(account_id)).get()
        if not doc.exists:
            raise InvalidToken('Account no longer exists')
        account = snapshot_to_dict(doc)
        if is_past(account.get('expiryDate')):
            raise AccountExpired()
        return public_account(account)

    # ── 계정 관리 ──
    def create(self, username, password, role=None, expiry_date=None):
        """계정 생성 - 비밀번호는 해시로만 저장"""
        username = username.strip() if isinstance(username, str) else ''
        if not username:
            raise MalformedInput('username is required')
        if not isinstance(password, str) or not password:
            raise MalformedInput('password is required')

        role = normalize_role(role)
        expiry = normalize_expiry(expiry_date)

        if self._find_by_username(username) is not None:
            raise DuplicateUsername()

        timestamp = now_iso()
        doc_ref = self.collection.document()
        data = {
            'username': username,
            'passwordHash': self._hash(password),
            'role': role,
            'expiryDate': expiry,
            'createdAt': timestamp,
            'updatedAt': timestamp
        }
        doc_ref.set(data)
        logger.info(f"계정 생성: {username} ({role})")

        data['id'] = doc_ref.id
        return public_account(data)

    def get(self, account_id):
        doc = self.collection.document(str(account_id)).get()
        if not doc.exists:
            raise NotFound('User not found')
        return public_account(snapshot_to_dict(doc))

    def list(self):
        accounts = [public_account(snapshot_to_dict(doc)) for doc in self.collection.stream()]
        accounts.sort(key=lambda account: account.get('createdAt') or '')
        return accounts

    def update(self, account_id, fields):
        """role / expiryDate / password 만 반영 (나머지 필드는 무시)"""
        doc_ref = self.collection.document(str(account_id))
        doc = doc_ref.get()
        if not doc.exists:
            raise NotFound('User not found')

        changes = {}
        if 'role' in fields and fields['role'] not in (None, ''):
            changes['role'] = normalize_role(fields['role'])
        if 'expiryDate' in fields:
            changes['expiryDate'] = normalize_expiry(fields['expiryDate'])
        password = fields.get('password')
        if password:
            if not isinstance(password, str):
                raise MalformedInput('password must be a string')
            changes['passwordHash'] = self._hash(password)

        changed = sorted(changes)
        changes['updatedAt'] = now_iso()
        doc_ref.update(changes)
        logger.info(f"계정 수정: {account_id} {changed}")

        account = snapshot_to_dict(doc)
        account.update(changes)
        return public_account(account)

    def delete(self, account_id):
        doc_ref = self.collection.document(str(account_id))
        if not doc_ref.get().exists:
            raise NotFound('User not found')
        doc_ref.delete()
        logger.info(f"계정 삭제: {account_id}")

    # ── 초기화 ──
    def ensure_default_admin(self, username, password):
        """관리자 계정이 하나도 없으면 기본 관리자 생성 (여러 번 호출해도 안전)"""
        for _ in self.collection.where('role', '==', 'admin').limit(1).stream():
            return None

        existing = self._find_by_username(username)
        if existing is not None:
            logger.warning(f"⚠️ 관리자 계정이 없지만 '{username}' 사용자명이 이미 사용 중입니다. 기본 관리자 생성을 건너뜁니다.")
            return None

        account = self.create(username, password, role='admin')
        logger.info(f"✅ 기본 관리자 계정 생성: {username}")
        return account
