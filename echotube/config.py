# echotube/config.py

import os
import secrets
import logging

logger = logging.getLogger(__name__)


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# 인증 설정
JWT_SECRET = os.environ.get('JWT_SECRET', '')
JWT_ALGORITHM = 'HS256'
JWT_EXPIRES_DAYS = int(os.environ.get('JWT_EXPIRES_DAYS', '7'))
BCRYPT_LOG_ROUNDS = int(os.environ.get('BCRYPT_LOG_ROUNDS', '12'))
# 72바이트 초과 비밀번호는 SHA-256 으로 먼저 줄인 뒤 해시 (Flask-Bcrypt)
BCRYPT_HANDLE_LONG_PASSWORDS = True

# 기본 관리자 계정 (최초 실행 시 생성)
BOOTSTRAP_ADMIN = _env_bool('BOOTSTRAP_ADMIN', True)
DEFAULT_ADMIN_USERNAME = os.environ.get('DEFAULT_ADMIN_USERNAME', 'admin')
DEFAULT_ADMIN_PASSWORD = os.environ.get('DEFAULT_ADMIN_PASSWORD', 'admin123')

# 서버 설정
PORT = int(os.environ.get('PORT', '3001'))
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get('ALLOWED_ORIGINS', 'http://localhost:3000').split(',')
    if origin.strip()
]
MAX_CONTENT_LENGTH = 50 * 1024 * 1024  # 50MB (backup import bodies)

# Firestore 설정
FIREBASE_CREDENTIALS = os.environ.get('FIREBASE_CREDENTIALS', '')
FIREBASE_ENV_KEYS = (
    'type', 'project_id', 'private_key_id', 'private_key', 'client_email',
    'client_id', 'auth_uri', 'token_uri',
    'auth_provider_x509_cert_url', 'client_x509_cert_url',
)

# 지원 역할
ROLES = ('admin', 'author', 'user', 'viewer')
ROLE_ALIASES = {'student': 'user'}
DEFAULT_ROLE = 'user'

VIDEO_SOURCES = ('youtube', 'bilibili')
BACKUP_VERSION = '1.0'


def firebase_service_account():
    """환경변수에서 서비스 계정 정보 구성 (없으면 None)"""
    if not os.environ.get('project_id') or not os.environ.get('private_key'):
        return None
    creds = {key: os.environ.get(key, '') for key in FIREBASE_ENV_KEYS}
    creds['type'] = creds['type'] or 'service_account'
    creds['private_key'] = creds['private_key'].replace('\\n', '\n')
    return creds


def resolve_jwt_secret(configured):
    """JWT 서명 키 결정 (미설정 시 프로세스별 임의 키 생성)"""
    if configured:
        return configured
    logger.warning(
        "⚠️ JWT_SECRET 미설정: 임의 서명 키를 생성합니다. "
        "재시작하면 기존 토큰은 모두 무효가 됩니다."
    )
    return secrets.token_urlsafe(48)


def as_dict():
    """Flask app.config에 복사할 기본 설정"""
    return {
        'JWT_SECRET': JWT_SECRET,
        'JWT_ALGORITHM': JWT_ALGORITHM,
        'JWT_EXPIRES_DAYS': JWT_EXPIRES_DAYS,
        'BCRYPT_LOG_ROUNDS': BCRYPT_LOG_ROUNDS,
        'BCRYPT_HANDLE_LONG_PASSWORDS': BCRYPT_HANDLE_LONG_PASSWORDS,
        'BOOTSTRAP_ADMIN': BOOTSTRAP_ADMIN,
        'DEFAULT_ADMIN_USERNAME': DEFAULT_ADMIN_USERNAME,
        'DEFAULT_ADMIN_PASSWORD': DEFAULT_ADMIN_PASSWORD,
        'ALLOWED_ORIGINS': list(ALLOWED_ORIGINS),
        'MAX_CONTENT_LENGTH': MAX_CONTENT_LENGTH,
        'FIREBASE_CREDENTIALS': FIREBASE_CREDENTIALS,
    }
