# echotube/tokens.py
import jwt  # PyJWT
from datetime import timedelta

from .errors import InvalidToken, ExpiredToken
from .utils import utcnow

DEFAULT_TTL = timedelta(days=7)
REQUIRED_CLAIMS = ['sub', 'exp', 'iat']


def issue_token(account, secret, expires_in=DEFAULT_TTL, now=None, algorithm='HS256'):
    """계정 정보로 JWT 발급 - (token, expires_at) 반환"""
    issued_at = now or utcnow()
    expires_at = issued_at + expires_in
    payload = {
        'sub': str(account['id']),
        'username': account['username'],
        'role': account['role'],
        'iat': issued_at,
        'exp': expires_at
    }
    token = jwt.encode(payload, secret, algorithm=algorithm)
    return token, expires_at


def verify_token(token, secret, algorithm='HS256'):
    """JWT 검증 후 claims 반환"""
    if not token:
        raise InvalidToken()
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={'require': REQUIRED_CLAIMS}
        )
    except jwt.ExpiredSignatureError:
        raise ExpiredToken()
    except jwt.InvalidTokenError:
        raise InvalidToken()
