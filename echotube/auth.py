# echotube/auth.py
from functools import wraps
from flask import request, current_app, g
import logging

from .errors import Unauthenticated, Forbidden
from .policy import Action, decide
from .tokens import verify_token

logger = logging.getLogger(__name__)


def services():
    """create_app 에서 등록한 저장소 모음"""
    return current_app.extensions['echotube']


def bearer_token():
    """Authorization: Bearer <token> 헤더에서 토큰 추출"""
    auth_header = request.headers.get('Authorization', '')
    scheme, _, token = auth_header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        raise Unauthenticated('Authentication token required')
    return token.strip()


def load_actor():
    """토큰 검증 후 현재 계정을 다시 조회 (만료 여부는 매 요청 확인)"""
    claims = verify_token(
        bearer_token(),
        current_app.config['JWT_SECRET'],
        algorithm=current_app.config['JWT_ALGORITHM']
    )
    return services().accounts.get_active(claims['sub'])


def authorize(action, owner_id=None):
    """정책 확인 - 거부 시 Forbidden"""
    actor = g.actor
    decision = decide(actor['role'], actor['id'], owner_id, action)
    if not decision:
        logger.info(f"권한 거부: {actor['username']} ({actor['role']}) {Action(action).value} → {decision.reason}")
        raise Forbidden(f"Permission denied: {decision.reason}")
    return decision


def token_required(f):
    """JWT 인증 데코레이터 - g.actor 설정"""
    @wraps(f)
    def decorated(*args, **kwargs):
        g.actor = load_actor()
        return f(*args, **kwargs)
    return decorated


def permission_required(action):
    """인증 + 소유자와 무관한 동작 권한 확인"""
    def decorator(f):
        @wraps(f)
        @token_required
        def decorated(*args, **kwargs):
            authorize(action)
            return f(*args, **kwargs)
        return decorated
    return decorator


def resource_permission(action, repository_name, id_arg='video_id'):
    """인증 + 리소스 소유자 기반 권한 확인

    리소스를 조회해 소유자를 확인한 뒤 handler 에 resource 인자로 전달한다.
    """
    def decorator(f):
        @wraps(f)
        @token_required
        def decorated(*args, **kwargs):
            repository = getattr(services(), repository_name)
            resource = repository.get(kwargs[id_arg])
            authorize(action, resource.get('createdBy'))
            return f(*args, resource=resource, **kwargs)
        return decorated
    return decorator
