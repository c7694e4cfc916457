# echotube/errors.py
from flask import jsonify
from werkzeug.exceptions import HTTPException
from google.api_core import exceptions as google_exceptions
import logging

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """API 오류 기본 클래스 - kind/status_code/message 를 가진다"""
    kind = 'Error'
    status_code = 500
    message = 'Internal server error'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self):
        return {'error': self.message, 'kind': self.kind}


# ── 인증 ──
class Unauthenticated(ApiError):
    kind = 'Unauthenticated'
    status_code = 401
    message = 'Authentication required'


class InvalidToken(Unauthenticated):
    message = 'Invalid token'


class ExpiredToken(Unauthenticated):
    message = 'Token has expired'


class InvalidCredentials(Unauthenticated):
    message = 'Invalid username or password'


class UnknownUsername(InvalidCredentials):
    pass


class BadPassword(InvalidCredentials):
    pass


class AccountExpired(ApiError):
    kind = 'Expired'
    status_code = 403
    message = 'Account has expired'


# ── 권한 ──
class Forbidden(ApiError):
    kind = 'Forbidden'
    status_code = 403
    message = 'Permission denied'


# ── 리소스 ──
class NotFound(ApiError):
    kind = 'NotFound'
    status_code = 404
    message = 'Resource not found'


class Conflict(ApiError):
    kind = 'Conflict'
    status_code = 409
    message = 'Resource already exists'


class DuplicateUsername(Conflict):
    message = 'Username already exists'


class MalformedInput(ApiError):
    kind = 'MalformedInput'
    status_code = 400
    message = 'Malformed request'


class MalformedSnapshot(MalformedInput):
    message = 'Malformed backup snapshot'


class UpstreamFailure(ApiError):
    kind = 'UpstreamFailure'
    status_code = 503
    message = 'Service temporarily unavailable'


def register_error_handlers(app):
    """모든 오류를 {"error", "kind"} JSON 으로 응답"""

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        kinds = {400: 'MalformedInput', 404: 'NotFound', 405: 'MethodNotAllowed', 413: 'MalformedInput'}
        body = {'error': error.description, 'kind': kinds.get(error.code, 'HttpError')}
        return jsonify(body), error.code

    @app.errorhandler(google_exceptions.InvalidArgument)
    def handle_rejected_document(error):
        # Firestore 가 거부한 문서 (중첩 배열 등) 는 요청 오류
        logger.warning(f"Firestore 문서 거부: {error}")
        rejected = MalformedInput('Document contains values the store cannot save')
        return jsonify(rejected.to_dict()), rejected.status_code

    @app.errorhandler(google_exceptions.GoogleAPIError)
    def handle_store_error(error):
        logger.error(f"❌ Firestore 요청 실패: {error}")
        failure = UpstreamFailure()
        return jsonify(failure.to_dict()), failure.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception(f"❌ 처리되지 않은 오류: {error}")
        return jsonify(ApiError().to_dict()), 500
