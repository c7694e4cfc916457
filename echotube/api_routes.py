# echotube/api_routes.py
from flask import Blueprint, request, jsonify, current_app, g
from datetime import timedelta
import logging

from .auth import services, token_required, permission_required, resource_permission
from .database import ping
from .errors import InvalidCredentials
from .policy import Action, listing_owner
from .tokens import issue_token
from .utils import require_json_object, isoformat, now_iso

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)


def json_body():
    return require_json_object(request.get_json(silent=True))


# ── 인증 ──
@api_bp.route('/auth/login', methods=['POST'])
def login():
    """로그인 - 토큰과 사용자 정보 반환"""
    data = json_body()
    username = data.get('username', '')

    try:
        account = services().accounts.authenticate(username, data.get('password', ''))
    except InvalidCredentials:
        logger.info(f"로그인 실패: {username!r}")
        raise

    token, expires_at = issue_token(
        account,
        current_app.config['JWT_SECRET'],
        expires_in=timedelta(days=current_app.config['JWT_EXPIRES_DAYS']),
        algorithm=current_app.config['JWT_ALGORITHM']
    )
    logger.info(f"로그인 성공: {account['username']} ({account['role']})")

    return jsonify({
        'token': token,
        'expiresAt': isoformat(expires_at),
        'user': {
            'id': account['id'],
            'username': account['username'],
            'role': account['role'],
            'expiryDate': account.get('expiryDate')
        }
    }), 200


@api_bp.route('/auth/verify', methods=['GET'])
@token_required
def verify():
    """토큰 확인 - 현재 사용자 정보"""
    return jsonify({'user': g.actor}), 200


# ── 계정 관리 (admin) ──
@api_bp.route('/users', methods=['GET'])
@permission_required(Action.MANAGE_ACCOUNTS)
def list_users():
    return jsonify(services().accounts.list()), 200


@api_bp.route('/users', methods=['POST'])
@permission_required(Action.MANAGE_ACCOUNTS)
def create_user():
    """계정 생성"""
    data = json_body()
    account = services().accounts.create(
        data.get('username'),
        data.get('password'),
        role=data.get('role'),
        expiry_date=data.get('expiryDate')
    )
    return jsonify({'message': 'User created', 'userId': account['id'], 'user': account}), 201


@api_bp.route('/users/<user_id>', methods=['PUT'])
@permission_required(Action.MANAGE_ACCOUNTS)
def update_user(user_id):
    account = services().accounts.update(user_id, json_body())
    return jsonify({'message': 'User updated', 'user': account}), 200


@api_bp.route('/users/<user_id>', methods=['DELETE'])
@permission_required(Action.MANAGE_ACCOUNTS)
def delete_user(user_id):
    services().accounts.delete(user_id)
    return jsonify({'message': 'User deleted'}), 200


# ── 영상 ──
@api_bp.route('/videos', methods=['GET'])
@permission_required(Action.READ)
def list_videos():
    """영상 목록 (author 는 본인 영상만)"""
    owner_id = listing_owner(g.actor['role'], g.actor['id'])
    return jsonify(services().videos.list(owner_id=owner_id)), 200


@api_bp.route('/videos/<video_id>', methods=['GET'])
@resource_permission(Action.READ, 'videos')
def get_video(video_id, resource):
    return jsonify(resource), 200


@api_bp.route('/videos', methods=['POST'])
@permission_required(Action.CREATE)
def create_video():
    video = services().videos.create(g.actor['id'], json_body())
    return jsonify(video), 201


@api_bp.route('/videos/<video_id>', methods=['PUT'])
@resource_permission(Action.UPDATE, 'videos')
def update_video(video_id, resource):
    video = services().videos.update(video_id, json_body())
    return jsonify(video), 200


@api_bp.route('/videos/<video_id>', methods=['DELETE'])
@resource_permission(Action.DELETE, 'videos')
def delete_video(video_id, resource):
    services().videos.delete(video_id)
    return jsonify({'message': 'Video deleted'}), 200


@api_bp.route('/videos/<video_id>/checkin', methods=['POST'])
@permission_required(Action.CHECK_IN)
def check_in(video_id):
    """학습 체크인 기록 추가"""
    data = json_body()
    record = services().videos.append_check_in(video_id, step=data.get('step'), user_id=g.actor['id'])
    return jsonify({'message': 'Checked in', 'record': record}), 201


@api_bp.route('/videos/<video_id>/checkins', methods=['GET'])
@resource_permission(Action.READ, 'videos')
def list_check_ins(video_id, resource):
    """체크인 기록과 고유 날짜 수 (?mine=true 이면 본인 기록만)"""
    mine = request.args.get('mine', '').lower() in ('1', 'true', 'yes')
    summary = services().videos.check_in_summary(video_id, user_id=g.actor['id'] if mine else None)
    return jsonify(summary), 200


# ── 설정 ──
@api_bp.route('/config/<key>', methods=['GET'])
@permission_required(Action.READ)
def get_config(key):
    return jsonify(services().configs.get_value(key)), 200


@api_bp.route('/config', methods=['POST'])
@permission_required(Action.CONFIGURE)
def set_config():
    data = json_body()
    services().configs.set_value(data.get('key'), data.get('value'), actor_id=g.actor['id'])
    return jsonify({'message': 'Config saved'}), 200


# ── 백업 (admin) ──
@api_bp.route('/backup/export', methods=['GET'])
@permission_required(Action.BACKUP)
def export_backup():
    return jsonify(services().backup.export()), 200


@api_bp.route('/backup/import', methods=['POST'])
@permission_required(Action.BACKUP)
def import_backup():
    """백업 복원 (영상/설정 전체 교체)"""
    restored = services().backup.import_snapshot(request.get_json(silent=True))
    logger.info(f"백업 복원 요청자: {g.actor['username']}")
    return jsonify({'message': 'Backup restored', 'restored': restored}), 200


# ── 헬스체크 ──
@api_bp.route('/health', methods=['GET'])
def health_check():
    """서비스 상태 확인"""
    connected = ping(services().db)
    body = {
        'status': 'ok' if connected else 'degraded',
        'message': 'EchoTube API is running',
        'firestore': 'connected' if connected else 'disconnected',
        'timestamp': now_iso()
    }
    return jsonify(body), 200 if connected else 503
