# echotube/app.py (메인 애플리케이션)
from flask import Flask
from flask_cors import CORS
import logging

from . import config
from .accounts import AccountStore, bcrypt
from .api_routes import api_bp
from .backup import BackupService
from .database import init_firestore
from .errors import register_error_handlers
from .repository import VideoRepository, ConfigRepository

# 로깅 설정
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class Services:
    """요청 처리기가 공유하는 저장소 모음 (상태 없음)"""

    def __init__(self, db):
        self.db = db
        self.accounts = AccountStore(db)
        self.videos = VideoRepository(db)
        self.configs = ConfigRepository(db)
        self.backup = BackupService(self.accounts, self.videos, self.configs)


def create_app(overrides=None, db=None):
    """Flask 앱 생성

    overrides 는 환경변수 기반 기본 설정보다 우선한다.
    db 를 넘기지 않으면 Firestore 클라이언트를 초기화한다.
    """
    app = Flask(__name__)
    app.config.update(config.as_dict())
    if overrides:
        app.config.update(overrides)
    app.config['JWT_SECRET'] = config.resolve_jwt_secret(app.config.get('JWT_SECRET'))

    bcrypt.init_app(app)
    CORS(
        app,
        resources={r'/api/*': {'origins': app.config['ALLOWED_ORIGINS']}},
        supports_credentials=True
    )

    @app.after_request
    def after_request(response):
        """보안 헤더 추가"""
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-XSS-Protection'] = '1; mode=block'
        return response

    register_error_handlers(app)
    app.register_blueprint(api_bp, url_prefix='/api')

    if db is None:
        db = init_firestore(app.config.get('FIREBASE_CREDENTIALS', ''))
    app.extensions['echotube'] = Services(db)

    if app.config.get('BOOTSTRAP_ADMIN'):
        initialize_admin(app)

    logger.info("✅ 앱 초기화 완료")
    return app


def initialize_admin(app):
    """기본 관리자 계정 확인 (프로세스 시작 시 한 번)"""
    try:
        with app.app_context():
            app.extensions['echotube'].accounts.ensure_default_admin(
                app.config['DEFAULT_ADMIN_USERNAME'],
                app.config['DEFAULT_ADMIN_PASSWORD']
            )
        return True
    except Exception as e:
        logger.error(f"❌ 관리자 계정 초기화 실패: {e}")
        return False


def main():
    app = create_app()
    logger.info(f"🚀 서버 실행 포트: {config.PORT}")
    app.run(host="0.0.0.0", port=config.PORT, debug=False)


if __name__ == "__main__":
    main()
