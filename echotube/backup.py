# echotube/backup.py
"""
백업 / 복원

export: 영상, 계정(비밀번호 해시 제외), 설정을 하나의 스냅샷으로 묶는다.
import: 컬렉션별로 전체 삭제 후 스냅샷 문서를 삽입한다. 계정은 복원하지 않는다.

복원은 컬렉션 사이에 트랜잭션이 없고, 삭제와 삽입 사이에 다른 요청이
빈 컬렉션을 볼 수 있다. 점검 시간에 관리자가 실행하는 작업으로 취급한다.
"""
import logging

from .accounts import public_account
from .config import BACKUP_VERSION
from .database import is_valid_document_id
from .errors import MalformedSnapshot
from .repository import document_id
from .utils import now_iso

logger = logging.getLogger(__name__)

RESTORED_COLLECTIONS = ('videos', 'configs')
SKIPPED_COLLECTIONS = ('accounts', 'users')


class BackupService:

    def __init__(self, accounts, videos, configs):
        self.accounts = accounts
        self.videos = videos
        self.configs = configs

    def export(self):
        """전체 스냅샷 생성"""
        videos = self.videos.all()
        accounts = [public_account(account) for account in self.accounts.list()]
        configs = self.configs.all()
        logger.info(f"📦 백업 내보내기: videos={len(videos)} accounts={len(accounts)} configs={len(configs)}")
        return {
            'version': BACKUP_VERSION,
            'timestamp': now_iso(),
            'data': {
                'videos': videos,
                'accounts': accounts,
                'configs': configs
            }
        }

    @staticmethod
    def validate(snapshot):
        """스냅샷 구조 검증 - 삭제 전에 모두 확인한다"""
        if not isinstance(snapshot, dict):
            raise MalformedSnapshot('Snapshot must be a JSON object')

        version = snapshot.get('version')
        if version is not None and str(version) != BACKUP_VERSION:
            raise MalformedSnapshot(f"Unsupported snapshot version: {version}")

        data = snapshot.get('data')
        if not isinstance(data, dict):
            raise MalformedSnapshot('Snapshot is missing the "data" object')

        for name in RESTORED_COLLECTIONS:
            if name not in data or data[name] is None:
                continue
            documents = data[name]
            if not isinstance(documents, list) or not all(isinstance(doc, dict) for doc in documents):
                raise MalformedSnapshot(f'"{name}" must be a list of objects')

        for video in data.get('videos') or []:
            doc_id = document_id(video)
            if doc_id and not is_valid_document_id(doc_id):
                raise MalformedSnapshot(f"Invalid video id: {doc_id!r}")

        for entry in data.get('configs') or []:
            key = entry.get('key')
            if not is_valid_document_id(key.strip() if isinstance(key, str) else key):
                raise MalformedSnapshot('Every config entry needs a valid "key"')

        return data

    def import_snapshot(self, snapshot):
        """스냅샷 복원 (파괴적 교체) - 컬렉션별 복원 건수 반환"""
        data = self.validate(snapshot)
        skipped = [name for name in SKIPPED_COLLECTIONS if name in data]
        if skipped:
            logger.info(f"계정 데이터는 복원하지 않습니다: {skipped}")

        logger.warning("⚠️ 백업 복원 시작: 기존 영상/설정 데이터를 교체합니다")
        restored = {}
        if data.get('videos') is not None:
            restored['videos'] = self.videos.replace_all(data['videos'])
        if data.get('configs') is not None:
            restored['configs'] = self.configs.replace_all(data['configs'])

        logger.info(f"✅ 백업 복원 완료: {restored}")
        return restored
