# echotube/repository.py

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions
import logging

from .config import VIDEO_SOURCES
from .database import VIDEOS, CONFIGS, BATCH_LIMIT, snapshot_to_dict, is_valid_document_id
from .errors import NotFound, MalformedInput
from .utils import now_iso, new_id, count_distinct_days

logger = logging.getLogger(__name__)

# 클라이언트가 직접 쓸 수 없는 필드
MANAGED_FIELDS = ('id', 'createdBy', 'createdAt', 'updatedAt')


def document_id(document):
    """스냅샷 문서의 id (id, 없으면 레거시 _id)"""
    return document.get('id') or document.get('_id')


def write_in_batches(db, operations):
    """(kind, ref, data) 작업들을 BATCH_LIMIT 단위로 나누어 커밋"""
    batch = db.batch()
    pending = 0
    for kind, ref, data in operations:
        if kind == 'delete':
            batch.delete(ref)
        else:
            batch.set(ref, data)
        pending += 1
        if pending == BATCH_LIMIT:
            batch.commit()
            batch = db.batch()
            pending = 0
    if pending:
        batch.commit()


class DocumentRepository:
    """소유자(createdBy)가 있는 문서 컬렉션 CRUD"""

    managed_fields = MANAGED_FIELDS
    not_found_message = 'Resource not found'

    def __init__(self, db, collection_name):
        self.db = db
        self.collection_name = collection_name
        self.collection = db.collection(collection_name)

    def clean_payload(self, payload):
        """관리 필드 제거 (하위 클래스에서 검증 추가)"""
        return {key: value for key, value in payload.items() if key not in self.managed_fields}

    def validate_new(self, data):
        return data

    def create(self, owner_id, payload):
        data = self.validate_new(self.clean_payload(payload))
        timestamp = now_iso()
        data.update({
            'createdBy': str(owner_id),
            'createdAt': timestamp,
            'updatedAt': timestamp
        })
        doc_ref = self.collection.document()
        doc_ref.set(data)
        logger.info(f"{self.collection_name} 문서 생성: {doc_ref.id} (owner={owner_id})")

        data['id'] = doc_ref.id
        return data

    def get(self, doc_id):
        doc = self.collection.document(str(doc_id)).get()
        if not doc.exists:
            raise NotFound(self.not_found_message)
        return snapshot_to_dict(doc)

    def list(self, owner_id=None):
        """최신순 목록 (owner_id 지정 시 해당 소유자 문서만)"""
        query = self.collection
        if owner_id is not None:
            query = query.where('createdBy', '==', str(owner_id))
        documents = [snapshot_to_dict(doc) for doc in query.stream()]
        # 정렬은 메모리에서 (owner 필터 + order_by 복합 인덱스 불필요)
        documents.sort(key=lambda item: item.get('createdAt') or '', reverse=True)
        return documents

    def update(self, doc_id, patch):
        """merge-patch: 전달된 필드만 덮어쓴다"""
        current = self.get(doc_id)
        changes = self.validate_patch(self.clean_payload(patch))
        changes['updatedAt'] = now_iso()
        self.collection.document(str(doc_id)).update(changes)
        logger.info(f"{self.collection_name} 문서 수정: {doc_id}")

        current.update(changes)
        return current

    def validate_patch(self, changes):
        return changes

    def delete(self, doc_id):
        doc_ref = self.collection.document(str(doc_id))
        if not doc_ref.get().exists:
            raise NotFound(self.not_found_message)
        doc_ref.delete()
        logger.info(f"{self.collection_name} 문서 삭제: {doc_id}")

    # ── 백업용 ──
    def all(self):
        return [snapshot_to_dict(doc) for doc in self.collection.stream()]

    def replace_all(self, documents):
        """컬렉션 전체 삭제 후 documents 로 교체 (트랜잭션 아님)

        삽입할 문서 참조를 모두 만든 뒤에 삭제를 시작한다.
        """
        inserts = []
        for document in documents:
            doc_id = document_id(document)
            if doc_id and not is_valid_document_id(doc_id):
                raise MalformedInput(f"Invalid document id: {doc_id!r}")
            data = {key: value for key, value in document.items() if key not in ('id', '_id')}
            doc_ref = self.collection.document(doc_id) if doc_id else self.collection.document()
            inserts.append(('set', doc_ref, data))

        deletes = [('delete', doc.reference, None) for doc in self.collection.stream()]
        write_in_batches(self.db, deletes)
        write_in_batches(self.db, inserts)
        return len(inserts)


class VideoRepository(DocumentRepository):
    """videos 컬렉션 - 키워드 카드와 체크인 기록을 내장"""

    managed_fields = MANAGED_FIELDS + ('checkInRecords',)
    not_found_message = 'Video not found'

    def __init__(self, db):
        super().__init__(db, VIDEOS)

    def _check_fields(self, data):
        if 'title' in data and (not isinstance(data['title'], str) or not data['title'].strip()):
            raise MalformedInput('title must be a non-empty string')
        if 'videoSource' in data and data['videoSource'] not in VIDEO_SOURCES:
            raise MalformedInput(f"videoSource must be one of: {', '.join(VIDEO_SOURCES)}")
        keywords = data.get('keywords')
        if keywords is not None:
            if not isinstance(keywords, list) or not all(isinstance(card, dict) for card in keywords):
                raise MalformedInput('keywords must be a list of objects')
        return data

    def validate_new(self, data):
        if 'title' not in data:
            raise MalformedInput('title is required')
        data = self._check_fields(data)
        data.setdefault('videoSource', 'youtube')
        data.setdefault('keywords', [])
        data['checkInRecords'] = []
        return data

    def validate_patch(self, changes):
        return self._check_fields(changes)

    def append_check_in(self, video_id, step=None, user_id=None):
        """체크인 기록 추가 (같은 날 여러 번이어도 모두 저장)"""
        self.get(video_id)

        if step is not None and (isinstance(step, bool) or not isinstance(step, int)):
            raise MalformedInput('step must be an integer')

        record = {
            'id': new_id(),
            'date': now_iso(),
            'step': step,
            'userId': str(user_id) if user_id is not None else None
        }
        # 레코드마다 고유 id 가 있어 ArrayUnion 이 중복 제거하지 않는다
        try:
            self.collection.document(str(video_id)).update({'checkInRecords': firestore.ArrayUnion([record])})
        except google_exceptions.NotFound:
            # 조회 후 갱신 전에 삭제된 경우
            raise NotFound(self.not_found_message)
        logger.info(f"체크인 기록: video={video_id} user={user_id} step={step}")
        return record

    def check_in_summary(self, video_id, user_id=None):
        """체크인 기록과 고유 날짜 수"""
        records = self.get(video_id).get('checkInRecords') or []
        if user_id is not None:
            records = [record for record in records if record.get('userId') == str(user_id)]
        return {
            'records': records,
            'distinctDays': count_distinct_days(records)
        }


class ConfigRepository:
    """configs 컬렉션 - 문서 id 가 설정 키"""

    def __init__(self, db):
        self.db = db
        self.collection = db.collection(CONFIGS)

    @staticmethod
    def _check_key(key):
        key = key.strip() if isinstance(key, str) else key
        if not is_valid_document_id(key):
            raise MalformedInput('key must be a non-empty string without "/" (and not __reserved__)')
        return key

    def get_value(self, key):
        doc = self.collection.document(self._check_key(key)).get()
        if not doc.exists:
            return None
        return (doc.to_dict() or {}).get('value')

    def set_value(self, key, value, actor_id=None):
        """설정 저장 (없으면 생성)"""
        key = self._check_key(key)
        self.collection.document(key).set({
            'key': key,
            'value': value,
            'updatedAt': now_iso(),
            'updatedBy': str(actor_id) if actor_id is not None else None
        })
        logger.info(f"설정 저장: {key}")

    def all(self):
        return [snapshot_to_dict(doc) for doc in self.collection.stream()]

    def replace_all(self, entries):
        """설정 전체 교체 - key 가 문서 id"""
        inserts = []
        for entry in entries:
            data = dict(entry)
            data.pop('id', None)
            data.pop('_id', None)
            key = self._check_key(data.get('key'))
            data['key'] = key
            inserts.append(('set', self.collection.document(key), data))

        deletes = [('delete', doc.reference, None) for doc in self.collection.stream()]
        write_in_batches(self.db, deletes)
        write_in_batches(self.db, inserts)
        return len(inserts)
