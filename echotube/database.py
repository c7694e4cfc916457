# echotube/database.py

import firebase_admin
from firebase_admin import credentials, firestore
import logging
import re

from .config import firebase_service_account

logger = logging.getLogger(__name__)

# 컬렉션 이름
ACCOUNTS = 'accounts'
VIDEOS = 'videos'
CONFIGS = 'configs'

# Firestore batch 한 번에 허용되는 최대 쓰기 수
BATCH_LIMIT = 500

# "__name__" 형태의 id 는 Firestore 예약어
RESERVED_ID = re.compile(r'^__.*__$')
MAX_ID_BYTES = 1500


def init_firestore(credentials_path=''):
    """Firebase Admin 초기화 후 Firestore 클라이언트 반환"""
    try:
        if not firebase_admin._apps:
            service_account = firebase_service_account()
            if credentials_path:
                cred = credentials.Certificate(credentials_path)
            elif service_account:
                cred = credentials.Certificate(service_account)
            else:
                cred = credentials.ApplicationDefault()
            firebase_admin.initialize_app(cred)

        db = firestore.client()
        logger.info("✅ Firestore 초기화 완료")
        return db

    except Exception as e:
        logger.error(f"❌ Firestore 초기화 실패: {e}")
        raise


def is_valid_document_id(value):
    """Firestore 문서 id 로 쓸 수 있는 문자열인지 확인"""
    if not isinstance(value, str) or not value.strip():
        return False
    if '/' in value or value in ('.', '..') or RESERVED_ID.match(value):
        return False
    return len(value.encode('utf-8')) <= MAX_ID_BYTES


def snapshot_to_dict(snapshot):
    """문서 스냅샷을 id 가 포함된 dict 로 변환"""
    data = snapshot.to_dict() or {}
    data['id'] = snapshot.id
    return data


def ping(db):
    """Firestore 연결 확인"""
    try:
        db.collection(ACCOUNTS).limit(1).get()
        return True
    except Exception as e:
        logger.warning(f"Firestore 상태 확인 실패: {e}")
        return False
