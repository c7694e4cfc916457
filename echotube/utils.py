# echotube/utils.py

from datetime import datetime, date, time, timezone
import uuid
import logging

from .errors import MalformedInput

logger = logging.getLogger(__name__)


def utcnow():
    """현재 UTC 시각 (timezone-aware)"""
    return datetime.now(timezone.utc)


def isoformat(value):
    """datetime 을 UTC ISO-8601 문자열로 변환"""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def now_iso():
    return isoformat(utcnow())


def new_id():
    return uuid.uuid4().hex


def parse_datetime(value, field='date'):
    """ISO 날짜/일시 문자열 파싱

    'YYYY-MM-DD' 만 주어지면 그 날 00:00 UTC 로 해석한다.
    빈 값은 None.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            if len(text) == 10:
                parsed = datetime.combine(date.fromisoformat(text), time.min)
            else:
                parsed = datetime.fromisoformat(text)
        except ValueError:
            raise MalformedInput(f"Invalid {field}: {value}")
    else:
        raise MalformedInput(f"Invalid {field}: {value}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_past(timestamp, now=None):
    """timestamp 가 now 보다 엄격히 이전인지 확인"""
    moment = parse_datetime(timestamp)
    if moment is None:
        return False
    return (now or utcnow()) > moment


def count_distinct_days(records):
    """체크인 기록을 UTC 달력 날짜 기준으로 중복 제거하여 일수 계산"""
    days = set()
    for record in records or []:
        try:
            moment = parse_datetime(record.get('date'))
        except MalformedInput:
            logger.warning(f"잘못된 체크인 날짜 무시: {record.get('date')!r}")
            continue
        if moment is not None:
            days.add(moment.date())
    return len(days)


def require_json_object(payload):
    """요청 본문이 JSON 객체인지 확인"""
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise MalformedInput('Request body must be a JSON object')
    return payload
