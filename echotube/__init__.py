# echotube/__init__.py
"""
EchoTube Backend

영상 기반 영어 단어 학습 서비스의 REST API 패키지입니다.

주요 모듈:
- app: Flask 앱 생성 (create_app)
- config: 환경변수 설정
- database: Firestore 연동
- errors: 오류 분류와 JSON 오류 응답
- accounts: 계정 저장소 (bcrypt 해시, 로그인, 기본 관리자)
- tokens: JWT 발급/검증
- policy: 역할/소유자 기반 권한 결정
- auth: 요청 인증 데코레이터
- repository: 영상/설정 문서 CRUD, 체크인 기록
- backup: 백업 내보내기/복원
- utils: 공통 유틸리티 함수
- api_routes: REST API 엔드포인트
"""

__version__ = "1.0.0"
__description__ = "Video-based vocabulary learning backend"
