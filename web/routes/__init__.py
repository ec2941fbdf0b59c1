"""
API 라우트 패키지

각 기능별 라우터 모듈:
- health: 헬스 체크
- fee_structures: 수수료 체계 / 할인 유형
- fees: 수강 수수료 계정 및 원장 항목
- history: 계정 변경 이력
"""
