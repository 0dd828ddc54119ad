"""
API 라우트 패키지

각 기능별 라우터 모듈:
- health: 헬스 체크
- transactions: 거래 생성/수정/삭제
- accounts: 계좌 및 잔액 정합 검증
- dashboard: 대시보드 요약
"""
