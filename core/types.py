"""
타입 정의 모듈

Enum 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from enum import Enum


class PaymentStatus(str, Enum):
    """납부 상태

    PENDING/PARTIAL/PAID는 납부 합계에서 파생.
    WAIVED는 관리자 조치로만 설정됨.
    """

    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    WAIVED = "WAIVED"


class LineItemKind(str, Enum):
    """원장 항목 종류"""

    DISCOUNT = "DISCOUNT"
    CHARGE = "CHARGE"
    ARREAR = "ARREAR"
    TRANSACTION = "TRANSACTION"


class HistoryAction(str, Enum):
    """이력 기록 액션"""

    FEE_ASSIGNED = "FEE_ASSIGNED"
    DISCOUNT_ADDED = "DISCOUNT_ADDED"
    DISCOUNT_REMOVED = "DISCOUNT_REMOVED"
    CHARGE_ADDED = "CHARGE_ADDED"
    CHARGE_REMOVED = "CHARGE_REMOVED"
    ARREAR_ADDED = "ARREAR_ADDED"
    ARREAR_REMOVED = "ARREAR_REMOVED"
    TRANSACTION_ADDED = "TRANSACTION_ADDED"
    FEE_UPDATED = "FEE_UPDATED"


class FeeComponentType(str, Enum):
    """수수료 구성 항목 유형"""

    TUITION = "TUITION"
    ADMISSION = "ADMISSION"
    REGISTRATION = "REGISTRATION"
    LIBRARY = "LIBRARY"
    LABORATORY = "LABORATORY"
    SPORTS = "SPORTS"
    TRANSPORT = "TRANSPORT"
    EXAMINATION = "EXAMINATION"
    MISCELLANEOUS = "MISCELLANEOUS"


class FeeStructureStatus(str, Enum):
    """수수료 체계 상태 (삭제는 소프트 삭제)"""

    ACTIVE = "ACTIVE"
    DELETED = "DELETED"


class PaymentMethod(str, Enum):
    """납부 수단"""

    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHEQUE = "CHEQUE"
    CARD = "CARD"
    ONLINE = "ONLINE"
