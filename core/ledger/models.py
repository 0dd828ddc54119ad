"""
Ledger 레코드 모델

Account / Transaction / Category / Payee 데이터 구조와
생성 요청(Draft), 부분 수정 요청(Patch) 정의.

금액은 반드시 Decimal, 시각은 UTC aware datetime 사용.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from core.constants import Limits
from core.domain.errors import InvalidAmount, ValidationError
from core.types import AccountType, TransactionStatus, TransactionType


def utc_now() -> datetime:
    """현재 UTC 시각"""
    return datetime.now(timezone.utc)


def to_decimal(value: Any) -> Decimal:
    """금액 값을 Decimal로 변환
    
    float는 str을 거쳐 변환 (이진 부동소수점 오차 방지).
    
    Raises:
        InvalidAmount: 숫자로 해석할 수 없는 경우
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise InvalidAmount(value)
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise InvalidAmount(value) from e


def parse_datetime(value: Any) -> datetime:
    """ISO 문자열 또는 datetime을 UTC aware datetime으로 변환
    
    naive datetime은 UTC로 간주.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value)
        except ValueError as e:
            raise ValidationError(f"Invalid date: {value}") from e
    else:
        raise ValidationError(f"Invalid date: {value!r}")
    
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _parse_enum(enum_cls: type, value: Any, label: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError as e:
        valid = [m.value for m in enum_cls]
        raise ValidationError(f"Invalid {label}: '{value}'. 유효한 값: {valid}") from e


def _optional_dt(value: Any) -> datetime | None:
    return parse_datetime(value) if value else None


# =========================================================================
# Account
# =========================================================================


@dataclass(frozen=True)
class Account:
    """계좌
    
    balance는 Balance Engine만 변경한다.
    opening_balance는 생성 시점 값으로 고정 (잔액 정합 검증용).
    """
    
    account_id: str
    user_id: str
    name: str
    account_type: AccountType
    balance: Decimal
    opening_balance: Decimal
    currency: str
    is_active: bool = True
    credit_limit: Decimal | None = None  # 표시용 (한도 미적용)
    description: str | None = None
    notes: str | None = None
    version: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None
    
    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Account":
        """DB 행에서 생성"""
        return cls(
            account_id=row["account_id"],
            user_id=row["user_id"],
            name=row["name"],
            account_type=AccountType(row["account_type"]),
            balance=Decimal(str(row["balance"])),
            opening_balance=Decimal(str(row["opening_balance"])),
            currency=row["currency"],
            is_active=bool(row["is_active"]),
            credit_limit=(
                Decimal(str(row["credit_limit"]))
                if row.get("credit_limit") is not None
                else None
            ),
            description=row.get("description"),
            notes=row.get("notes"),
            version=row["version"],
            created_at=_optional_dt(row.get("created_at")),
            updated_at=_optional_dt(row.get("updated_at")),
        )
    
    def to_dict(self) -> dict[str, Any]:
        """API 응답용 dict (금액은 문자열)"""
        return {
            "account_id": self.account_id,
            "name": self.name,
            "account_type": self.account_type.value,
            "balance": str(self.balance),
            "opening_balance": str(self.opening_balance),
            "currency": self.currency,
            "is_active": self.is_active,
            "credit_limit": str(self.credit_limit) if self.credit_limit is not None else None,
            "description": self.description,
            "notes": self.notes,
            "version": self.version,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


def _check_account_name(value: Any) -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationError("Account name is required")
    if len(name) > Limits.ACCOUNT_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Account name cannot exceed {Limits.ACCOUNT_NAME_MAX_LENGTH} characters"
        )
    return name


def _check_text(value: str | None, limit: int, label: str) -> str | None:
    if value and len(value) > limit:
        raise ValidationError(f"{label} cannot exceed {limit} characters")
    return value


def _optional_amount(value: Any) -> Decimal | None:
    if value is None:
        return None
    amount = to_decimal(value)
    if not amount.is_finite():
        raise InvalidAmount(amount)
    return amount


@dataclass(frozen=True)
class AccountDraft:
    """계좌 생성 요청"""
    
    name: str
    account_type: AccountType
    currency: str
    opening_balance: Decimal = Decimal("0")
    credit_limit: Decimal | None = None
    description: str | None = None
    notes: str | None = None
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AccountDraft":
        """API 입력 dict에서 생성

        통화 코드는 대문자로 정규화. 초기 잔액은 음수 허용 (신용/대출 계좌).

        Raises:
            ValidationError: 이름/통화/길이 오류
            InvalidAmount: 금액 해석 불가
        """
        currency = (data.get("currency") or "").strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationError(f"Invalid currency code: {data.get('currency')!r}")

        return cls(
            name=_check_account_name(data.get("name")),
            account_type=_parse_enum(
                AccountType, data.get("account_type") or AccountType.OTHER, "account type"
            ),
            currency=currency,
            opening_balance=_optional_amount(data.get("opening_balance") or "0"),
            credit_limit=_optional_amount(data.get("credit_limit")),
            description=_check_text(
                data.get("description"), Limits.DESCRIPTION_MAX_LENGTH, "Description"
            ),
            notes=_check_text(data.get("notes"), Limits.NOTES_MAX_LENGTH, "Notes"),
            is_active=bool(data.get("is_active", True)),
        )


# 계좌 수정 가능한 필드 (balance/opening_balance/currency는 변경 불가)
ACCOUNT_UPDATABLE_FIELDS: frozenset[str] = frozenset({
    "name",
    "description",
    "notes",
    "credit_limit",
    "is_active",
})


@dataclass(frozen=True)
class AccountUpdate:
    """계좌 정보 수정 요청
    
    잔액은 거래로만 바뀌므로 여기서 다루지 않는다.
    is_active=False로 계좌를 해지해도 거래 내역과 잔액은 그대로 남는다.
    
    Attributes:
        changes: {컬럼: 정규화된 값}
    """
    
    changes: dict[str, Any] = field(default_factory=dict)
    
    def __post_init__(self) -> None:
        unknown = set(self.changes) - ACCOUNT_UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {sorted(unknown)}")
    
    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AccountUpdate":
        """API 입력 dict에서 생성
        
        Raises:
            ValidationError: 수정 불가 필드, 이름/길이 오류
            InvalidAmount: credit_limit 해석 불가
        """
        changes: dict[str, Any] = {}
        for name, value in data.items():
            if name == "name":
                changes[name] = _check_account_name(value)
            elif name == "is_active":
                if not isinstance(value, bool):
                    raise ValidationError("is_active must be true or false")
                changes[name] = value
            elif name == "credit_limit":
                changes[name] = _optional_amount(value)
            elif name == "description":
                changes[name] = _check_text(value, Limits.DESCRIPTION_MAX_LENGTH, "Description")
            elif name == "notes":
                changes[name] = _check_text(value, Limits.NOTES_MAX_LENGTH, "Notes")
            else:
                changes[name] = value
        return cls(changes=changes)
    
    def apply_to(self, account: Account, now: datetime) -> Account:
        """변경 사항을 병합한 새 Account (version +1)"""
        return replace(
            account,
            version=account.version + 1,
            updated_at=now,
            **self.changes,
        )


# =========================================================================
# Category / Payee (소유권 확인용)
# =========================================================================


@dataclass(frozen=True)
class Category:
    category_id: str
    user_id: str
    name: str


@dataclass(frozen=True)
class Payee:
    payee_id: str
    user_id: str
    name: str


# =========================================================================
# Transaction
# =========================================================================


@dataclass(frozen=True)
class Transaction:
    """거래 레코드
    
    Attributes:
        transaction_id: 거래 ID
        user_id: 소유 사용자
        transaction_type: deposit / withdrawal / transfer
        amount: 거래 금액 (항상 양수)
        account_id: 출발(대상) 계좌
        to_account_id: 도착 계좌 (transfer일 때만)
        status: reconciled / unreconciled (잔액 영향 없음)
        date: 거래 일시 (UTC)
        version: 낙관적 락 버전 (수정마다 +1)
    """
    
    transaction_id: str
    user_id: str
    transaction_type: TransactionType
    amount: Decimal
    account_id: str
    date: datetime
    to_account_id: str | None = None
    status: TransactionStatus = TransactionStatus.UNRECONCILED
    category_id: str | None = None
    payee_id: str | None = None
    notes: str | None = None
    version: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None
    
    @property
    def account_ids(self) -> tuple[str, ...]:
        """잔액에 영향을 받는 계좌 ID 목록"""
        if self.to_account_id:
            return (self.account_id, self.to_account_id)
        return (self.account_id,)
    
    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Transaction":
        """DB 행에서 생성"""
        return cls(
            transaction_id=row["transaction_id"],
            user_id=row["user_id"],
            transaction_type=TransactionType(row["transaction_type"]),
            amount=Decimal(str(row["amount"])),
            account_id=row["account_id"],
            to_account_id=row.get("to_account_id"),
            status=TransactionStatus(row["status"]),
            date=parse_datetime(row["date"]),
            category_id=row.get("category_id"),
            payee_id=row.get("payee_id"),
            notes=row.get("notes"),
            version=row["version"],
            created_at=_optional_dt(row.get("created_at")),
            updated_at=_optional_dt(row.get("updated_at")),
        )
    
    def to_dict(self) -> dict[str, Any]:
        """API 응답용 dict (금액은 문자열)"""
        return {
            "transaction_id": self.transaction_id,
            "transaction_type": self.transaction_type.value,
            "amount": str(self.amount),
            "account_id": self.account_id,
            "to_account_id": self.to_account_id,
            "status": self.status.value,
            "date": self.date.isoformat(),
            "category_id": self.category_id,
            "payee_id": self.payee_id,
            "notes": self.notes,
            "version": self.version,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class TransactionDraft:
    """거래 생성 요청 (ID 할당 전)"""
    
    transaction_type: TransactionType
    amount: Decimal
    account_id: str
    to_account_id: str | None = None
    status: TransactionStatus = TransactionStatus.UNRECONCILED
    date: datetime | None = None
    category_id: str | None = None
    payee_id: str | None = None
    notes: str | None = None
    
    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransactionDraft":
        """API 입력 dict에서 생성 (타입 변환 포함)"""
        try:
            raw_type = data["transaction_type"]
            raw_amount = data["amount"]
            account_id = data["account_id"]
        except KeyError as e:
            raise ValidationError(f"Missing field: {e.args[0]}") from e
        
        raw_status = data.get("status") or TransactionStatus.UNRECONCILED
        raw_date = data.get("date")
        
        return cls(
            transaction_type=_parse_enum(TransactionType, raw_type, "transaction type"),
            amount=to_decimal(raw_amount),
            account_id=account_id,
            to_account_id=data.get("to_account_id"),
            status=_parse_enum(TransactionStatus, raw_status, "status"),
            date=parse_datetime(raw_date) if raw_date else None,
            category_id=data.get("category_id"),
            payee_id=data.get("payee_id"),
            notes=data.get("notes"),
        )
    
    def to_transaction(
        self,
        transaction_id: str,
        user_id: str,
        now: datetime,
    ) -> Transaction:
        """ID/소유자를 할당하여 Transaction 생성"""
        return Transaction(
            transaction_id=transaction_id,
            user_id=user_id,
            transaction_type=self.transaction_type,
            amount=self.amount,
            account_id=self.account_id,
            to_account_id=self.to_account_id,
            status=self.status,
            date=self.date or now,
            category_id=self.category_id,
            payee_id=self.payee_id,
            notes=self.notes,
            version=1,
            created_at=now,
            updated_at=now,
        )


# 부분 수정 가능한 필드
PATCHABLE_FIELDS: frozenset[str] = frozenset({
    "transaction_type",
    "amount",
    "account_id",
    "to_account_id",
    "status",
    "date",
    "category_id",
    "payee_id",
    "notes",
})

# None으로 명시하면 값을 비우는 필드
CLEARABLE_FIELDS: frozenset[str] = frozenset({
    "to_account_id",
    "category_id",
    "payee_id",
    "notes",
})


@dataclass(frozen=True)
class TransactionPatch:
    """거래 부분 수정 요청
    
    changes에 포함된 키만 변경. 값이 None이면 해당 필드를 비움
    (CLEARABLE_FIELDS만 허용).
    
    transfer → deposit/withdrawal 전환 시 to_account_id: None을
    명시해야 한다 (암묵적으로 버리지 않음).
    
    Attributes:
        changes: {필드: 새 값}
        expected_version: 지정 시 현재 버전과 다르면 ConflictError
    """
    
    changes: dict[str, Any] = field(default_factory=dict)
    expected_version: int | None = None
    
    def __post_init__(self) -> None:
        unknown = set(self.changes) - PATCHABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown fields: {sorted(unknown)}")
        
        for name, value in self.changes.items():
            if value is None and name not in CLEARABLE_FIELDS:
                raise ValidationError(f"Field cannot be cleared: {name}")
    
    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransactionPatch":
        """API 입력 dict에서 생성 (expected_version 분리)"""
        changes = dict(data)
        expected_version = changes.pop("expected_version", None)
        return cls(changes=changes, expected_version=expected_version)
    
    def apply_to(self, tx: Transaction, now: datetime) -> Transaction:
        """기존 거래에 변경 사항을 병합한 새 Transaction 반환
        
        버전은 증가시키지 않음 (저장 시 Engine이 결정).
        """
        values: dict[str, Any] = {}
        for name, value in self.changes.items():
            if value is None:
                values[name] = None
            elif name == "transaction_type":
                values[name] = _parse_enum(TransactionType, value, "transaction type")
            elif name == "status":
                values[name] = _parse_enum(TransactionStatus, value, "status")
            elif name == "amount":
                values[name] = to_decimal(value)
            elif name == "date":
                values[name] = parse_datetime(value)
            else:
                values[name] = value
        
        return replace(tx, updated_at=now, **values)
