"""
core/types.py 테스트

모든 Enum이 문자열 직렬화 가능한지 확인
"""

import json

import pytest

from core.types import AccountType, TransactionStatus, TransactionType


class TestTransactionType:
    """TransactionType 테스트"""

    def test_values(self) -> None:
        assert [t.value for t in TransactionType] == ["deposit", "withdrawal", "transfer"]

    def test_str_compare(self) -> None:
        """str Enum이므로 문자열과 직접 비교 가능"""
        assert TransactionType.TRANSFER == "transfer"

    def test_json_serializable(self) -> None:
        assert json.dumps({"t": TransactionType.DEPOSIT}) == '{"t": "deposit"}'

    def test_invalid(self) -> None:
        with pytest.raises(ValueError):
            TransactionType("refund")


class TestTransactionStatus:
    """TransactionStatus 테스트"""

    def test_values(self) -> None:
        assert TransactionStatus("reconciled") == TransactionStatus.RECONCILED
        assert TransactionStatus.UNRECONCILED.value == "unreconciled"


class TestAccountType:
    """AccountType 테스트"""

    def test_values(self) -> None:
        assert {t.value for t in AccountType} == {
            "savings", "checking", "credit", "cash",
            "investment", "loan", "demat", "other",
        }
