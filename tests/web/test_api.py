"""
Web API 테스트

httpx AsyncClient + ASGITransport, 임시 SQLite DB.
"""

from pathlib import Path
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.ledger.schema import init_ledger_schema
from core.utils.locks import KeyedLock
from web.app import app
from web.dependencies import get_db_write, get_lease_registry

USER_HEADERS = {"X-User-Id": "user-1"}
OTHER_HEADERS = {"X-User-Id": "user-2"}


@pytest_asyncio.fixture
async def client(tmp_path: Path) -> AsyncGenerator[httpx.AsyncClient, None]:
    """요청마다 새 연결을 여는 테스트 클라이언트"""
    db_path = tmp_path / "api.db"
    async with SQLiteAdapter(db_path) as db:
        await init_ledger_schema(db)
    
    async def _db() -> AsyncGenerator[SQLiteAdapter, None]:
        async with SQLiteAdapter(db_path) as db:
            yield db
    
    leases = KeyedLock()
    app.dependency_overrides[get_db_write] = _db
    app.dependency_overrides[get_lease_registry] = lambda: leases
    
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    
    app.dependency_overrides.clear()


async def _create_account(
    client: httpx.AsyncClient,
    opening_balance: str,
    name: str = "Checking",
    currency: str = "USD",
    headers: dict = USER_HEADERS,
) -> dict:
    response = await client.post(
        "/api/accounts",
        json={
            "name": name,
            "account_type": "checking",
            "currency": currency,
            "opening_balance": opening_balance,
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def _balance(client: httpx.AsyncClient, account_id: str) -> str:
    response = await client.get(f"/api/accounts/{account_id}", headers=USER_HEADERS)
    assert response.status_code == 200
    return response.json()["balance"]


class TestHealth:
    """헬스 체크"""
    
    @pytest.mark.asyncio
    async def test_health(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/health")
        
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["database"] == "ok"


class TestAuthentication:
    """X-User-Id 헤더"""
    
    @pytest.mark.asyncio
    async def test_missing_header(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/accounts")
        
        assert response.status_code == 401
    
    @pytest.mark.asyncio
    async def test_other_user_cannot_see(self, client: httpx.AsyncClient) -> None:
        account = await _create_account(client, "100")
        
        response = await client.get(
            f"/api/accounts/{account['account_id']}", headers=OTHER_HEADERS
        )
        
        assert response.status_code == 404


class TestTransactionsApi:
    """거래 API"""
    
    @pytest.mark.asyncio
    async def test_lifecycle(self, client: httpx.AsyncClient) -> None:
        """생성 → 조회 → 수정 → 삭제, 잔액 반영"""
        a = await _create_account(client, "100", name="A")
        b = await _create_account(client, "50", name="B")
        
        created = await client.post(
            "/api/transactions",
            json={
                "transaction_type": "transfer",
                "amount": "40",
                "account_id": a["account_id"],
                "to_account_id": b["account_id"],
            },
            headers=USER_HEADERS,
        )
        assert created.status_code == 201
        tx = created.json()
        assert tx["version"] == 1
        assert tx["status"] == "unreconciled"
        assert await _balance(client, a["account_id"]) == "60"
        assert await _balance(client, b["account_id"]) == "90"
        
        fetched = await client.get(
            f"/api/transactions/{tx['transaction_id']}", headers=USER_HEADERS
        )
        assert fetched.json() == tx
        
        patched = await client.patch(
            f"/api/transactions/{tx['transaction_id']}",
            json={"transaction_type": "withdrawal", "to_account_id": None},
            headers=USER_HEADERS,
        )
        assert patched.status_code == 200, patched.text
        assert patched.json()["version"] == 2
        assert await _balance(client, a["account_id"]) == "60"
        assert await _balance(client, b["account_id"]) == "50"
        
        deleted = await client.delete(
            f"/api/transactions/{tx['transaction_id']}", headers=USER_HEADERS
        )
        assert deleted.status_code == 200
        assert await _balance(client, a["account_id"]) == "100"
        
        missing = await client.get(
            f"/api/transactions/{tx['transaction_id']}", headers=USER_HEADERS
        )
        assert missing.status_code == 404
    
    @pytest.mark.asyncio
    async def test_put_replaces(self, client: httpx.AsyncClient) -> None:
        """PUT은 생략된 선택 필드를 비움"""
        a = await _create_account(client, "100")
        created = await client.post(
            "/api/transactions",
            json={
                "transaction_type": "deposit",
                "amount": 30,
                "account_id": a["account_id"],
                "notes": "salary",
            },
            headers=USER_HEADERS,
        )
        tx_id = created.json()["transaction_id"]
        
        replaced = await client.put(
            f"/api/transactions/{tx_id}",
            json={
                "transaction_type": "deposit",
                "amount": "50",
                "account_id": a["account_id"],
                "expected_version": 1,
            },
            headers=USER_HEADERS,
        )
        
        assert replaced.status_code == 200, replaced.text
        assert replaced.json()["notes"] is None
        assert replaced.json()["amount"] == "50"
        assert await _balance(client, a["account_id"]) == "150"
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload,error",
        [
            ({"transaction_type": "deposit", "amount": "0"}, "InvalidAmount"),
            ({"transaction_type": "deposit", "amount": "-5"}, "InvalidAmount"),
            ({"transaction_type": "deposit", "amount": "abc"}, "InvalidAmount"),
            ({"transaction_type": "transfer", "amount": "5"}, "InvalidTransfer"),
            ({"transaction_type": "gift", "amount": "5"}, "ValidationError"),
            ({"transaction_type": "deposit", "amount": "5", "notes": "x" * 501}, "ValidationError"),
            ({"transaction_type": "deposit", "amount": "5", "to_account_id": ""}, "InvalidTransfer"),
            ({"transaction_type": "withdrawal", "amount": "5", "to_account_id": ""}, "InvalidTransfer"),
            ({"transaction_type": "deposit", "amount": "5", "category_id": ""}, "ValidationError"),
            ({"transaction_type": "deposit", "amount": "5", "payee_id": ""}, "ValidationError"),
        ],
    )
    async def test_validation_errors(
        self, client: httpx.AsyncClient, payload: dict, error: str
    ) -> None:
        """검증 오류 → 400, 잔액 변화 없음"""
        a = await _create_account(client, "100")
        
        response = await client.post(
            "/api/transactions",
            json={**payload, "account_id": a["account_id"]},
            headers=USER_HEADERS,
        )
        
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == error
        assert await _balance(client, a["account_id"]) == "100"
    
    @pytest.mark.asyncio
    async def test_unknown_account(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/transactions",
            json={"transaction_type": "deposit", "amount": "5", "account_id": "acc-none"},
            headers=USER_HEADERS,
        )
        
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "AccountNotFound"
    
    @pytest.mark.asyncio
    async def test_stale_version(self, client: httpx.AsyncClient) -> None:
        """expected_version 불일치 → 409, 재시도 안내"""
        a = await _create_account(client, "100")
        created = await client.post(
            "/api/transactions",
            json={"transaction_type": "withdrawal", "amount": "10", "account_id": a["account_id"]},
            headers=USER_HEADERS,
        )
        tx_id = created.json()["transaction_id"]
        
        response = await client.patch(
            f"/api/transactions/{tx_id}",
            json={"amount": "20", "expected_version": 5},
            headers=USER_HEADERS,
        )
        
        assert response.status_code == 409
        assert "try again" in response.json()["detail"]["message"]
        assert await _balance(client, a["account_id"]) == "90"


class TestAccountsApi:
    """계좌/대시보드 API"""
    
    @pytest.mark.asyncio
    async def test_reconcile_and_summary(self, client: httpx.AsyncClient) -> None:
        a = await _create_account(client, "100", name="A")
        await _create_account(client, "5000", name="Won", currency="KRW")
        await client.post(
            "/api/transactions",
            json={"transaction_type": "deposit", "amount": "30", "account_id": a["account_id"]},
            headers=USER_HEADERS,
        )
        
        reconcile = await client.get(
            f"/api/accounts/{a['account_id']}/reconcile", headers=USER_HEADERS
        )
        assert reconcile.status_code == 200
        assert reconcile.json()["has_drift"] is False
        assert reconcile.json()["expected_balance"] == "130"
        
        summary = await client.get("/api/dashboard/summary", headers=USER_HEADERS)
        assert summary.status_code == 200
        body = summary.json()
        assert body["totals_by_currency"] == {"KRW": "5000", "USD": "130"}
        assert body["account_count"] == 2
        assert body["transaction_count"] == 1
        
        listed = await client.get("/api/accounts", headers=USER_HEADERS)
        assert [x["name"] for x in listed.json()] == ["A", "Won"]
    
    @pytest.mark.asyncio
    async def test_invalid_account(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/accounts",
            json={"name": "Bad", "currency": "dollars"},
            headers=USER_HEADERS,
        )
        
        assert response.status_code == 400
    
    @pytest.mark.asyncio
    async def test_patch_empty_destination(self, client: httpx.AsyncClient) -> None:
        """입금 거래에 빈 to_account_id 수정 → 400, 잔액 유지"""
        a = await _create_account(client, "100")
        created = await client.post(
            "/api/transactions",
            json={"transaction_type": "deposit", "amount": "10", "account_id": a["account_id"]},
            headers=USER_HEADERS,
        )
        
        response = await client.patch(
            f"/api/transactions/{created.json()['transaction_id']}",
            json={"to_account_id": ""},
            headers=USER_HEADERS,
        )
        
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "InvalidTransfer"
        assert await _balance(client, a["account_id"]) == "110"
    
    @pytest.mark.asyncio
    async def test_update_and_close_account(self, client: httpx.AsyncClient) -> None:
        """계좌 정보 수정/해지: 잔액과 거래 내역은 유지"""
        a = await _create_account(client, "100")
        created = await client.post(
            "/api/transactions",
            json={"transaction_type": "withdrawal", "amount": "25", "account_id": a["account_id"]},
            headers=USER_HEADERS,
        )
        
        response = await client.patch(
            f"/api/accounts/{a['account_id']}",
            json={"name": "Old checking", "credit_limit": "300", "is_active": False},
            headers=USER_HEADERS,
        )
        
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["name"] == "Old checking"
        assert body["credit_limit"] == "300"
        assert body["is_active"] is False
        assert body["balance"] == "75"
        assert body["opening_balance"] == "100"
        
        history = await client.get(
            f"/api/transactions/{created.json()['transaction_id']}", headers=USER_HEADERS
        )
        assert history.status_code == 200
        
        reconcile = await client.get(
            f"/api/accounts/{a['account_id']}/reconcile", headers=USER_HEADERS
        )
        assert reconcile.json()["has_drift"] is False
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [{"balance": "0"}, {"currency": "EUR"}, {"name": ""}, {"is_active": None}],
    )
    async def test_update_account_rejected(
        self, client: httpx.AsyncClient, payload: dict
    ) -> None:
        """수정 불가 필드/잘못된 값 → 400, 계좌 변화 없음"""
        a = await _create_account(client, "100")
        
        response = await client.patch(
            f"/api/accounts/{a['account_id']}", json=payload, headers=USER_HEADERS
        )
        
        assert response.status_code == 400
        after = await client.get(f"/api/accounts/{a['account_id']}", headers=USER_HEADERS)
        assert after.json()["balance"] == "100"
        assert after.json()["currency"] == "USD"
        assert after.json()["version"] == 1
    
    @pytest.mark.asyncio
    async def test_update_other_users_account(self, client: httpx.AsyncClient) -> None:
        a = await _create_account(client, "100")
        
        response = await client.patch(
            f"/api/accounts/{a['account_id']}",
            json={"is_active": False},
            headers=OTHER_HEADERS,
        )
        
        assert response.status_code == 404
