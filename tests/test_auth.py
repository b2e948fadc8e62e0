"""인증 API 테스트 — 회원가입, 로그인, 토큰 갱신, 로그아웃, 프로필 엔드포인트.

Auth API tests — Register, login, refresh, logout and profile endpoints.
Covers the HTTP contract: status codes, camelCase bodies and generic error details.
"""

from unittest.mock import AsyncMock

import jwt
from httpx import AsyncClient
from sqlalchemy import func, select

from app.api.deps import get_token_issuer
from app.main import app
from app.models.token import RefreshToken
from app.repositories.user_repository import user_repository
from tests.conftest import TEST_SECRET, auth_header, tamper

AUTH = "/auth"


async def _login(client: AsyncClient, email: str = "a@x.com", password: str = "correct") -> dict:
    res = await client.post(f"{AUTH}/login", json={"email": email, "password": password})
    assert res.status_code == 200
    return res.json()


async def _count_sessions(db, user_id) -> int:
    result = await db.execute(
        select(func.count()).select_from(RefreshToken).where(RefreshToken.user_id == user_id)
    )
    return result.scalar()


# ===== Register =====

class TestRegister:
    """회원가입 테스트."""

    async def test_register_success(self, client: AsyncClient, db):
        """회원가입 성공 — 201, 사용자 요약과 토큰 쌍."""
        res = await client.post(f"{AUTH}/register", json={
            "firstName": "Ana",
            "lastName": "Lopez",
            "email": "ana@x.com",
            "password": "supersecret",
        })
        assert res.status_code == 201
        data = res.json()
        assert data["accessToken"]
        assert data["refreshToken"]
        assert data["tokenType"] == "bearer"
        assert data["user"]["email"] == "ana@x.com"
        assert data["user"]["role"] == "student"
        assert "passwordHash" not in data["user"]
        assert "password_hash" not in data["user"]

    async def test_register_then_login(self, client: AsyncClient):
        """가입한 계정으로 로그인 가능."""
        await client.post(f"{AUTH}/register", json={
            "firstName": "Ben",
            "lastName": "Ruiz",
            "email": "ben@x.com",
            "password": "supersecret",
            "role": "teacher",
        })
        data = await _login(client, "ben@x.com", "supersecret")
        assert data["user"]["role"] == "teacher"

    async def test_register_duplicate_email(self, client: AsyncClient, student_user):
        """중복 이메일로 회원가입 실패 — 409."""
        res = await client.post(f"{AUTH}/register", json={
            "firstName": "Dup",
            "lastName": "User",
            "email": "a@x.com",
            "password": "supersecret",
        })
        assert res.status_code == 409

    async def test_register_mixed_case_email_then_login(self, client: AsyncClient):
        """대소문자 섞인 이메일로 가입 후 같은 문자열로 로그인 가능."""
        res = await client.post(f"{AUTH}/register", json={
            "firstName": "Ana",
            "lastName": "Lopez",
            "email": "ana@Example.COM",
            "password": "supersecret",
        })
        assert res.status_code == 201
        assert res.json()["user"]["email"] == "ana@example.com"

        for email in ("ana@Example.COM", "ana@example.com", "  ana@EXAMPLE.com "):
            data = await _login(client, email, "supersecret")
            assert data["user"]["email"] == "ana@example.com"

    async def test_register_race_on_email(self, client: AsyncClient, student_user, monkeypatch):
        """사전 확인을 통과한 동시 가입도 고유 제약으로 409."""
        monkeypatch.setattr(user_repository, "email_exists", AsyncMock(return_value=False))
        res = await client.post(f"{AUTH}/register", json={
            "firstName": "Dup",
            "lastName": "User",
            "email": "a@x.com",
            "password": "supersecret",
        })
        assert res.status_code == 409

    async def test_register_admin_role_rejected(self, client: AsyncClient):
        """관리자 역할 자가 지정 불가 — 422."""
        res = await client.post(f"{AUTH}/register", json={
            "firstName": "Eve",
            "lastName": "Admin",
            "email": "eve@x.com",
            "password": "supersecret",
            "role": "admin",
        })
        assert res.status_code == 422

    async def test_register_short_password(self, client: AsyncClient):
        """짧은 비밀번호 — 422."""
        res = await client.post(f"{AUTH}/register", json={
            "firstName": "Sam",
            "lastName": "Short",
            "email": "sam@x.com",
            "password": "short",
        })
        assert res.status_code == 422


# ===== Login =====

class TestLogin:
    """로그인 테스트."""

    async def test_login_success(self, client: AsyncClient, db, student_user):
        """로그인 성공 — 액세스 토큰 클레임과 세션 1개 생성."""
        data = await _login(client)
        assert data["tokenType"] == "bearer"
        assert data["user"]["id"] == str(student_user.id)
        assert data["user"]["status"] == "active"

        claims = jwt.decode(data["accessToken"], TEST_SECRET, algorithms=["HS256"])
        assert claims["sub"] == str(student_user.id)
        assert claims["email"] == "a@x.com"
        assert claims["role"] == "student"
        assert await _count_sessions(db, student_user.id) == 1

    async def test_login_records_client_metadata(self, client: AsyncClient, db, student_user):
        """User-Agent가 세션에 저장됨."""
        res = await client.post(
            f"{AUTH}/login",
            json={"email": "a@x.com", "password": "correct"},
            headers={"User-Agent": "pytest-agent/1.0"},
        )
        token = res.json()["refreshToken"]
        record = (await db.execute(select(RefreshToken).where(RefreshToken.token == token))).scalar_one()
        assert record.user_agent == "pytest-agent/1.0"

    async def test_login_wrong_password(self, client: AsyncClient, student_user):
        """잘못된 비밀번호로 로그인 실패."""
        res = await client.post(f"{AUTH}/login", json={"email": "a@x.com", "password": "wrong"})
        assert res.status_code == 401
        assert res.json() == {"detail": "Invalid credentials"}

    async def test_login_unknown_email_same_error(self, client: AsyncClient, student_user):
        """존재하지 않는 이메일도 동일한 오류."""
        wrong_password = await client.post(f"{AUTH}/login", json={"email": "a@x.com", "password": "nope"})
        unknown_email = await client.post(f"{AUTH}/login", json={"email": "ghost@x.com", "password": "nope"})
        assert unknown_email.status_code == wrong_password.status_code == 401
        assert unknown_email.json() == wrong_password.json()

    async def test_login_banned_user(self, client: AsyncClient, banned_user):
        """차단된 계정 로그인 실패."""
        res = await client.post(f"{AUTH}/login", json={"email": "banned@x.com", "password": "correct"})
        assert res.status_code == 401
        assert res.json() == {"detail": "Invalid credentials"}

    async def test_second_login_replaces_session(self, client: AsyncClient, db, student_user):
        """재로그인 시 이전 세션 폐기 — single active session."""
        first = await _login(client)
        second = await _login(client)
        assert await _count_sessions(db, student_user.id) == 1

        res = await client.post(f"{AUTH}/refresh", json={"refreshToken": first["refreshToken"]})
        assert res.status_code == 401
        res = await client.post(f"{AUTH}/refresh", json={"refreshToken": second["refreshToken"]})
        assert res.status_code == 200


# ===== Token Refresh =====

class TestTokenRefresh:
    """토큰 갱신 테스트."""

    async def test_refresh_success(self, client: AsyncClient, student_user):
        """리프레시 토큰으로 새 토큰 발급."""
        login = await _login(client)
        res = await client.post(f"{AUTH}/refresh", json={"refreshToken": login["refreshToken"]})
        assert res.status_code == 200
        data = res.json()
        assert data["accessToken"]
        assert data["refreshToken"] != login["refreshToken"]
        assert data["tokenType"] == "bearer"

    async def test_refresh_accepts_snake_case(self, client: AsyncClient, student_user):
        """snake_case 요청 본문도 허용."""
        login = await _login(client)
        res = await client.post(f"{AUTH}/refresh", json={"refresh_token": login["refreshToken"]})
        assert res.status_code == 200

    async def test_refresh_replay_rejected(self, client: AsyncClient, student_user):
        """회전된 토큰 재사용 시 401."""
        login = await _login(client)
        first = await client.post(f"{AUTH}/refresh", json={"refreshToken": login["refreshToken"]})
        assert first.status_code == 200

        replay = await client.post(f"{AUTH}/refresh", json={"refreshToken": login["refreshToken"]})
        assert replay.status_code == 401
        assert replay.json() == {"detail": "Invalid or expired session"}

    async def test_refresh_with_invalid_token(self, client: AsyncClient):
        """유효하지 않은 리프레시 토큰으로 갱신 실패."""
        res = await client.post(f"{AUTH}/refresh", json={"refreshToken": "invalid.token.here"})
        assert res.status_code == 401
        assert res.json() == {"detail": "Invalid or expired session"}

    async def test_refresh_tampered_token(self, client: AsyncClient, student_user):
        """서명 변조 토큰 — 401."""
        login = await _login(client)
        res = await client.post(f"{AUTH}/refresh", json={"refreshToken": tamper(login["refreshToken"])})
        assert res.status_code == 401

    async def test_refreshed_access_token_works(self, client: AsyncClient, student_user):
        """갱신된 액세스 토큰으로 프로필 접근 가능."""
        login = await _login(client)
        res = await client.post(f"{AUTH}/refresh", json={"refreshToken": login["refreshToken"]})
        new_access = res.json()["accessToken"]

        me = await client.get(f"{AUTH}/profile", headers=auth_header(new_access))
        assert me.status_code == 200
        assert me.json()["user"]["email"] == "a@x.com"


# ===== Logout =====

class TestLogout:
    """로그아웃 테스트."""

    async def test_logout_revokes_refresh_token(self, client: AsyncClient, db, student_user):
        """로그아웃 후 리프레시 토큰 무효화."""
        login = await _login(client)
        res = await client.post(f"{AUTH}/logout", json={"refreshToken": login["refreshToken"]})
        assert res.status_code == 200
        assert res.json() == {"message": "Session closed successfully"}
        assert await _count_sessions(db, student_user.id) == 0

        res2 = await client.post(f"{AUTH}/refresh", json={"refreshToken": login["refreshToken"]})
        assert res2.status_code == 401

    async def test_logout_is_idempotent(self, client: AsyncClient, student_user):
        """같은 토큰으로 두 번, 발급된 적 없는 토큰으로도 성공."""
        login = await _login(client)
        for token in (login["refreshToken"], login["refreshToken"], "never-issued"):
            res = await client.post(f"{AUTH}/logout", json={"refreshToken": token})
            assert res.status_code == 200

    async def test_logout_all(self, client: AsyncClient, db, student_user):
        """모든 세션 폐기."""
        login = await _login(client)
        res = await client.post(f"{AUTH}/logout-all", headers=auth_header(login["accessToken"]))
        assert res.status_code == 200
        assert res.json()["revoked"] == 1
        assert await _count_sessions(db, student_user.id) == 0

    async def test_logout_all_requires_token(self, client: AsyncClient):
        res = await client.post(f"{AUTH}/logout-all")
        assert res.status_code == 401


# ===== Profile =====

class TestProfile:
    """프로필 조회 테스트."""

    async def test_profile_success(self, client: AsyncClient, student_user):
        """인증된 주체 정보 조회 성공."""
        login = await _login(client)
        res = await client.get(f"{AUTH}/profile", headers=auth_header(login["accessToken"]))
        assert res.status_code == 200
        assert res.json()["user"] == {
            "id": str(student_user.id),
            "email": "a@x.com",
            "role": "student",
        }

    async def test_profile_no_token(self, client: AsyncClient):
        """토큰 없이 접근 시 401."""
        res = await client.get(f"{AUTH}/profile")
        assert res.status_code == 401
        assert res.headers["www-authenticate"] == "Bearer"

    async def test_profile_invalid_token(self, client: AsyncClient):
        """유효하지 않은 토큰으로 접근 시 401."""
        res = await client.get(f"{AUTH}/profile", headers=auth_header("invalid.jwt.token"))
        assert res.status_code == 401
        assert res.json() == {"detail": "Invalid or expired token"}

    async def test_profile_refresh_token_rejected(self, client: AsyncClient, student_user):
        """리프레시 토큰은 액세스 토큰으로 사용 불가."""
        login = await _login(client)
        res = await client.get(f"{AUTH}/profile", headers=auth_header(login["refreshToken"]))
        assert res.status_code == 401

    async def test_profile_expired_token(self, client: AsyncClient, issuer, clock, student_user):
        """만료된 액세스 토큰 — 401."""
        pair = issuer.issue(student_user.id, student_user.email, "student")
        clock.advance(minutes=16)
        app.dependency_overrides[get_token_issuer] = lambda: issuer

        res = await client.get(f"{AUTH}/profile", headers=auth_header(pair.access_token))
        assert res.status_code == 401


async def test_health(client: AsyncClient):
    res = await client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}
