"""Tests for login_required and requires — content-negotiated rejection."""

from dataclasses import dataclass

from livetrain.app import App
from livetrain.middleware.auth import AuthConfig, AuthMiddleware, get_user
from livetrain.security import login_required, requires
from livetrain.testing import TestClient


@dataclass(frozen=True, slots=True)
class FakeUser:
    id: str
    is_authenticated: bool = True
    permissions: frozenset[str] = frozenset()


_TOKENS = {
    "student": FakeUser(id="7"),
    "trainer": FakeUser(id="1", permissions=frozenset({"trainer"})),
}


async def _verify_token(token: str) -> FakeUser | None:
    return _TOKENS.get(token)


def _make_app(login_url: str = "/auth") -> App:
    app = App()
    app.add_middleware(AuthMiddleware(AuthConfig(verify_token=_verify_token, login_url=login_url)))

    @app.route("/dashboard")
    @login_required
    def dashboard():
        return f"hello {get_user().id}"

    @app.route("/courses/{course_id}/sessions", methods=["POST"])
    @requires("trainer")
    async def create(course_id: int):
        return {"courseId": course_id}, 201

    return app


class TestLoginRequired:
    async def test_authenticated_passes(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.get("/dashboard", headers={"Authorization": "Bearer student"})
        assert response.status == 200
        assert response.text == "hello 7"

    async def test_api_client_gets_401(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.get("/dashboard", headers={"Accept": "application/json"})
        assert response.status == 401
        assert response.json() == {"message": "Authentication required"}

    async def test_browser_redirected_to_login(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.get("/dashboard", headers={"Accept": "text/html"})
        assert response.status == 302
        assert response.header("location") == "/auth?next=%2Fdashboard"

    async def test_login_url_with_query_string(self) -> None:
        async with TestClient(_make_app(login_url="/auth?tab=login")) as client:
            response = await client.get("/dashboard?x=1")
        assert response.status == 302
        assert response.header("location") == "/auth?tab=login&next=%2Fdashboard%3Fx%3D1"

    async def test_invalid_token_counts_as_api_client(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.get("/dashboard", headers={"Authorization": "Bearer bogus"})
        assert response.status == 401


class TestRequires:
    async def test_permission_granted(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.post(
                "/courses/3/sessions", headers={"Authorization": "Bearer trainer"}
            )
        assert response.status == 201
        assert response.json() == {"courseId": 3}

    async def test_missing_permission_is_403(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.post(
                "/courses/3/sessions", headers={"Authorization": "Bearer student"}
            )
        assert response.status == 403

    async def test_anonymous_api_client_is_401(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.post(
                "/courses/3/sessions", headers={"Accept": "application/json"}
            )
        assert response.status == 401

    async def test_wrapped_signature_still_injects_params(self) -> None:
        # requires() keeps the handler signature visible through functools.wraps
        async with TestClient(_make_app()) as client:
            response = await client.post(
                "/courses/12/sessions", headers={"Authorization": "Bearer trainer"}
            )
        assert response.json()["courseId"] == 12
