"""Tests for ApiClient and SchoolClient over a mocked httpx transport."""

import asyncio
import io

import httpx
import pytest

from conftest import FakeCredentials
from schoolclient.client import SchoolClient
from schoolclient.config import Settings
from schoolclient.core.exceptions import RequestBuildError, SessionExpiredError
from schoolclient.http.client import ApiClient
from schoolclient.http.profiles import STANDARD, UPLOAD

BASE_URL = "http://school.test"


class Backend:
    """Mock backend accepting only ``Bearer <valid_token>``."""

    def __init__(self, valid_token="old-token"):
        self.valid_token = valid_token
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("Authorization") != f"Bearer {self.valid_token}":
            return httpx.Response(401, json={"message": "Token expired"})
        return httpx.Response(
            200, json={"path": request.url.path, "method": request.method}
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def _run(coro):
    return asyncio.run(coro)


class TestApiClient:
    def test_request_is_normalized_and_authenticated(self):
        backend = Backend()

        async def scenario():
            async with ApiClient(
                BASE_URL, FakeCredentials(), transport=backend.transport
            ) as client:
                return await client.get("usuarios/1")

        response = _run(scenario())

        assert response.json() == {"path": "/api/usuarios/1", "method": "GET"}
        sent = backend.requests[0]
        assert sent.headers["Authorization"] == "Bearer old-token"
        assert sent.headers["Content-Type"] == "application/json"

    def test_caller_headers_override_profile_defaults(self):
        backend = Backend()

        async def scenario():
            async with ApiClient(
                BASE_URL, FakeCredentials(), transport=backend.transport
            ) as client:
                await client.post(
                    "/reportes", headers={"Content-Type": "text/csv"}
                )

        _run(scenario())
        assert backend.requests[0].headers["Content-Type"] == "text/csv"

    def test_request_without_token_has_no_authorization(self):
        backend = Backend()

        async def scenario():
            async with ApiClient(
                BASE_URL, FakeCredentials(token=None), transport=backend.transport
            ) as client:
                await client.get("/escuelas")

        with pytest.raises(httpx.HTTPStatusError):
            _run(scenario())
        assert "Authorization" not in backend.requests[0].headers

    def test_absolute_url_is_sent_untouched(self):
        backend = Backend()

        async def scenario():
            async with ApiClient(
                BASE_URL, FakeCredentials(), transport=backend.transport
            ) as client:
                return await client.get("https://files.test/boletin.pdf")

        _run(scenario())
        assert str(backend.requests[0].url) == "https://files.test/boletin.pdf"

    def test_expired_token_is_refreshed_and_request_replayed(self):
        backend = Backend(valid_token="new-token")
        credentials = FakeCredentials()

        async def scenario():
            async with ApiClient(
                BASE_URL, credentials, transport=backend.transport
            ) as client:
                return await client.put("/cursos/3", json={"nombre": "3B"})

        response = _run(scenario())

        assert response.status_code == 200
        assert credentials.refresh_calls == 1
        first, replay = backend.requests
        assert first.headers["Authorization"] == "Bearer old-token"
        assert replay.headers["Authorization"] == "Bearer new-token"
        assert replay.content == first.content
        assert b"3B" in replay.content

    def test_failed_refresh_surfaces_session_expired(self):
        backend = Backend(valid_token="new-token")
        credentials = FakeCredentials(refresh_result=None)

        async def scenario():
            async with ApiClient(
                BASE_URL, credentials, transport=backend.transport
            ) as client:
                await client.get("/calendario")

        with pytest.raises(SessionExpiredError) as excinfo:
            _run(scenario())

        assert excinfo.value.session_expired is True
        assert excinfo.value.response.json() == {"message": "Token expired"}
        assert credentials.logout_calls == 1

    def test_unbuildable_request_never_reaches_the_network(self):
        backend = Backend()

        async def scenario():
            async with ApiClient(
                BASE_URL, FakeCredentials(), transport=backend.transport
            ) as client:
                await client.post("/tareas", json={"due": object()})

        with pytest.raises(RequestBuildError) as excinfo:
            _run(scenario())

        assert isinstance(excinfo.value.__cause__, TypeError)
        assert backend.requests == []

    def test_timeout_is_propagated_without_refresh(self):
        credentials = FakeCredentials()

        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        async def scenario():
            async with ApiClient(
                BASE_URL, credentials, transport=httpx.MockTransport(handler)
            ) as client:
                await client.get("/asistencia")

        with pytest.raises(httpx.ReadTimeout):
            _run(scenario())
        assert credentials.refresh_calls == 0


class TestUploadProfile:
    def test_multipart_body_gets_boundary_content_type(self):
        backend = Backend()

        async def scenario():
            async with ApiClient(
                BASE_URL, FakeCredentials(), UPLOAD, transport=backend.transport
            ) as client:
                await client.post(
                    "/tareas/1/entregas",
                    files={"archivo": ("entrega.pdf", b"%PDF-1.4")},
                    headers={"Content-Type": "application/json"},
                )

        _run(scenario())
        content_type = backend.requests[0].headers["Content-Type"]
        assert content_type.startswith("multipart/form-data; boundary=")

    def test_upload_profile_has_no_fixed_content_type(self):
        assert "Content-Type" not in UPLOAD.headers
        assert STANDARD.headers["Content-Type"] == "application/json"
        assert UPLOAD.timeout > STANDARD.timeout

    def test_file_objects_are_rewound_for_the_replay(self):
        backend = Backend(valid_token="new-token")

        async def scenario():
            async with ApiClient(
                BASE_URL, FakeCredentials(), UPLOAD, transport=backend.transport
            ) as client:
                return await client.post(
                    "/tareas/1/entregas",
                    files={"archivo": ("entrega.txt", io.BytesIO(b"hola mundo"))},
                )

        response = _run(scenario())

        assert response.status_code == 200
        assert len(backend.requests) == 2
        assert b"hola mundo" in backend.requests[1].content

    def test_repeated_fields_as_a_list_of_pairs(self):
        backend = Backend(valid_token="new-token")
        first = io.BytesIO(b"primera parte")

        async def scenario():
            async with ApiClient(
                BASE_URL, FakeCredentials(), UPLOAD, transport=backend.transport
            ) as client:
                return await client.post(
                    "/tareas/1/entregas",
                    files=[
                        ("archivo", ("a.txt", first)),
                        ("archivo", ("b.txt", b"segunda parte")),
                    ],
                )

        response = _run(scenario())

        assert response.status_code == 200
        replay = backend.requests[1].content
        assert replay.count(b'name="archivo"') == 2
        assert b"primera parte" in replay
        assert b"segunda parte" in replay


class TestSchoolClient:
    def _settings(self) -> Settings:
        return Settings(api_url=BASE_URL, timeout=5.0, upload_timeout=120.0)

    def test_profiles_use_configured_timeouts(self):
        school = SchoolClient(FakeCredentials(), self._settings())
        try:
            assert school.api.profile.timeout == 5.0
            assert school.uploads.profile.timeout == 120.0
            assert school.api.coordinator is not school.uploads.coordinator
        finally:
            _run(school.aclose())

    def test_refresh_on_one_profile_does_not_block_the_other(self):
        backend = Backend(valid_token="old-token")
        credentials = FakeCredentials()

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/usuarios":
                backend.requests.append(request)
                if request.headers["Authorization"] != "Bearer new-token":
                    return httpx.Response(401)
                return httpx.Response(200, json={"ok": True})
            return backend(request)

        async def scenario():
            credentials.release = asyncio.Event()
            async with SchoolClient(
                credentials, self._settings(), transport=httpx.MockTransport(handler)
            ) as school:
                pending = asyncio.ensure_future(school.api.get("/usuarios"))
                while not school.api.coordinator.refreshing:
                    await asyncio.sleep(0)

                upload = await school.uploads.post(
                    "/tareas/1/entregas", files={"archivo": ("a.txt", b"a")}
                )
                upload_was_independent = (
                    school.api.coordinator.refreshing
                    and not school.uploads.coordinator.refreshing
                )

                credentials.release.set()
                return await pending, upload, upload_was_independent

        standard, upload, upload_was_independent = _run(scenario())

        assert upload.status_code == 200
        assert standard.status_code == 200
        assert upload_was_independent
        assert credentials.refresh_calls == 1
