"""Unit tests for request path normalization."""

import pytest

from schoolclient.core.paths import (
    REFRESH_TOKEN_PATH,
    ensure_api_prefix,
    is_absolute_url,
    refresh_path_for,
)


class TestEnsureApiPrefix:
    def test_leading_slash_gets_prefix(self):
        assert ensure_api_prefix("/usuarios/1") == "/api/usuarios/1"

    def test_bare_path_gets_prefix_and_separator(self):
        assert ensure_api_prefix("usuarios/1") == "/api/usuarios/1"

    def test_prefixed_path_is_unchanged(self):
        assert ensure_api_prefix("/api/usuarios/1") == "/api/usuarios/1"

    def test_mount_point_itself_is_unchanged(self):
        assert ensure_api_prefix("/api") == "/api"

    def test_lookalike_segment_is_still_prefixed(self):
        assert ensure_api_prefix("/apiary") == "/api/apiary"

    def test_custom_prefix_with_trailing_slash(self):
        assert ensure_api_prefix("/cursos", prefix="/v2/") == "/v2/cursos"

    @pytest.mark.parametrize(
        "path",
        ["/usuarios", "usuarios", "/cursos/7/estudiantes", "calificaciones?x=1"],
    )
    def test_prefix_appears_exactly_once(self, path):
        result = ensure_api_prefix(path)
        assert result.startswith("/api/")
        assert not result.startswith("/api/api")
        assert "//" not in result

    def test_normalization_is_idempotent(self):
        once = ensure_api_prefix("asistencia")
        assert ensure_api_prefix(once) == once


class TestIsAbsoluteUrl:
    def test_http_url(self):
        assert is_absolute_url("https://cdn.example.com/logo.png")

    def test_relative_path(self):
        assert not is_absolute_url("/usuarios")


def test_refresh_path_defaults_to_api_mount():
    assert REFRESH_TOKEN_PATH == "/api/auth/refresh-token"
    assert refresh_path_for("/v2/") == "/v2/auth/refresh-token"
