"""Tests for RequestContext construction."""

import io

import pytest

from sso_gateway.gateway.context import RequestContext


def _environ(**overrides: object) -> dict:
    environ = {
        "REQUEST_METHOD": "GET",
        "QUERY_STRING": "",
        "SERVER_NAME": "mail.example.edu",
        "SERVER_PORT": "443",
        "wsgi.url_scheme": "https",
        "wsgi.input": io.BytesIO(b""),
        "SCRIPT_NAME": "/webmail",
        "PATH_INFO": "/",
    }
    environ.update(overrides)
    return environ


class TestFromWsgiEnviron:
    """Tests for RequestContext.from_wsgi_environ."""

    def test_basic_fields(self) -> None:
        """Given a GET environ, server, query and URI are populated."""
        ctx = RequestContext.from_wsgi_environ(
            _environ(QUERY_STRING="_task=mail&ticket=ST-1-abc&ticket=ST-2")
        )

        assert ctx.method == "GET"
        assert ctx.server_name == "mail.example.edu"
        assert ctx.server_port == 443
        assert ctx.https is True
        assert ctx.query("ticket") == "ST-1-abc"
        assert ctx.request_uri == "/webmail/?_task=mail&ticket=ST-1-abc&ticket=ST-2"

    def test_request_uri_preferred(self) -> None:
        """Given REQUEST_URI, it is used as-is."""
        ctx = RequestContext.from_wsgi_environ(_environ(REQUEST_URI="/webmail/index.php?_task=mail"))

        assert ctx.request_uri == "/webmail/index.php?_task=mail"

    def test_headers_and_cookies(self) -> None:
        """Given HTTP_ headers and a cookie header, both are parsed."""
        ctx = RequestContext.from_wsgi_environ(
            _environ(
                HTTP_X_FORWARDED_PROTO="https",
                HTTP_COOKIE="sso_return_url=_task%3Dmail; other=1",
            )
        )

        assert ctx.header("X-Forwarded-Proto") == "https"
        assert ctx.cookie("sso_return_url") == "_task%3Dmail"
        assert ctx.cookie("other") == "1"

    def test_urlencoded_post_body(self) -> None:
        """Given a urlencoded POST, form params are read from wsgi.input."""
        body = b"_url=_task%3Dmail%26_action%3Dcompose&_user="
        ctx = RequestContext.from_wsgi_environ(
            _environ(
                REQUEST_METHOD="POST",
                CONTENT_TYPE="application/x-www-form-urlencoded",
                CONTENT_LENGTH=str(len(body)),
                **{"wsgi.input": io.BytesIO(body)},
            )
        )

        assert ctx.form("_url") == "_task=mail&_action=compose"
        assert ctx.form("_user") == ""

    @pytest.mark.parametrize(
        ("body", "expected"),
        [
            ("_url=_task%3Dmail%26_mbox%3DEntwürfe".encode(), "_task=mail&_mbox=Entwürfe"),
            (b"_url=_mbox%3DEntw\xfcrfe", "_mbox=Entw\ufffdrfe"),
        ],
    )
    def test_raw_non_ascii_body_is_utf8(self, body: bytes, expected: str) -> None:
        """Given raw non-ASCII bytes in the body, they decode as UTF-8."""
        ctx = RequestContext.from_wsgi_environ(
            _environ(
                REQUEST_METHOD="POST",
                CONTENT_TYPE="application/x-www-form-urlencoded",
                CONTENT_LENGTH=str(len(body)),
                **{"wsgi.input": io.BytesIO(body)},
            )
        )

        assert ctx.form("_url") == expected

    def test_plain_http(self) -> None:
        """Given no HTTPS markers, https is False."""
        ctx = RequestContext.from_wsgi_environ(_environ(SERVER_PORT="80", **{"wsgi.url_scheme": "http"}))

        assert ctx.https is False
        assert ctx.is_secure is False


class TestIsSecure:
    """Tests for TLS detection."""

    def test_forwarded_proto(self) -> None:
        """Given X-Forwarded-Proto: https, the request counts as secure."""
        ctx = RequestContext(headers={"x-forwarded-proto": "HTTPS"})

        assert ctx.is_secure is True

    def test_from_query_parses_params(self) -> None:
        """Given from_query, params are parsed from the raw string."""
        ctx = RequestContext.from_query("_task=mail&_action=compose", https=True)

        assert ctx.query("_action") == "compose"
        assert ctx.is_secure is True
