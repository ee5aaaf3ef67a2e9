"""Tests for hook results, cookie directives and the error view."""

from sso_gateway.gateway.error_view import ErrorView, login_failed_view
from sso_gateway.gateway.events import Authenticate
from sso_gateway.gateway.result import CookieDirective, HookResult


class TestCookieDirective:
    """Tests for Set-Cookie header rendering."""

    def test_value_is_percent_encoded(self) -> None:
        cookie = CookieDirective(name="sso_return_url", value="_task=mail&_mbox=INBOX", max_age=600, secure=True)

        header = cookie.to_header()

        assert header.startswith("sso_return_url=_task%3Dmail%26_mbox%3DINBOX; Max-Age=600; Path=/")
        assert "; Secure" in header
        assert "; HttpOnly" in header
        assert header.endswith("SameSite=Lax")
        assert "Expires" not in header

    def test_deletion(self) -> None:
        cookie = CookieDirective.delete("sso_return_url", path="/webmail/")

        header = cookie.to_header()

        assert cookie.is_deletion is True
        assert "Max-Age=0" in header
        assert "Expires=Thu, 01 Jan 1970 00:00:00 GMT" in header
        assert "Path=/webmail/" in header
        assert "Secure" not in header


class TestHookResult:
    """Tests for HookResult."""

    def test_plain_result_passes_through(self) -> None:
        assert HookResult(event=Authenticate()).passed_through is True

    def test_response_headers(self) -> None:
        result = HookResult(
            event=Authenticate(),
            redirect="https://sso.example.edu/cas/login",
            cookies=[CookieDirective.delete("sso_return_url")],
            terminate=True,
        )

        headers = result.response_headers()

        assert result.passed_through is False
        assert [name for name, _ in headers] == ["Set-Cookie", "Location"]
        assert headers[-1][1] == "https://sso.example.edu/cas/login"


class TestErrorView:
    """Tests for the login failure page."""

    def test_login_failed_view(self) -> None:
        view = login_failed_view()

        page = view.render_html()

        assert "IMAP LOGIN FAILED" in page
        assert 'name="_action" value="sso-logout"' in page
        assert 'value="Logout"' in page

    def test_text_is_escaped(self) -> None:
        view = ErrorView(title="<b>x</b>", paragraphs=("a & b",))

        page = view.render_html()

        assert "&lt;b&gt;x&lt;/b&gt;" in page
        assert "a &amp; b" in page
