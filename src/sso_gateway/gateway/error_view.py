"""Terminal error page shown when the backend rejects forwarded credentials."""

from __future__ import annotations

__all__ = ["ErrorView", "login_failed_view"]

import html
from dataclasses import dataclass

from sso_gateway.constants import ACTION_SSO_LOGOUT

LOGIN_FAILED_TITLE = "IMAP LOGIN FAILED"
LOGIN_FAILED_TEXT = (
    "Could not log into your IMAP service. The service may be interrupted, "
    "or you may not be authorized to access the service.",
    "Please contact the administrator of your IMAP service.",
    "Or log out by clicking on the button below, then try again with a different user name.",
)


@dataclass(frozen=True)
class ErrorView:
    """Error page with a single logout control.

    Attributes:
        title: Page heading.
        paragraphs: Explanation lines.
        logout_action: Value of the hidden `_action` field the button submits.
        button_label: Label of the logout button.
    """

    title: str
    paragraphs: tuple[str, ...]
    logout_action: str = ACTION_SSO_LOGOUT
    button_label: str = "Logout"

    def render_html(self) -> str:
        """Render the page body as an HTML fragment."""
        text = "<br />\n".join(html.escape(line) for line in self.paragraphs)
        return (
            "<div>\n"
            f'<h3 class="error-title">{html.escape(self.title)}</h3>\n'
            f'<p class="error-text">{text}</p>\n'
            '<form name="form" action="./" method="get">\n'
            f'<input type="hidden" name="_action" value="{html.escape(self.logout_action, quote=True)}" />\n'
            '<p style="text-align:center;">'
            f'<input type="submit" class="button mainaction" value="{html.escape(self.button_label, quote=True)}" />'
            "</p>\n"
            "</form>\n"
            "</div>\n"
        )


def login_failed_view() -> ErrorView:
    """Error view for a backend (not SSO) login failure."""
    return ErrorView(title=LOGIN_FAILED_TITLE, paragraphs=LOGIN_FAILED_TEXT)
