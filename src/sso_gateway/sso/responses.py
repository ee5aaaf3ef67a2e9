"""Parsing of CAS 2.0 XML responses.

The SSO server answers serviceValidate/proxyValidate and /proxy with a
<cas:serviceResponse> document in the CAS namespace. Success bodies are
turned into value objects, failure bodies into typed SSOError subclasses
carrying the server's code and diagnostic text.
"""

from __future__ import annotations

__all__ = [
    "ServiceValidation",
    "parse_proxy_response",
    "parse_validation_response",
]

from dataclasses import dataclass, field

from lxml import etree

from sso_gateway.constants import CAS_NAMESPACE
from sso_gateway.exceptions import (
    ProxyTicketError,
    SSOUnavailableError,
    TicketValidationError,
)

_NS = {"cas": CAS_NAMESPACE}

# No DTD loading, no entity expansion, no network access while parsing
_PARSER = etree.XMLParser(
    resolve_entities=False,
    load_dtd=False,
    no_network=True,
    remove_comments=True,
    remove_pis=True,
)


@dataclass(frozen=True)
class ServiceValidation:
    """Successful service/proxy ticket validation.

    Attributes:
        principal: Authenticated user name.
        pgt_iou: Proxy-granting ticket IOU (proxy mode with pgtUrl only).
        proxies: Proxy chain, outermost first (proxyValidate only).
    """

    principal: str
    pgt_iou: str | None = None
    proxies: tuple[str, ...] = field(default_factory=tuple)


def _parse_root(body: str | bytes) -> etree._Element:
    payload = body.encode("utf-8") if isinstance(body, str) else body
    try:
        root = etree.fromstring(payload, _PARSER)
    except (etree.XMLSyntaxError, ValueError) as e:
        raise SSOUnavailableError(f"Malformed SSO server response: {e}") from e

    # CAS responses never declare a document type
    if root.getroottree().docinfo.doctype:
        raise SSOUnavailableError("SSO server response contains a DOCTYPE declaration")

    if root.tag != f"{{{CAS_NAMESPACE}}}serviceResponse":
        raise SSOUnavailableError(f"Unexpected SSO server response element: {root.tag}")
    return root


def _text(element: etree._Element | None) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def parse_validation_response(body: str | bytes) -> ServiceValidation:
    """Parse a serviceValidate/proxyValidate response.

    Args:
        body: Response body from the SSO server.

    Returns:
        ServiceValidation for an authenticationSuccess body.

    Raises:
        TicketValidationError: authenticationFailure body.
        SSOUnavailableError: Body is not a CAS 2.0 response.
    """
    root = _parse_root(body)

    failure = root.find("cas:authenticationFailure", _NS)
    if failure is not None:
        raise TicketValidationError(
            _text(failure) or "Ticket rejected",
            code=failure.get("code") or None,
        )

    success = root.find("cas:authenticationSuccess", _NS)
    if success is None:
        raise SSOUnavailableError("SSO server response has neither success nor failure element")

    principal = _text(success.find("cas:user", _NS))
    if not principal:
        raise SSOUnavailableError("SSO server response has no user")

    pgt_iou = _text(success.find("cas:proxyGrantingTicket", _NS)) or None
    proxies = tuple(
        _text(proxy) for proxy in success.findall("cas:proxies/cas:proxy", _NS) if _text(proxy)
    )
    return ServiceValidation(principal=principal, pgt_iou=pgt_iou, proxies=proxies)


def parse_proxy_response(body: str | bytes) -> str:
    """Parse a /proxy response.

    Returns:
        The proxy ticket.

    Raises:
        ProxyTicketError: proxyFailure body.
        SSOUnavailableError: Body is not a CAS 2.0 response.
    """
    root = _parse_root(body)

    failure = root.find("cas:proxyFailure", _NS)
    if failure is not None:
        raise ProxyTicketError(
            _text(failure) or "Proxy ticket request rejected",
            code=failure.get("code") or None,
        )

    ticket = _text(root.find("cas:proxySuccess/cas:proxyTicket", _NS))
    if not ticket:
        raise SSOUnavailableError("SSO server response has no proxy ticket")
    return ticket
