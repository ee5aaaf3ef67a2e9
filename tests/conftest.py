"""Shared fixtures for sso-gateway tests.

Provides gateway configurations for both operating modes and a scripted
SSOClient double standing in for the CAS server.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

import pytest

from sso_gateway.config import (
    DirectModeConfig,
    GatewayConfig,
    ProxyModeConfig,
    SSOServerConfig,
)
from sso_gateway.sso.responses import ServiceValidation
from sso_gateway.telemetry.system.system_logger import reset_system_logger


@dataclass
class FakeSSOClient:
    """Scripted SSOClient recording every call.

    Set validation/validation_error and proxy_ticket/proxy_error to choose
    what the "server" answers.
    """

    service_url: str = ""
    callback_url: str | None = None
    validation: ServiceValidation | None = None
    validation_error: Exception | None = None
    proxy_ticket: str = "PT-1-fresh"
    proxy_error: Exception | None = None
    validated_tickets: list[str] = field(default_factory=list)
    proxy_requests: list[tuple[str, str]] = field(default_factory=list)
    closed: bool = False

    def login_url(self) -> str:
        return f"https://sso.example.edu/cas/login?service={self.service_url}"

    def logout_url(self) -> str:
        return "https://sso.example.edu/cas/logout"

    def validate_service_ticket(self, ticket: str) -> ServiceValidation:
        self.validated_tickets.append(ticket)
        if self.validation_error is not None:
            raise self.validation_error
        assert self.validation is not None
        return self.validation

    def request_proxy_ticket(self, pgt: str, target_service: str) -> str:
        self.proxy_requests.append((pgt, target_service))
        if self.proxy_error is not None:
            raise self.proxy_error
        return self.proxy_ticket

    def close(self) -> None:
        self.closed = True

    @property
    def round_trips(self) -> int:
        return len(self.validated_tickets) + len(self.proxy_requests)


@pytest.fixture(autouse=True)
def _fresh_system_logger() -> Iterator[None]:
    """Each test starts with a system logger without file handlers."""
    reset_system_logger()
    yield
    reset_system_logger()


@pytest.fixture
def fake_client() -> FakeSSOClient:
    """SSO client double that validates tickets for user 'jdoe'."""
    return FakeSSOClient(validation=ServiceValidation(principal="jdoe", pgt_iou="PGTIOU-1-abc"))


@pytest.fixture
def sso_config() -> SSOServerConfig:
    return SSOServerConfig(hostname="sso.example.edu")


@pytest.fixture
def direct_config(sso_config: SSOServerConfig) -> GatewayConfig:
    """Direct mode with an inline static credential."""
    return GatewayConfig(
        sso=sso_config,
        mode="direct",
        direct=DirectModeConfig(password="master-secret"),
    )


@pytest.fixture
def proxy_config(sso_config: SSOServerConfig) -> GatewayConfig:
    """Proxy mode with backend ticket caching enabled."""
    return GatewayConfig(
        sso=sso_config,
        mode="proxy",
        proxy=ProxyModeConfig(
            consumer_service="imap://mail.example.edu",
            backend_caching=True,
            backend_node="imap1",
        ),
    )
