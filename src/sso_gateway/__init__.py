"""sso-gateway: CAS single sign-on gateway for webmail hosts.

Intercepts the host application's request lifecycle, delegates identity
verification to a CAS 2.0 server and forwards derived credentials (a static
credential or per-backend proxy tickets) to the mail store.

Entry point for hosts: sso_gateway.gateway.state_machine.AuthGateway
"""

__version__ = "0.4.2"
