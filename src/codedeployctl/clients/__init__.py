"""API clients for codedeployctl."""

from codedeployctl.clients.aws import ClientBundle, ClientFactory, CredentialResolver

__all__ = [
    "ClientBundle",
    "ClientFactory",
    "CredentialResolver",
]
