"""Passgate: passwordless authentication with WebAuthn passkeys."""

__version__ = "0.1.0"
