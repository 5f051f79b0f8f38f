"""SAML metadata connection provisioner.

Synchronizes SAML 2.0 federation metadata into connection management as
IDP and SP partner connections.
"""

__version__ = "0.1.0"
