"""SAML metadata handling.

Submodules cover namespaces, signature verification, entity enumeration,
certificate loading and connection extension synthesis.
"""
