"""Default configuration values.

This module defines the default configuration values used when no configuration
file is provided or when configuration values are not specified.
"""

from typing import Any

# Default configuration dictionary
# This is used as a fallback when no configuration file is present
DEFAULT_CONFIG: dict[str, Any] = {
    "metadata": {
        # InCommon aggregate; download it to disk first for faster test runs
        "location": "http://md.incommon.org/InCommon/InCommon-metadata.xml",
        # No certificate: the signature is stripped without verification
        "certificate_path": None,
        "allow_legacy_algorithms": False,
    },
    "connection_manager": {
        "url": "https://localhost:9999/pf-mgmt-ws/ws/ConnectionMigrationMgr",
        "username": "heuristics",
        # Supply via MDP_CM_PASSWORD rather than the config file
        "password": "",
        "verify_tls": True,
        "timeout_connect": 10,
        # Large connections with many endpoints can take a while to save
        "timeout_read": 120,
    },
    "connection": {
        # Copy from the certificate management detail screen
        "signing_key_fingerprint": "B12B687C1E6F3AB59E05823D7C19CF8F",
        "bindings": {
            "Redirect": True,
            "POST": True,
            "SOAP": True,
            "Artifact": True,
        },
        # Prefer SAML 2.0 over SAML 1.1 when a role lists both
        "preferred_protocol": "urn:oasis:names:tc:SAML:2.0:protocol",
        # SAML 1.1 needs a default target resource per SP connection
        "default_target_resource": "http://dummy",
        # Placeholder backchannel password, negotiate per partner out-of-band
        "basic_auth_password": "",
        "name_prefix": "[P] ",
    },
    "adapters": {
        "idp": {
            "instance_id": "LDAPADAPTER0",
            "attribute_map": [
                {"source": "subject", "target": "SAML_SUBJECT"},
            ],
        },
        "sp": {
            "instance_id": "OTKAPACHE0",
            "attribute_map": [
                {"source": "SAML_SUBJECT", "target": "subject"},
            ],
        },
    },
    "entities": {
        "include": [],
        "exclude": [],
    },
    "logging": {
        "level": "INFO",
        "log_file": "logs/metadata-provisioner.log",
        "redact_secrets": True,
    },
}

# Default configuration file path
DEFAULT_CONFIG_PATH = "config/config.json"
