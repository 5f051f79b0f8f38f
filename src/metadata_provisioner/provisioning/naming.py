"""Friendly connection names and their per-run deduplication.

Connection names must be unique per role on the connection management
service, but federation metadata frequently lists several entities under the
same organization name.
"""

import logging
from typing import Dict, Tuple, Union

from ..models.metadata import EntityDescriptor, Role

logger = logging.getLogger(__name__)

DEFAULT_NAME_PREFIX = "[P] "


def friendly_base_name(entity: EntityDescriptor, prefix: str = DEFAULT_NAME_PREFIX) -> str:
    """Base connection name: prefix plus organization name, else entityID."""
    if entity.organization_name:
        return f"{prefix}{entity.organization_name}"
    return f"{prefix}{entity.entity_id}"


class NameRegistry:
    """Per-run registry handing out unique connection names per role.

    The first request for a name returns it unchanged; later requests append
    an occurrence counter. IDP and SP names are tracked separately because the
    remote service scopes name uniqueness by role.

    Example:
        >>> registry = NameRegistry()
        >>> registry.generate("[P] Acme", Role.IDP)
        '[P] Acme'
        >>> registry.generate("[P] Acme", "idp")
        '[P] Acme (1)'
        >>> registry.generate("[P] Acme", Role.SP)
        '[P] Acme'
    """

    def __init__(self) -> None:
        self._counters: Dict[Tuple[Role, str], int] = {}

    def generate(self, base_name: str, role: Union[Role, str]) -> str:
        """Return a name for base_name that is unique within role for this run.

        Args:
            base_name: Desired connection name
            role: Role or case-insensitive role name ("idp", "sp")

        Returns:
            base_name on first use, otherwise "base_name (n)"
        """
        key = (Role.from_value(role), base_name)
        count = self._counters.get(key)
        if count is None:
            self._counters[key] = 1
            return base_name

        self._counters[key] = count + 1
        name = f"{base_name} ({count})"
        logger.debug(f"Duplicate {key[0].value} connection name {base_name!r}; using {name!r}")
        return name

    def reset(self) -> None:
        self._counters.clear()
