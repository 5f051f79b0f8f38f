"""Include/exclude selection of metadata entities."""

import logging
from typing import Protocol, Set

logger = logging.getLogger(__name__)


class EntitySelection(Protocol):
    """Anything exposing include and exclude entityID sets."""

    @property
    def include(self) -> Set[str]: ...

    @property
    def exclude(self) -> Set[str]: ...


def skip_entity(entity_id: str, selection: EntitySelection) -> bool:
    """Decide whether an entity is left out of the run.

    An excluded entity is always skipped. When the include set is non-empty,
    only entities listed in it are processed; an empty include set places no
    restriction.

    Args:
        entity_id: entityID of the candidate entity
        selection: EntitySelectionConfig or Config

    Returns:
        True if the entity must be skipped

    Example:
        >>> selection = EntitySelectionConfig(include={"a", "b"}, exclude={"b"})
        >>> skip_entity("b", selection)
        True
        >>> skip_entity("c", selection)
        True
    """
    if entity_id in selection.exclude:
        logger.debug(f"Skipping excluded entity {entity_id}")
        return True
    if selection.include and entity_id not in selection.include:
        logger.debug(f"Skipping entity {entity_id}: not in include list")
        return True
    return False
