"""
Capability matching.

Finds the capabilities that satisfy a component's requirement and binds the
requirement to one of them. Choosing among several candidates is delegated
to a selection strategy so matching itself never does any I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence

from halsync.core.cluster.models import Capability, CapabilitySpec, Component, RequiredCapability
from halsync.core.errors import NoMatchError

logger = logging.getLogger(__name__)

Selector = Callable[[RequiredCapability, Sequence[Capability]], Capability]


def match(required: CapabilitySpec, candidates: Iterable[Capability]) -> list[Capability]:
    """Return the candidates satisfying ``required``, in input order."""
    return [c for c in candidates if c.spec.matches(required)]


def first_match(requirement: RequiredCapability, matches: Sequence[Capability]) -> Capability:
    """Selection strategy picking the first candidate."""
    return matches[0]


def resolve(
    requirement: RequiredCapability,
    matches: Sequence[Capability],
    select: Selector,
) -> Capability:
    """
    Pick the capability a requirement binds to.

    A single match is chosen automatically; several go through ``select``.
    The chosen name is stored in ``requirement.bound_to``.

    Raises:
        NoMatchError: If nothing matches
    """
    if not matches:
        raise NoMatchError(requirement.name, requirement.spec.display())

    if len(matches) == 1:
        chosen = matches[0]
        logger.info(
            "Automatically selected only matching capability %s for %s",
            chosen.name,
            requirement.name,
        )
    else:
        chosen = select(requirement, matches)
        logger.info("Selected capability %s for %s", chosen.name, requirement.name)

    requirement.bound_to = chosen.name
    return chosen


def bind_requirements(
    component: Component,
    candidates: Sequence[Capability],
    select: Selector,
    rebind: bool = False,
) -> list[str]:
    """
    Bind a component's requirements to capabilities.

    Only unbound requirements are considered unless ``rebind`` is set.

    Returns:
        Names of the requirements whose binding changed

    Raises:
        NoMatchError: For the first requirement nothing satisfies
    """
    changed = []
    for requirement in component.spec.capabilities.requires:
        if requirement.is_bound and not rebind:
            logger.debug("Requirement %s already bound to %s", requirement.name, requirement.bound_to)
            continue
        previous = requirement.bound_to
        resolve(requirement, match(requirement.spec, candidates), select)
        if requirement.bound_to != previous:
            changed.append(requirement.name)
    return changed
