"""Check-then-act helper for idempotent resource creation."""
import logging
from enum import Enum
from typing import Callable, Iterable

from ..domains.errors import ConnectivityError, ResourceCreationError

logger = logging.getLogger(__name__)


class EnsureResult(str, Enum):
    CREATED = "created"
    ALREADY_PRESENT = "already_present"


def ensure(
    kind: str,
    identifier: str,
    list_existing: Callable[[], Iterable[str]],
    create: Callable[[], object],
) -> EnsureResult:
    """
    Create a resource only if it is not already listed.

    Args:
        kind: Human-readable resource kind, used in log lines and errors
        identifier: Name the listing is expected to contain
        list_existing: Returns current identifiers. Must return an empty
            collection for "none exist" and raise ConnectivityError when the
            service cannot be reached.
        create: Creates the resource

    Returns:
        EnsureResult.CREATED or EnsureResult.ALREADY_PRESENT

    Raises:
        ConnectivityError: If listing (or creating) cannot reach the service
        ResourceCreationError: If the create call fails

    Listing and creation are two separate calls, so a concurrent creator can
    slip in between them. The create call then fails with the service's
    duplicate error and is reported as a ResourceCreationError.
    """
    existing = set(list_existing())
    if identifier in existing:
        logger.info(f"{kind} '{identifier}' already present")
        return EnsureResult.ALREADY_PRESENT

    try:
        create()
    except (ConnectivityError, ResourceCreationError):
        raise
    except Exception as e:
        raise ResourceCreationError(kind, identifier, e) from e

    logger.info(f"Created {kind} '{identifier}'")
    return EnsureResult.CREATED
