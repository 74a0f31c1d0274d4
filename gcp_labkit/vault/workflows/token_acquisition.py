"""Interactive token acquisition with bounded validation attempts."""
import logging
from enum import Enum
from typing import Callable, Optional

from gcp_labkit.common.domains.errors import AuthExhaustedError, LabkitError

logger = logging.getLogger(__name__)

Prompt = Callable[[str], str]


class TokenState(str, Enum):
    AWAITING_INPUT = "awaiting_input"
    PROBING = "probing"
    VALID = "valid"
    EXHAUSTED = "exhausted"


def acquire_token(
    validate: Callable[[str], bool],
    prompt: Prompt = input,
    default_token: Optional[str] = None,
    max_attempts: int = 3,
) -> str:
    """
    Ask for a token until one validates or attempts run out.

    Args:
        validate: Probes the server with a token; True when it authorizes
        prompt: Input provider, ``input`` for a human operator
        default_token: Used when the operator just presses Enter
        max_attempts: Validation probes allowed before giving up

    Returns:
        The first token that validated

    Raises:
        AuthExhaustedError: After ``max_attempts`` failed probes
        LabkitError: If the prompt has no more input
    """
    message = "Paste Vault Root Token to use for this session"
    if default_token:
        message += " [Enter for the dev root token]"
    message += ": "

    state = TokenState.AWAITING_INPUT
    attempts = 0
    while state is TokenState.AWAITING_INPUT:
        try:
            entered = prompt(message)
        except EOFError:
            raise LabkitError("No token input available (stdin is closed)")
        token = entered.strip() or (default_token or "")
        state = TokenState.PROBING
        attempts += 1

        if token and validate(token):
            state = TokenState.VALID
            logger.info("Token validated. Continuing...")
            return token

        remaining = max_attempts - attempts
        if remaining <= 0:
            state = TokenState.EXHAUSTED
            break
        logger.warning(f"Token invalid or Vault not reachable with that token. Attempts left: {remaining}")
        state = TokenState.AWAITING_INPUT

    raise AuthExhaustedError(max_attempts)
