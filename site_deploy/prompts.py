"""
Ways of getting the operator's go-ahead once the DNS record is published.

The workflow only needs a callable taking the prompt message. The interactive
version blocks on the keyboard for as long as it takes; the automatic one is
for CI runs where the DNS record is managed elsewhere.
"""

import logging
from typing import Callable

from site_deploy.errors import OperatorAbortError

logger = logging.getLogger(__name__)

ConfirmationSource = Callable[[str], None]

DNS_RECORD_PROMPT: str = "Press [Enter] key once DNS record has been added..."


def interactive_confirmation(message: str = DNS_RECORD_PROMPT) -> None:
    """
    Waits, with no timeout, until the operator presses Enter.

    Raises:
        OperatorAbortError: If stdin is closed before anything is entered
            (for example when the script runs without a terminal).
    """
    try:
        input(message)
    except EOFError as e:
        raise OperatorAbortError(
            "Input stream closed before the DNS record was confirmed. Re-run with --yes for non-interactive use."
        ) from e
    logger.info("Operator confirmed the DNS record.")


def automatic_confirmation(message: str = DNS_RECORD_PROMPT) -> None:
    """Confirms straight away without reading stdin. Used with --yes."""
    logger.info("Skipping the DNS confirmation prompt (--yes given).")
