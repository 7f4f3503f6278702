"""
Answer filtering and per-subscription deduplication.
"""
import structlog

from ..models.common import MessageKind
from ..models.ssdp import ALL_SERVICES, Answer, ParsedMessage, Subscription

logger = structlog.get_logger(__name__)

# USN -> last answer delivered for it, scoped to one subscription.
SeenSet = dict[str, Answer]


def get_header(headers: Answer, name: str) -> str | None:
    """Looks up a header value by case-insensitive name."""
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def accept_message(message: ParsedMessage, subscription: Subscription) -> bool:
    """Decides whether a parsed datagram is a service answer for ``subscription``.

    Responses are always accepted. NOTIFY announcements are accepted only when
    the subscription listens for them and the NT header matches its service
    type (or the subscription asks for ``ssdp:all``). M-SEARCH requests, our own
    included, and anything unclassifiable are rejected.
    """
    kind = message.kind
    if kind == MessageKind.RESPONSE:
        return True

    if kind == MessageKind.NOTIFY:
        if not subscription.listen_for_notifies:
            logger.debug("Dropping NOTIFY, not listening for notifies")
            return False
        if subscription.service_type == ALL_SERVICES:
            return True
        nt = get_header(message.headers, "NT")
        if nt == subscription.service_type:
            return True
        logger.debug("Dropping NOTIFY for other service type", nt=nt, service_type=subscription.service_type)
        return False

    logger.debug("Dropping datagram", kind=kind)
    return False


def admit_answer(answer: Answer, seen: SeenSet) -> bool:
    """Admits an answer unless its USN was already delivered.

    Answers without a USN cannot be tracked and are admitted every time.
    Admitted answers with a USN are recorded in ``seen``.
    """
    usn = get_header(answer, "USN")
    if usn is None:
        return True
    if usn in seen:
        logger.debug("Dropping duplicate answer", usn=usn)
        return False
    seen[usn] = answer
    return True
