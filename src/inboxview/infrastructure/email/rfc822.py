from __future__ import annotations
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser

from loguru import logger


def parse_rfc822(data: bytes) -> EmailMessage:
    return BytesParser(policy=policy.default).parsebytes(data)


def header(em: EmailMessage, name: str) -> str:
    """First ``name`` header as text; '' when absent or unparseable."""
    try:
        value = em.get(name)
    except (ValueError, TypeError, IndexError) as e:
        logger.debug(f"Malformed {name} header: {e}")
        return ""
    return str(value).strip() if value is not None else ""


def displayable_body(em: EmailMessage) -> str:
    # Prefer text/html; fall back to text/plain; '' if neither decodes
    for preference in ("html", "plain"):
        part = em.get_body(preferencelist=(preference,))
        if part is None:
            continue
        try:
            return part.get_content()
        except (LookupError, UnicodeDecodeError, ValueError, KeyError) as e:
            logger.warning(f"Could not decode text/{preference} part: {e}")
    return ""
