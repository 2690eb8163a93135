import logging
import secrets
import string

from src.config import MAX_CODE_ATTEMPTS, SHORT_CODE_LENGTH
from src.exceptions import GenerationExhausted

logger = logging.getLogger(__name__)

ALPHABET = string.ascii_letters + string.digits + "_-"


def generate_code(length: int = SHORT_CODE_LENGTH) -> str:
    """URL-safe random code. 8 chars over 64 symbols is 48 bits of entropy."""
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


class CodeGenerator:
    """Hands out codes not yet present in the store.

    One instance serves one link creation: pre-check collisions and collisions
    reported by the insert share the same attempt budget.
    """

    def __init__(self, links, length=SHORT_CODE_LENGTH, max_attempts=MAX_CODE_ATTEMPTS, generate=generate_code):
        self.links = links
        self.length = length
        self.max_attempts = max_attempts
        self.generate = generate
        self.attempts = 0

    async def next_code(self) -> str:
        while self.attempts < self.max_attempts:
            self.attempts += 1
            code = self.generate(self.length)
            if not await self.links.alias_taken(code):
                return code
            logger.debug("Short code %s already taken (attempt %d)", code, self.attempts)
        raise GenerationExhausted("Unable to generate unique short code")
