"""Short code generation utilities."""

import random
import string
from typing import Optional, Sequence


class ShortCodeGenerator:
    """Generate random base62 short codes.

    Codes are not unique by themselves; uniqueness is enforced by the
    link service's existence check against the store.
    """

    # Base62 characters (digits, uppercase, lowercase)
    BASE62_CHARS = string.digits + string.ascii_uppercase + string.ascii_lowercase

    DEFAULT_LENGTHS = (6, 7, 8)

    def __init__(
        self,
        lengths: Sequence[int] = DEFAULT_LENGTHS,
        rng: Optional[random.Random] = None,
    ):
        """Initialize short code generator.

        Args:
            lengths: Candidate lengths, one picked uniformly per code
            rng: Random source (defaults to the OS entropy pool)
        """
        if not lengths or min(lengths) < 1:
            raise ValueError("lengths must be a non-empty sequence of positive integers")
        self.lengths = tuple(lengths)
        self._rng = rng or random.SystemRandom()

    def generate(self) -> str:
        """Generate a random short code.

        Returns:
            Code of a length drawn uniformly from ``lengths``, each
            character drawn uniformly from the 62-symbol alphabet
        """
        length = self._rng.choice(self.lengths)
        return ''.join(self._rng.choices(self.BASE62_CHARS, k=length))

