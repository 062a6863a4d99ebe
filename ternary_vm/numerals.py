"""
Ternary VM — Balanced-Ternary Numeral Primitives

Value types for the T6010 machine:
  Trybble  3 trits   [-13, 13]          (plain int, decode unit)
  Tryte    6 trits   [-364, 364]        (storage unit, stack element)
  Word    12 trits   [-265720, 265720]  (addresses, two-tryte immediates)

Layout:
  Tryte = hi_trybble * 27 + lo_trybble
  Word  = hi_tryte * 729 + lo_tryte

Overflow wraps: a result is reduced to its low 6 (or 12) trits and the
overflow trit is handed back separately as a carry in {-1, 0, +1}.
Negation never overflows because every range is symmetric around zero.

Text forms:
  trit string    '-', '0', '+' per trit, most significant first
  nonary string  one balanced-nonary digit per trit pair, digits -4..4
                 written 'zyxw01234'
"""

from dataclasses import dataclass
from typing import List, Tuple

TRYBBLE_TRITS = 3
TRYTE_TRITS = 6
WORD_TRITS = 12

TRIT_CHARS = {'-': -1, '0': 0, '+': 1}
NONARY_DIGITS = 'zyxw01234'


def max_value(trits: int) -> int:
    """Largest value representable in `trits` balanced-ternary digits."""
    return (3 ** trits - 1) // 2


TRYBBLE_MAX = max_value(TRYBBLE_TRITS)   # 13
TRYTE_MAX = max_value(TRYTE_TRITS)       # 364
WORD_MAX = max_value(WORD_TRITS)         # 265720


def wrap(value: int, trits: int) -> int:
    """Reduce `value` to its low `trits` balanced-ternary digits."""
    half = max_value(trits)
    return (value + half) % (3 ** trits) - half


def to_trits(value: int, trits: int) -> List[int]:
    """Balanced-ternary digits of `value`, most significant first.

    The value is wrapped first, so the result always has exactly
    `trits` entries.
    """
    value = wrap(value, trits)
    digits = []
    for _ in range(trits):
        r = value % 3
        if r == 2:
            r = -1
        digits.append(r)
        value = (value - r) // 3
    digits.reverse()
    return digits


def from_trits(digits) -> int:
    value = 0
    for d in digits:
        if d not in (-1, 0, 1):
            raise ValueError(f"Not a balanced trit: {d!r}")
        value = value * 3 + d
    return value


def parse_trit_string(text: str) -> int:
    """'+-0' style string -> integer."""
    if not text:
        raise ValueError("Empty trit string")
    try:
        return from_trits(TRIT_CHARS[ch] for ch in text)
    except KeyError as e:
        raise ValueError(f"Invalid trit character {e.args[0]!r} in {text!r}") from None


def trit_string(value: int, trits: int) -> str:
    chars = {v: k for k, v in TRIT_CHARS.items()}
    return ''.join(chars[d] for d in to_trits(value, trits))


def nonary_string(value: int, trits: int) -> str:
    digits = to_trits(value, trits)
    out = []
    for i in range(0, trits, 2):
        out.append(NONARY_DIGITS[digits[i] * 3 + digits[i + 1] + 4])
    return ''.join(out)


def split_trybbles(value: int) -> Tuple[int, int]:
    """Split a tryte value into (hi_trybble, lo_trybble)."""
    lo = wrap(value, TRYBBLE_TRITS)
    return (value - lo) // 27, lo


# ──────────────────────────────────────────────
# Tryte
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Tryte:
    """A 6-trit balanced-ternary value."""

    value: int = 0

    def __post_init__(self):
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise TypeError(f"Tryte value must be int, got {type(self.value).__name__}")
        if not -TRYTE_MAX <= self.value <= TRYTE_MAX:
            raise ValueError(f"Tryte value {self.value} out of range ±{TRYTE_MAX}")

    @classmethod
    def from_int(cls, value: int) -> 'Tryte':
        """Build a tryte from any int, keeping only the low 6 trits."""
        return cls(wrap(value, TRYTE_TRITS))

    @classmethod
    def from_trybbles(cls, hi: int, lo: int) -> 'Tryte':
        for part in (hi, lo):
            if not -TRYBBLE_MAX <= part <= TRYBBLE_MAX:
                raise ValueError(f"Trybble value {part} out of range ±{TRYBBLE_MAX}")
        return cls(hi * 27 + lo)

    @classmethod
    def from_trit_string(cls, text: str) -> 'Tryte':
        if len(text) > TRYTE_TRITS:
            raise ValueError(f"Trit string {text!r} longer than {TRYTE_TRITS} trits")
        return cls(parse_trit_string(text))

    # --- Trybble access (decode unit) ---

    @property
    def hi_value(self) -> int:
        return split_trybbles(self.value)[0]

    @property
    def lo_value(self) -> int:
        return split_trybbles(self.value)[1]

    # --- Conversion ---

    def to_integer(self) -> int:
        return self.value

    def __int__(self) -> int:
        return self.value

    def trits(self) -> List[int]:
        return to_trits(self.value, TRYTE_TRITS)

    def as_trit_string(self) -> str:
        return trit_string(self.value, TRYTE_TRITS)

    def as_nonary_string(self) -> str:
        return nonary_string(self.value, TRYTE_TRITS)

    # --- Arithmetic: (result, carry) ---

    @staticmethod
    def add(a: 'Tryte', b: 'Tryte') -> Tuple['Tryte', int]:
        total = a.value + b.value
        result = wrap(total, TRYTE_TRITS)
        return Tryte(result), (total - result) // 3 ** TRYTE_TRITS

    @staticmethod
    def sub(a: 'Tryte', b: 'Tryte') -> Tuple['Tryte', int]:
        """a - b"""
        return Tryte.add(a, -b)

    def __neg__(self) -> 'Tryte':
        return Tryte(-self.value)

    def __str__(self) -> str:
        return str(self.value)


# ──────────────────────────────────────────────
# Word
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Word:
    """A 12-trit value made of a high and a low tryte."""

    value: int = 0

    def __post_init__(self):
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise TypeError(f"Word value must be int, got {type(self.value).__name__}")
        if not -WORD_MAX <= self.value <= WORD_MAX:
            raise ValueError(f"Word value {self.value} out of range ±{WORD_MAX}")

    @classmethod
    def from_int(cls, value: int) -> 'Word':
        return cls(wrap(value, WORD_TRITS))

    @classmethod
    def from_trytes(cls, hi: Tryte, lo: Tryte) -> 'Word':
        return cls(hi.value * 3 ** TRYTE_TRITS + lo.value)

    @property
    def lo_tryte(self) -> Tryte:
        return Tryte(wrap(self.value, TRYTE_TRITS))

    @property
    def hi_tryte(self) -> Tryte:
        return Tryte((self.value - self.lo_tryte.value) // 3 ** TRYTE_TRITS)

    def to_integer(self) -> int:
        return self.value

    def __int__(self) -> int:
        return self.value

    def as_trit_string(self) -> str:
        return trit_string(self.value, WORD_TRITS)

    def as_nonary_string(self) -> str:
        return nonary_string(self.value, WORD_TRITS)

    @staticmethod
    def add(a: 'Word', b: 'Word') -> Tuple['Word', int]:
        total = a.value + b.value
        result = wrap(total, WORD_TRITS)
        return Word(result), (total - result) // 3 ** WORD_TRITS

    def __neg__(self) -> 'Word':
        return Word(-self.value)

    def __str__(self) -> str:
        return str(self.value)
