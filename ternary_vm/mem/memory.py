"""
Ternary VM — Flat Tryte-Addressable Memory

The default addressable store for the T6010 machine: one tryte per
address, addresses are signed integers covering the balanced range of
`address_trits` trits (10 trits → -29524 … 29524).

Store contract used by the decoder and the CPU:
  read_tryte(addr)         -> Tryte    (AddressError if out of range)
  write_tryte(addr, value) -> None     (AddressError if out of range)

Anything exposing those two methods can stand in for Memory (tests use
small fakes to observe access patterns).

Image text format (.tri):
  ; comment to end of line
  -319  5  %+-0+00    one tryte per token: decimal (wrapped) or %trits
  @100               move the load cursor to address 100
"""

from typing import Dict, Iterable, List, Union

from ..config import ADDRESS_TRITS
from ..errors import AddressError
from ..numerals import Tryte, max_value

ZERO = Tryte(0)


class Memory:
    """Flat tryte memory with range-checked access."""

    def __init__(self, address_trits: int = ADDRESS_TRITS):
        self.address_trits = address_trits
        self.max_address = max_value(address_trits)
        self.min_address = -self.max_address
        self._mem: List[Tryte] = [ZERO] * (2 * self.max_address + 1)

    def contains(self, addr: int) -> bool:
        return self.min_address <= addr <= self.max_address

    def _index(self, addr: int) -> int:
        if not isinstance(addr, int) or not self.contains(addr):
            raise AddressError(
                addr, f"Address {addr} outside {self.min_address}…{self.max_address}")
        return addr - self.min_address

    # --- Core read/write ---

    def read_tryte(self, addr: int) -> Tryte:
        return self._mem[self._index(addr)]

    def write_tryte(self, addr: int, value: Tryte):
        if not isinstance(value, Tryte):
            raise TypeError(f"Memory stores Tryte values, got {type(value).__name__}")
        self._mem[self._index(addr)] = value

    # --- Bulk load ---

    def load_trytes(self, values: Iterable[Union[int, Tryte]], base: int = 0) -> int:
        """Write consecutive trytes starting at `base`.

        Plain ints are wrapped into trytes. Returns the number written.
        """
        count = 0
        for i, v in enumerate(values):
            if not isinstance(v, Tryte):
                v = Tryte.from_int(v)
            self.write_tryte(base + i, v)
            count += 1
        return count

    def load_image(self, text: str, base: int = 0) -> int:
        """Load a .tri text image. Returns the number of trytes written."""
        image = parse_image(text, base)
        for addr, value in image.items():
            self.write_tryte(addr, value)
        return len(image)

    # --- Dump ---

    def dump(self, start: int, length: int = 27) -> str:
        """Nonary dump, 9 trytes per line."""
        lines = []
        for offset in range(0, length, 9):
            addr = start + offset
            cells = []
            for i in range(min(9, length - offset)):
                a = addr + i
                cells.append(self.read_tryte(a).as_nonary_string() if self.contains(a) else '...')
            lines.append(f'{addr:+7d}  ' + ' '.join(cells))
        return '\n'.join(lines)


def parse_image(text: str, base: int = 0) -> Dict[int, Tryte]:
    """Parse a .tri text image into {address: Tryte}."""
    image = {}
    cursor = base
    for line_num, line in enumerate(text.splitlines(), 1):
        line = line.split(';', 1)[0]
        for token in line.split():
            try:
                if token.startswith('@'):
                    cursor = int(token[1:])
                    continue
                image[cursor] = parse_image_token(token)
            except ValueError as e:
                raise ValueError(f"Line {line_num}: bad image token {token!r}: {e}") from None
            cursor += 1
    return image


def parse_image_token(token: str) -> Tryte:
    if token.startswith('%'):
        return Tryte.from_trit_string(token[1:])
    return Tryte.from_int(int(token))
