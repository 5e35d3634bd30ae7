"""Samuel Says puzzle model.

Core value types for the Samuel Says module: symbols, button colours,
coloured symbols, the bomb environment snapshot, and the sticky state
that persists across the stages of one puzzle instance. Also provides
the displayed-sequence generator and a shorthand notation for entering
sequences by hand.
"""

from __future__ import annotations

import dataclasses
import enum
import functools
import random


# =============================================================================
# ANSI Color Constants
# =============================================================================

class _Colors:
    """ANSI escape codes for terminal coloring."""
    BLUE = "\033[94m"
    RED = "\033[91m"
    YELLOW = "\033[93m"
    GREEN = "\033[92m"
    DIM = "\033[2m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


# Modules whose presence satisfies the yellow "Simon variant" condition.
SIMON_VARIANT_MODULES = ("Simon Shouts", "Simon Sends")


# =============================================================================
# Enums
# =============================================================================

class Symbol(enum.Enum):
    """A Morse symbol shown on the display."""
    DOT = "."
    DASH = "-"

    def inverted(self) -> Symbol:
        """Returns the opposite symbol."""
        return Symbol.DASH if self == Symbol.DOT else Symbol.DOT


@functools.total_ordering
class Colour(enum.Enum):
    """Colour of a button, in physical button order.

    The value doubles as the button's position, so colours compare
    RED < YELLOW < GREEN < BLUE.
    """
    RED = 0
    YELLOW = 1
    GREEN = 2
    BLUE = 3

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Colour):
            return NotImplemented
        return self.value < other.value

    @property
    def letter(self) -> str:
        """One-letter abbreviation used in sequence notation."""
        return self.name[0]

    @property
    def label(self) -> str:
        """Capitalized colour name, e.g. ``"Red"``."""
        return self.name.capitalize()

    def ansi(self) -> str:
        """Returns the ANSI color code for this button colour."""
        return {
            Colour.RED: _Colors.RED,
            Colour.YELLOW: _Colors.YELLOW,
            Colour.GREEN: _Colors.GREEN,
            Colour.BLUE: _Colors.BLUE,
        }[self]

    @classmethod
    def from_letter(cls, letter: str) -> Colour:
        """Look up a colour by its one-letter abbreviation.

        Raises:
            ValueError: If the letter is not one of R, Y, G or B.
        """
        upper = letter.upper()
        for colour in cls:
            if colour.letter == upper:
                return colour
        raise ValueError(f"Unknown colour letter: {letter!r}")


# =============================================================================
# ColouredSymbol
# =============================================================================

@dataclasses.dataclass(frozen=True)
class ColouredSymbol:
    """A single flash of the display: a colour paired with a symbol.

    Attributes:
        colour: The colour the symbol is shown in.
        symbol: Dot or dash.
    """
    colour: Colour
    symbol: Symbol

    @property
    def notation(self) -> str:
        """Shorthand token, e.g. ``"R-"`` for a red dash."""
        return f"{self.colour.letter}{self.symbol.value}"

    def describe(self) -> str:
        """Human-readable description, e.g. ``"Red dash"``."""
        return f"{self.colour.label} {self.symbol.name.lower()}"

    def __str__(self) -> str:
        return f"{self.colour.ansi()}{self.notation}{_Colors.RESET}"


def pattern_of(sequence: tuple[ColouredSymbol, ...] | list[ColouredSymbol]) -> str:
    """The dot/dash pattern of a sequence as a Morse string, e.g. ``".-."``."""
    return "".join(cs.symbol.value for cs in sequence)


# =============================================================================
# Sequence Notation
# =============================================================================

def _parse_token(token: str) -> ColouredSymbol:
    """Parse a single shorthand token like ``"R."`` or ``"b-"``.

    Raises:
        ValueError: If the token is not a colour letter followed by a
            dot or dash.
    """
    if len(token) != 2:
        raise ValueError(f"Invalid sequence token: {token!r}")
    colour = Colour.from_letter(token[0])
    try:
        symbol = Symbol(token[1])
    except ValueError:
        raise ValueError(f"Invalid symbol in token: {token!r}")
    return ColouredSymbol(colour, symbol)


def parse_sequence(notation: str) -> tuple[ColouredSymbol, ...]:
    """Create a displayed sequence from shorthand string notation.

    Tokens are separated by whitespace. Each token is a colour letter
    (``R``, ``Y``, ``G``, ``B``, case-insensitive) followed by ``.`` for
    a dot or ``-`` for a dash.

    Args:
        notation: The shorthand string, e.g. ``"R. Y- G- B."``.

    Returns:
        The parsed sequence as a tuple of ColouredSymbol.

    Raises:
        ValueError: If the notation is empty, a token is malformed, or
            the sequence is not 3 or 4 symbols long.
    """
    if not notation or not notation.strip():
        raise ValueError("Notation string is empty")
    sequence = tuple(_parse_token(t) for t in notation.split())
    if not (3 <= len(sequence) <= 4):
        raise ValueError(
            f"Displayed sequence must be 3 or 4 symbols long, "
            f"got {len(sequence)}"
        )
    return sequence


def format_sequence(sequence: tuple[ColouredSymbol, ...] | list[ColouredSymbol]) -> str:
    """Render a sequence in the notation accepted by ``parse_sequence``."""
    return " ".join(cs.notation for cs in sequence)


# =============================================================================
# Sequence Generator
# =============================================================================

def random_sequence_length(rng: random.Random | None = None) -> int:
    """Pick a displayed sequence length: 3 or 4 with equal chance."""
    rng = rng or random.Random()
    return 3 + rng.randint(0, 1)


def generate_random_sequence(
    length: int,
    rng: random.Random | None = None,
) -> tuple[ColouredSymbol, ...]:
    """Generate a displayed sequence with uniformly drawn colours and symbols.

    Args:
        length: Number of symbols (3 or 4).
        rng: Optional random generator for reproducibility.

    Returns:
        The displayed sequence.

    Raises:
        ValueError: If length is not 3 or 4.
    """
    if length not in (3, 4):
        raise ValueError(f"Sequence length must be 3 or 4, got {length}")
    rng = rng or random.Random()
    colours = list(Colour)
    symbols = list(Symbol)
    return tuple(
        ColouredSymbol(rng.choice(colours), rng.choice(symbols))
        for _ in range(length)
    )


# =============================================================================
# Bomb Environment
# =============================================================================

@dataclasses.dataclass
class BombInfo:
    """Raw facts about the bomb the puzzle sits on.

    Attributes:
        module_names: Names of every module on the bomb, this one included.
        battery_count: Number of batteries.
        ports: One entry per port, e.g. ``["Parallel", "Parallel", "PS2"]``.
        lit_indicators: Labels of lit indicators.
        unlit_indicators: Labels of unlit indicators.
        serial_number: The bomb's serial number.
    """
    module_names: list[str] = dataclasses.field(default_factory=list)
    battery_count: int = 0
    ports: list[str] = dataclasses.field(default_factory=list)
    lit_indicators: list[str] = dataclasses.field(default_factory=list)
    unlit_indicators: list[str] = dataclasses.field(default_factory=list)
    serial_number: str = ""


@dataclasses.dataclass(frozen=True)
class EnvironmentSnapshot:
    """Counters derived from the bomb, captured once per puzzle instance.

    Attributes:
        module_name_contains_red: Some module name contains "red".
        simon_variant_present: Simon Shouts or Simon Sends is on the bomb.
        battery_count: Number of batteries.
        total_ports: Number of ports.
        unique_port_types: Number of distinct port types.
        lit_indicators: Number of lit indicators.
        unlit_indicators: Number of unlit indicators.
        serial_digit_sum: Sum of the digits in the serial number.
        module_count: Number of modules on the bomb.
    """
    module_name_contains_red: bool = False
    simon_variant_present: bool = False
    battery_count: int = 0
    total_ports: int = 0
    unique_port_types: int = 0
    lit_indicators: int = 0
    unlit_indicators: int = 0
    serial_digit_sum: int = 0
    module_count: int = 0

    def __post_init__(self) -> None:
        for field in dataclasses.fields(self):
            value = getattr(self, field.name)
            if isinstance(value, bool):
                continue
            if value < 0:
                raise ValueError(
                    f"{field.name} must be non-negative, got {value}"
                )

    @property
    def indicator_count(self) -> int:
        """Lit plus unlit indicators."""
        return self.lit_indicators + self.unlit_indicators

    @classmethod
    def capture(cls, bomb: BombInfo) -> EnvironmentSnapshot:
        """Read every counter the rule tables need from the bomb.

        Args:
            bomb: The raw bomb facts.

        Returns:
            An immutable snapshot.
        """
        names = bomb.module_names
        return cls(
            module_name_contains_red=any(
                "red" in name.lower() for name in names
            ),
            simon_variant_present=any(
                name in names for name in SIMON_VARIANT_MODULES
            ),
            battery_count=bomb.battery_count,
            total_ports=len(bomb.ports),
            unique_port_types=len(set(bomb.ports)),
            lit_indicators=len(bomb.lit_indicators),
            unlit_indicators=len(bomb.unlit_indicators),
            serial_digit_sum=sum(
                int(ch) for ch in bomb.serial_number if ch.isdigit()
            ),
            module_count=len(names),
        )

    def __str__(self) -> str:
        return (
            f"{_Colors.BOLD}Bomb{_Colors.RESET} | "
            f"batteries={self.battery_count} "
            f"ports={self.total_ports} ({self.unique_port_types} types) "
            f"indicators={self.lit_indicators} lit/"
            f"{self.unlit_indicators} unlit "
            f"serial digit sum={self.serial_digit_sum} "
            f"modules={self.module_count}"
        )


# =============================================================================
# Cross-Stage State
# =============================================================================

@dataclasses.dataclass
class CrossStageState:
    """Sticky flags shared by every stage of one puzzle instance.

    Both flags only ever go from False to True.

    Attributes:
        green_has_appeared_before: Set once green rule 3 has fired.
        red_has_failed_to_appear: Set once a displayed sequence had no red.
    """
    green_has_appeared_before: bool = False
    red_has_failed_to_appear: bool = False

    def mark_green_appeared(self) -> None:
        self.green_has_appeared_before = True

    def mark_red_missing(self) -> None:
        self.red_has_failed_to_appear = True
