"""Sequence transformation engine for Samuel Says.

Turns a displayed sequence into the single coloured symbol the player
must submit. Each displayed symbol, in display order, selects a rule
from the table for its colour: the first condition that holds wins,
unless that rule was already applied this stage, in which case the
previous rule in the table (wrapping from 1 to 5) is used instead. The
rule's action rewrites the working symbol and colour buffers. Finally
a stage-dependent bomb counter picks the position to submit.

Architecture:
    StageWorkingState holds the per-stage buffers plus read access to
    the snapshot and the cross-stage flags, so every condition and
    action is a plain function of one argument. RULE_TABLES maps each
    colour to its five ordered rules.
"""

from __future__ import annotations

import collections
import dataclasses
import itertools
from typing import Callable

from samuel_says import (
    Colour,
    ColouredSymbol,
    CrossStageState,
    EnvironmentSnapshot,
    Symbol,
    format_sequence,
    pattern_of,
)

try:
    import tqdm as _tqdm_module
except ImportError:  # pragma: no cover
    _tqdm_module = None  # type: ignore[assignment]

RULES_PER_COLOUR = 5

# Patterns of length 3 and 4 only, keyed by zero-based letter position.
MORSE_LETTERS: dict[int, str] = {
    1: "-...",
    2: "-.-.",
    3: "-..",
    5: "..-.",
    6: "--.",
    7: "....",
    9: ".---",
    10: "-.-",
    11: ".-..",
    14: "---",
    15: ".--.",
    16: "--.-",
    17: ".-.",
    18: "...",
    19: "..-",
    21: "...-",
    22: ".--",
    23: "-..-",
    24: "-.--",
    25: "--..",
}

_MORSE_KEY_SPACE = 26

_RED_SWAPS = {
    Colour.RED: Colour.BLUE,
    Colour.BLUE: Colour.RED,
    Colour.YELLOW: Colour.GREEN,
    Colour.GREEN: Colour.YELLOW,
}


# =============================================================================
# Stage Working State
# =============================================================================

@dataclasses.dataclass
class StageWorkingState:
    """Everything a rule can look at or change while one stage is solved.

    Attributes:
        displayed: The displayed sequence, never modified.
        stage_number: Current stage (1-4).
        snapshot: Bomb counters.
        cross: Sticky flags for the puzzle instance.
        symbols: Working symbol buffer.
        colours: Working colour buffer.
        blue_seen_at_position_three: Blue has sat in position three at some
            point this stage.
        more_than_one_yellow_displayed: The displayed sequence has two or
            more yellows.
        applied_rules: (colour, rule index) pairs used this stage.
    """
    displayed: tuple[ColouredSymbol, ...]
    stage_number: int
    snapshot: EnvironmentSnapshot
    cross: CrossStageState
    symbols: list[Symbol]
    colours: list[Colour]
    blue_seen_at_position_three: bool = False
    more_than_one_yellow_displayed: bool = False
    applied_rules: set[tuple[Colour, int]] = dataclasses.field(
        default_factory=set,
    )

    @classmethod
    def begin(
        cls,
        displayed: tuple[ColouredSymbol, ...],
        stage_number: int,
        snapshot: EnvironmentSnapshot,
        cross: CrossStageState,
    ) -> StageWorkingState:
        """Deconstruct a displayed sequence into fresh working buffers.

        Marks ``cross.red_has_failed_to_appear`` when no red is displayed.
        """
        colours = [cs.colour for cs in displayed]
        if Colour.RED not in colours:
            cross.mark_red_missing()
        return cls(
            displayed=tuple(displayed),
            stage_number=stage_number,
            snapshot=snapshot,
            cross=cross,
            symbols=[cs.symbol for cs in displayed],
            colours=colours,
            more_than_one_yellow_displayed=colours.count(Colour.YELLOW) >= 2,
        )

    @property
    def displayed_pattern(self) -> str:
        return pattern_of(self.displayed)

    @property
    def displayed_colours(self) -> list[Colour]:
        return [cs.colour for cs in self.displayed]

    def check_blue_at_position_three(self) -> None:
        if len(self.colours) >= 3 and self.colours[2] == Colour.BLUE:
            self.blue_seen_at_position_three = True

    def reconstruct(self) -> tuple[ColouredSymbol, ...]:
        """Pair the working buffers back up into a sequence.

        Raises:
            ValueError: If the buffers have drifted to different lengths.
        """
        if len(self.symbols) != len(self.colours):
            raise ValueError(
                f"Symbol count is {len(self.symbols)}, colour count is "
                f"{len(self.colours)}; they must match to construct the "
                f"modified sequence (displayed: "
                f"{format_sequence(self.displayed)})"
            )
        return tuple(
            ColouredSymbol(colour, symbol)
            for colour, symbol in zip(self.colours, self.symbols)
        )


# =============================================================================
# Buffer Primitives
# =============================================================================

def _shift_right(items: list, offset: int) -> list:
    """Rotate right by ``offset`` places (negative rotates left)."""
    if not items:
        return list(items)
    offset %= len(items)
    return items[len(items) - offset:] + items[:len(items) - offset]


def _shift_both(state: StageWorkingState, offset: int) -> None:
    state.symbols[:] = _shift_right(state.symbols, offset)
    state.colours[:] = _shift_right(state.colours, offset)


def _duplicate_into(state: StageWorkingState, source: int, target: int) -> None:
    """Insert a copy of element ``source`` at ``target``, then drop the
    element pushed to ``target + 1``. Length is unchanged.
    """
    for buffer in (state.symbols, state.colours):
        buffer.insert(target, buffer[source])
        del buffer[target + 1]


def _remove_at(state: StageWorkingState, index: int) -> None:
    del state.symbols[index]
    del state.colours[index]


def _insert_at(
    state: StageWorkingState, index: int, symbol: Symbol, colour: Colour,
) -> None:
    state.symbols.insert(index, symbol)
    state.colours.insert(index, colour)


def find_morse_pattern(start: int, length: int) -> str:
    """First Morse pattern of ``length`` at or after key ``start``.

    Keys are scanned upward from ``start % 26``, wrapping at 26.

    Raises:
        ValueError: If no pattern has the requested length.
    """
    key = start % _MORSE_KEY_SPACE
    for _ in range(_MORSE_KEY_SPACE):
        pattern = MORSE_LETTERS.get(key)
        if pattern is not None and len(pattern) == length:
            return pattern
        key = (key + 1) % _MORSE_KEY_SPACE
    raise ValueError(f"No Morse letter has length {length}")


# =============================================================================
# Rules
# =============================================================================

@dataclasses.dataclass(frozen=True)
class Rule:
    """One row of a colour's rule table.

    Attributes:
        condition: Short description of when the rule applies.
        action: Short description of what the rule does.
        applies: Predicate over the stage state.
        apply: Mutates the stage state's buffers.
    """
    condition: str
    action: str
    applies: Callable[[StageWorkingState], bool]
    apply: Callable[[StageWorkingState], None]


def _always(state: StageWorkingState) -> bool:
    return True


# -- Red ----------------------------------------------------------------------

def _red_invert(state: StageWorkingState) -> None:
    state.symbols[:] = [s.inverted() for s in state.symbols]


def _red_all_red(state: StageWorkingState) -> None:
    state.colours[:] = [Colour.RED] * len(state.colours)


def _red_shift_by_indicators(state: StageWorkingState) -> None:
    snapshot = state.snapshot
    _shift_both(state, snapshot.lit_indicators - snapshot.unlit_indicators)


def _red_swap_colours(state: StageWorkingState) -> None:
    state.colours[:] = [_RED_SWAPS[c] for c in state.colours]


def _red_copy_forward(state: StageWorkingState) -> None:
    _duplicate_into(state, 2, 0)
    if len(state.symbols) == 4:
        _duplicate_into(state, 3, 1)


# -- Yellow -------------------------------------------------------------------

def _yellow_reverse(state: StageWorkingState) -> None:
    state.symbols.reverse()
    state.colours.reverse()


def _yellow_resize(state: StageWorkingState) -> None:
    snapshot = state.snapshot
    if len(state.symbols) == 4:
        _remove_at(state, 3 - snapshot.battery_count % 4)
    else:
        _insert_at(
            state, snapshot.serial_digit_sum % 10 % 3, Symbol.DASH, Colour.YELLOW,
        )


def _yellow_front_yellow(state: StageWorkingState) -> None:
    state.colours[0] = Colour.YELLOW
    state.colours[1] = Colour.YELLOW


def _yellow_blue_except_third(state: StageWorkingState) -> None:
    state.colours[:] = [
        c if i == 2 else Colour.BLUE for i, c in enumerate(state.colours)
    ]


def _yellow_shift_colours(state: StageWorkingState) -> None:
    state.colours[:] = _shift_right(state.colours, 2)


# -- Green --------------------------------------------------------------------

def _green_dashes_green(state: StageWorkingState) -> None:
    for i, symbol in enumerate(state.symbols):
        if symbol == Symbol.DASH:
            state.colours[i] = Colour.GREEN
        else:
            state.symbols[i] = Symbol.DASH


def _green_fixed_colours(state: StageWorkingState) -> None:
    colours = [Colour.RED, Colour.BLUE, Colour.YELLOW]
    if len(state.symbols) == 4:
        colours.append(Colour.GREEN)
    state.colours[:] = colours


def _green_first_green(state: StageWorkingState) -> None:
    state.cross.mark_green_appeared()
    state.colours[:] = [
        Colour.GREEN if i == 0 else Colour.RED
        for i in range(len(state.colours))
    ]


def _green_dots_first(state: StageWorkingState) -> None:
    dots = state.symbols.count(Symbol.DOT)
    state.symbols[:] = [Symbol.DOT] * dots
    while len(state.symbols) < len(state.colours):
        state.symbols.append(Symbol.DASH)


def _green_drop_second(state: StageWorkingState) -> None:
    _remove_at(state, 1)
    state.symbols.append(Symbol.DOT)
    state.colours.append(Colour.GREEN)


# -- Blue ---------------------------------------------------------------------

def _blue_reverse_symbols(state: StageWorkingState) -> None:
    state.symbols.reverse()


def _blue_shift(state: StageWorkingState) -> None:
    _shift_both(state, 1)


def _blue_morse(state: StageWorkingState) -> None:
    pattern = find_morse_pattern(
        state.snapshot.serial_digit_sum % _MORSE_KEY_SPACE, len(state.symbols),
    )
    state.symbols[:] = [Symbol(ch) for ch in pattern]


def _blue_nothing(state: StageWorkingState) -> None:
    pass


def _blue_front_blue(state: StageWorkingState) -> None:
    state.colours[:] = [
        Colour.BLUE if i < 2 else Colour.RED
        for i in range(len(state.colours))
    ]


# Rules are in reading order of each colour's table.
RULE_TABLES: dict[Colour, tuple[Rule, ...]] = {
    Colour.RED: (
        Rule(
            "the displayed pattern is .-.",
            "invert every symbol",
            lambda s: s.displayed_pattern == ".-.",
            _red_invert,
        ),
        Rule(
            "red has never failed to appear",
            "make every colour red",
            lambda s: not s.cross.red_has_failed_to_appear,
            _red_all_red,
        ),
        Rule(
            "the dash count equals the indicator count",
            "shift right by lit minus unlit indicators",
            lambda s: s.symbols.count(Symbol.DASH) == s.snapshot.indicator_count,
            _red_shift_by_indicators,
        ),
        Rule(
            "a module name contains red",
            "swap red with blue and yellow with green",
            lambda s: s.snapshot.module_name_contains_red,
            _red_swap_colours,
        ),
        Rule(
            "otherwise",
            "copy position three into position one (and four into two)",
            _always,
            _red_copy_forward,
        ),
    ),
    Colour.YELLOW: (
        Rule(
            "the displayed pattern is ---.",
            "reverse symbols and colours",
            lambda s: s.displayed_pattern == "---.",
            _yellow_reverse,
        ),
        Rule(
            "the stage number equals the battery count",
            "remove or insert a yellow dash",
            lambda s: s.stage_number == s.snapshot.battery_count,
            _yellow_resize,
        ),
        Rule(
            "Simon Shouts or Simon Sends is present",
            "make positions one and two yellow",
            lambda s: s.snapshot.simon_variant_present,
            _yellow_front_yellow,
        ),
        Rule(
            "more than one yellow was displayed",
            "make every colour but position three blue",
            lambda s: s.more_than_one_yellow_displayed,
            _yellow_blue_except_third,
        ),
        Rule(
            "otherwise",
            "shift colours right by two",
            _always,
            _yellow_shift_colours,
        ),
    ),
    Colour.GREEN: (
        Rule(
            "the displayed pattern is --.",
            "colour dashes green and turn dots into dashes",
            lambda s: s.displayed_pattern == "--.",
            _green_dashes_green,
        ),
        Rule(
            "position two was displayed green",
            "set colours to red, blue, yellow(, green)",
            lambda s: s.displayed_colours[1] == Colour.GREEN,
            _green_fixed_colours,
        ),
        Rule(
            "green has not appeared before",
            "make position one green and the rest red",
            lambda s: not s.cross.green_has_appeared_before,
            _green_first_green,
        ),
        Rule(
            "the dot count equals the unique port type count",
            "move every dot to the front",
            lambda s: s.symbols.count(Symbol.DOT) == s.snapshot.unique_port_types,
            _green_dots_first,
        ),
        Rule(
            "otherwise",
            "remove position two and append a green dot",
            _always,
            _green_drop_second,
        ),
    ),
    Colour.BLUE: (
        Rule(
            "the displayed pattern is -...",
            "reverse the symbols",
            lambda s: s.displayed_pattern == "-...",
            _blue_reverse_symbols,
        ),
        Rule(
            "blue has been in position three this stage",
            "shift right by one",
            lambda s: s.blue_seen_at_position_three,
            _blue_shift,
        ),
        Rule(
            "the displayed pattern is not a Morse letter",
            "replace symbols with a Morse letter from the serial number",
            lambda s: s.displayed_pattern not in MORSE_LETTERS.values(),
            _blue_morse,
        ),
        Rule(
            "all four colours have been seen",
            "do nothing",
            lambda s: len(set(s.displayed_colours) | set(s.colours)) == 4,
            _blue_nothing,
        ),
        Rule(
            "otherwise",
            "make positions one and two blue and the rest red",
            _always,
            _blue_front_blue,
        ),
    ),
}


# =============================================================================
# Rule Selection
# =============================================================================

def first_matching_rule(colour: Colour, state: StageWorkingState) -> int:
    """Index of the first rule in ``colour``'s table whose condition holds."""
    for index, rule in enumerate(RULE_TABLES[colour]):
        if rule.applies(state):
            return index
    raise ValueError(f"No {colour.label} rule applies")  # pragma: no cover


def apply_rule_for(
    colour: Colour, state: StageWorkingState, trace: list[str],
) -> int:
    """Select and run one rule for a displayed symbol of ``colour``.

    A rule already applied this stage is replaced by the rule before it,
    wrapping from the first rule to the last.

    Returns:
        The zero-based index of the rule that was applied.
    """
    state.check_blue_at_position_three()
    index = first_matching_rule(colour, state)
    trace.append(f"{colour.label}: Condition {index + 1} applies.")

    while (colour, index) in state.applied_rules:
        trace.append(f"Action {index + 1} has already been applied.")
        index = (index - 1) % RULES_PER_COLOUR

    rule = RULE_TABLES[colour][index]
    trace.append(f"Applying action {index + 1}: {rule.action}.")
    state.applied_rules.add((colour, index))
    rule.apply(state)
    return index


# =============================================================================
# Position Selection
# =============================================================================

# Stage -> (singular, plural, counter).
_STAGE_QUANTITIES: dict[int, tuple[str, str, Callable[[EnvironmentSnapshot], int]]] = {
    1: ("battery", "batteries", lambda e: e.battery_count),
    2: ("port", "ports", lambda e: e.total_ports),
    3: ("indicator", "indicators", lambda e: e.indicator_count),
    4: ("module", "modules", lambda e: e.module_count),
}


def _stage_quantity(
    stage_number: int, snapshot: EnvironmentSnapshot,
) -> tuple[int, str]:
    if stage_number not in _STAGE_QUANTITIES:
        raise ValueError(
            f"Stage number must be 1-4 to select a position, "
            f"got {stage_number}"
        )
    singular, plural, counter = _STAGE_QUANTITIES[stage_number]
    quantity = counter(snapshot)
    return quantity, singular if quantity == 1 else plural


def select_position(
    stage_number: int, snapshot: EnvironmentSnapshot, length: int,
) -> int:
    """Index of the modified sequence the player must submit.

    Stage 1 uses batteries, stage 2 ports, stage 3 indicators and
    stage 4 modules, taken modulo the sequence length.

    Raises:
        ValueError: If the stage number is outside 1-4.
    """
    quantity, _ = _stage_quantity(stage_number, snapshot)
    return quantity % length


def describe_position(
    stage_number: int, snapshot: EnvironmentSnapshot, position: int,
) -> str:
    quantity, noun = _stage_quantity(stage_number, snapshot)
    verb = "is" if quantity == 1 else "are"
    return (
        f"There {verb} {quantity} {noun}, so the correct position "
        f"to submit is {position + 1}."
    )


# =============================================================================
# Transformation Engine
# =============================================================================

@dataclasses.dataclass
class StageResult:
    """Outcome of solving one stage.

    Attributes:
        displayed: The displayed sequence.
        stage_number: The stage that was solved.
        modified: The sequence after every rule has run.
        position: Zero-based index into ``modified`` to submit.
        submission: The expected submission, ``modified[position]``.
        applied_rules: (colour, rule index) pairs in the order applied.
        trace: Human-readable record of each rule decision.
    """
    displayed: tuple[ColouredSymbol, ...]
    stage_number: int
    modified: tuple[ColouredSymbol, ...]
    position: int
    submission: ColouredSymbol
    applied_rules: list[tuple[Colour, int]]
    trace: list[str]

    def log_lines(self) -> list[str]:
        """Stage log: header, displayed sequence, trace and answer."""
        displayed = ", ".join(cs.describe() for cs in self.displayed)
        return [
            f"================== Stage {self.stage_number} ==================",
            f"The displayed sequence is {displayed}.",
            *self.trace,
            f"The expected response is {self.submission.describe()}.",
        ]

    def __str__(self) -> str:
        return "\n".join(self.log_lines())


def get_expected_submission(
    displayed: tuple[ColouredSymbol, ...] | list[ColouredSymbol],
    stage_number: int,
    snapshot: EnvironmentSnapshot,
    cross: CrossStageState,
) -> StageResult:
    """Derive the expected submission for one stage.

    Runs one rule per displayed symbol, in display order, against the
    working buffers, then picks the submission position from the stage
    number. ``cross`` is updated in place.

    Args:
        displayed: The displayed sequence (3 or 4 symbols).
        stage_number: Current stage (1-4).
        snapshot: Bomb counters for this puzzle instance.
        cross: Sticky flags for this puzzle instance.

    Returns:
        The stage result including the submission and the trace.

    Raises:
        ValueError: If the displayed sequence is not 3 or 4 long, the
            stage number is outside 1-4, or the buffers end up with
            mismatched lengths.
    """
    displayed = tuple(displayed)
    if not (3 <= len(displayed) <= 4):
        raise ValueError(
            f"Displayed sequence must be 3 or 4 symbols long, "
            f"got {len(displayed)}"
        )

    state = StageWorkingState.begin(displayed, stage_number, snapshot, cross)
    trace: list[str] = []
    applied: list[tuple[Colour, int]] = []

    for colour in state.displayed_colours:
        index = apply_rule_for(colour, state, trace)
        applied.append((colour, index))

    modified = state.reconstruct()
    position = select_position(stage_number, snapshot, len(modified))
    trace.append(describe_position(stage_number, snapshot, position))

    return StageResult(
        displayed=displayed,
        stage_number=stage_number,
        modified=modified,
        position=position,
        submission=modified[position],
        applied_rules=applied,
        trace=trace,
    )


# =============================================================================
# Rule Coverage Audit
# =============================================================================

def all_displayed_sequences(
    lengths: tuple[int, ...] = (3, 4),
) -> list[tuple[ColouredSymbol, ...]]:
    """Every possible displayed sequence of the given lengths."""
    pairs = [
        ColouredSymbol(colour, symbol)
        for colour in Colour
        for symbol in Symbol
    ]
    return [
        seq
        for length in lengths
        for seq in itertools.product(pairs, repeat=length)
    ]


def audit_rule_coverage(
    snapshot: EnvironmentSnapshot,
    stage_number: int,
    show_progress: bool = False,
) -> collections.Counter[tuple[Colour, int]]:
    """Count how often each rule fires over every displayed sequence.

    Each sequence is solved against a fresh CrossStageState, so the
    counts describe a first stage with the given stage number.

    Args:
        snapshot: Bomb counters to solve against.
        stage_number: Stage number (1-4) to solve as.
        show_progress: If True, display a tqdm progress bar.

    Returns:
        Counter keyed by (colour, zero-based rule index).
    """
    sequences = all_displayed_sequences()
    counts: collections.Counter[tuple[Colour, int]] = collections.Counter()

    pbar = None
    if show_progress and _tqdm_module is not None:
        pbar = _tqdm_module.tqdm(
            total=len(sequences),
            desc="Auditing",
            unit=" sequences",
            dynamic_ncols=True,
        )

    for displayed in sequences:
        result = get_expected_submission(
            displayed, stage_number, snapshot, CrossStageState(),
        )
        counts.update(result.applied_rules)
        if pbar is not None:
            pbar.update(1)

    if pbar is not None:
        pbar.close()
    return counts
