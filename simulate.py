"""Simulation script for a Samuel Says puzzle instance.

Captures the bomb once, then plays stages 1-4: each stage generates a
displayed sequence, derives the expected submission against the shared
cross-stage flags, and prints the stage log. Ends with a rule coverage
audit showing how often each rule fires across every possible display.
"""

import collections
import random

import samuel_says
import sequence_modifier

# Seed for the displayed-sequence generator. None for a fresh game.
SEED: int | None = 2024

# Toggle the exhaustive rule coverage audit after the stages.
RUN_AUDIT = True

BOMB = samuel_says.BombInfo(
    module_names=[
        "Samuel Says", "Simon Sends", "Wires", "Colored Squares",
        "The Button", "Maze",
    ],
    battery_count=3,
    ports=["Parallel", "Serial", "PS2", "PS2"],
    lit_indicators=["FRK"],
    unlit_indicators=["BOB", "CAR"],
    serial_number="AL5QF2",
)


def _print_coverage(
    counts: collections.Counter[tuple[samuel_says.Colour, int]],
) -> None:
    """Print a colour x rule table of how often each rule fired."""
    print(f"{'':8}" + "".join(f"{'Rule ' + str(i + 1):>9}" for i in range(5)))
    for colour in samuel_says.Colour:
        row = "".join(
            f"{counts[(colour, i)]:>9}"
            for i in range(sequence_modifier.RULES_PER_COLOUR)
        )
        print(f"{colour.ansi()}{colour.label:<8}{samuel_says._Colors.RESET}{row}")


# ── Main ────────────────────────────────────────────────────

def main() -> None:
    """Play one puzzle instance from stage 1 to stage 4."""
    rng = random.Random(SEED)
    snapshot = samuel_says.EnvironmentSnapshot.capture(BOMB)
    cross = samuel_says.CrossStageState()
    submitted: list[samuel_says.Colour] = []

    print("=" * 60)
    print("Samuel Says")
    print("=" * 60)
    print(snapshot)
    print()

    for stage_number in range(1, 5):
        length = samuel_says.random_sequence_length(rng)
        displayed = samuel_says.generate_random_sequence(length, rng)
        result = sequence_modifier.get_expected_submission(
            displayed, stage_number, snapshot, cross,
        )
        submitted.append(result.submission.colour)
        print(result)
        print(
            f"Modified sequence: "
            f"{' '.join(str(cs) for cs in result.modified)}"
        )
        print()

    print("Submitted colours: " + ", ".join(c.label for c in submitted))
    print(f"Cross-stage state: {cross}")

    if RUN_AUDIT:
        print()
        print("Rule coverage over every displayed sequence (stage 1):")
        counts = sequence_modifier.audit_rule_coverage(
            snapshot, stage_number=1, show_progress=True,
        )
        _print_coverage(counts)


if __name__ == "__main__":
    main()
