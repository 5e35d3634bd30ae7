"""Calculator script for a single Samuel Says stage.

Enter the bomb and the displayed sequence below in shorthand notation,
then run the script to get the expected submission with the full rule
trace. Earlier stages can be listed in ``PREVIOUS_STAGES`` so the sticky
cross-stage flags are built up the same way the module builds them.
"""

import pathlib
import sys

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parent.parent))

import samuel_says
import sequence_modifier

BOMB = samuel_says.BombInfo(
    module_names=["Samuel Says", "Red Arrows", "Keypad", "Password"],
    battery_count=2,
    ports=["DVI-D", "RJ-45", "RJ-45"],
    lit_indicators=["SND", "IND"],
    unlit_indicators=[],
    serial_number="7K2RT9",
)

# Displayed sequences of stages already solved, in order.
PREVIOUS_STAGES = [
    "R. G- B-",
]

# The sequence currently on the display.
DISPLAYED = "Y- R. Y- B."


# ── Main ────────────────────────────────────────────────────

def main() -> None:
    """Solve the current stage, replaying earlier stages for state."""
    snapshot = samuel_says.EnvironmentSnapshot.capture(BOMB)
    cross = samuel_says.CrossStageState()
    print(snapshot)
    print()

    for stage_number, notation in enumerate(PREVIOUS_STAGES, start=1):
        sequence_modifier.get_expected_submission(
            samuel_says.parse_sequence(notation), stage_number, snapshot, cross,
        )

    stage_number = len(PREVIOUS_STAGES) + 1
    result = sequence_modifier.get_expected_submission(
        samuel_says.parse_sequence(DISPLAYED), stage_number, snapshot, cross,
    )
    print(result)
    print()
    print(
        f"Submit {result.submission} at position {result.position + 1} "
        f"of {samuel_says.format_sequence(result.modified)}"
    )


if __name__ == "__main__":
    main()
