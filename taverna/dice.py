"""Server-side dice.

Clients only ever send a formula; the numbers always come from here, so a
player can't forge a natural 20. Randomness comes from the `secrets`
module (the OS CSPRNG) rather than `random`.
"""

import re
import secrets

from taverna.errors import ValidationError

# <count>d<size> with an optional +N / -N modifier, e.g. "2d6+3", "1d20", "4d8-1"
FORMULA_RE = re.compile(r'^(\d+)d(\d+)([+-]\d+)?$', re.IGNORECASE)

MAX_DICE = 100
MAX_SIDES = 1000


def parse_formula(formula):
    """Return (count, sides, modifier) or raise ValidationError."""
    match = FORMULA_RE.match((formula or '').strip())
    if not match:
        raise ValidationError(f'Invalid dice formula: {formula!r}')

    count = int(match.group(1))
    sides = int(match.group(2))
    modifier = int(match.group(3)) if match.group(3) else 0

    if not 1 <= count <= MAX_DICE:
        raise ValidationError(f'Dice count must be between 1 and {MAX_DICE}')
    if not 1 <= sides <= MAX_SIDES:
        raise ValidationError(f'Dice size must be between 1 and {MAX_SIDES}')
    return count, sides, modifier


def roll_die(sides):
    return secrets.randbelow(sides) + 1


def roll(formula):
    """Resolve a formula like "2d6+3".

    Returns {rolls, modifier, total, isCritical, isFumble}. Critical and
    fumble only mean anything on a single d20.
    """
    count, sides, modifier = parse_formula(formula)
    rolls = [roll_die(sides) for _ in range(count)]
    single_d20 = count == 1 and sides == 20
    return {
        'rolls': rolls,
        'modifier': modifier,
        'total': sum(rolls) + modifier,
        'isCritical': single_d20 and rolls[0] == 20,
        'isFumble': single_d20 and rolls[0] == 1,
    }


def roll_on_table(entries):
    """Roll on a ranged table: 1d<highest max>, first range that contains it.

    Gaps between ranges are an authoring issue, not an error, so a roll
    that lands in one reports "No match found".
    """
    if not entries:
        return {'formula': None, 'roll': 0, 'result': 'Table is empty'}

    formula = f'1d{max(e["max"] for e in entries)}'
    total = roll(formula)['total']
    matched = next((e for e in entries if e['min'] <= total <= e['max']), None)
    return {
        'formula': formula,
        'roll': total,
        'result': matched['result'] if matched else 'No match found',
    }
