"""
Axis scoring for quiz answers.

The canonical internal scale is the normalized range [-1, 1]. Other scales
are only reached through the conversion helpers at the bottom of this module:

    percent   [-100, 100]   display and party matching
    snapshot  [-5, 5]       persisted results documents

Everything here is pure: no Firestore, no Django, no clock reads unless the
caller leaves `now` empty.
"""
import math
from datetime import datetime, timezone

from .quiz_data import AXES

# Likert 1..5 -> signed strength
STRENGTH_MAP = {1: -2, 2: -1, 3: 0, 4: 1, 5: 2}
MAX_STRENGTH = 2

DEFAULT_HALF_LIFE_DAYS = 45
SECONDS_PER_DAY = 60 * 60 * 24

PERCENT_SCALE = 100
SNAPSHOT_SCALE = 5

# Legacy snapshot formula (centered at 3, clamped to +/-5)
LEGACY_CENTER = 3
LEGACY_SCALE = 5

CONTRADICTION_THRESHOLD = 3
QUADRANT_THRESHOLD = 10

AXIS_TENSION_NOTES = {
    'economic': 'Economic: strong support for both market-oriented and equality-oriented positions.',
    'social': 'Social: strong support for both authoritarian and libertarian positions.',
    'global': 'Global: strong support for both sovereignty-first and internationalist positions.',
    'progress': 'Progress: strong support for both traditional and progressive positions.',
}


def clamp(value, low, high):
    return max(low, min(high, value))


def empty_scores():
    return {axis: 0.0 for axis in AXES}


def lookup_answer(answers, question_id):
    """Answer maps are keyed by string ids at rest but may arrive with int keys."""
    if not answers or question_id is None:
        return None
    value = answers.get(str(question_id))
    if value is None:
        value = answers.get(question_id)
    if value is None and isinstance(question_id, str) and question_id.isdigit():
        value = answers.get(int(question_id))
    return value


def to_number(raw):
    """Finite float for a raw answer value, None when it is not numeric."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def choice_to_strength(choice):
    """Map a 1..5 choice to -2..+2. Anything outside the table is 0."""
    value = to_number(choice)
    if value is None or not value.is_integer():
        return 0
    return STRENGTH_MAP.get(int(value), 0)


def question_weight(question):
    weight = question.get('weight')
    if weight is None:
        return 1
    return weight


def parse_timestamp(value):
    """
    Accepts datetimes (including Firestore timestamps), ISO strings and epoch
    milliseconds. Naive datetimes are treated as UTC.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def hot_topic_decay(age_days, half_life_days=DEFAULT_HALF_LIFE_DAYS):
    """exp(-ln(2) / half_life * age). 1 at age 0, halves every half_life days."""
    if not half_life_days or half_life_days <= 0:
        half_life_days = DEFAULT_HALF_LIFE_DAYS
    rate = math.log(2) / half_life_days
    return math.exp(-rate * max(0.0, age_days))


def decay_factor(question, now, half_life_days=DEFAULT_HALF_LIFE_DAYS):
    if question.get('type') != 'hot':
        return 1.0
    start_raw = question.get('startAt')
    if not start_raw and not question.get('endAt'):
        return 1.0
    start = parse_timestamp(start_raw) or now
    age_days = (now - start).total_seconds() / SECONDS_PER_DAY
    return hot_topic_decay(age_days, half_life_days)


def compute_contributions(answers, questions, now=None, half_life_days=None):
    """
    Per-question signed contributions for every answered question in the catalog.

    contribution = direction * weight * strength * decay
    Missing or non-numeric answers are skipped, never raised on.
    """
    now = parse_timestamp(now) or datetime.now(timezone.utc)
    if half_life_days is None:
        half_life_days = DEFAULT_HALF_LIFE_DAYS

    contributions = []
    for question in questions or []:
        choice = lookup_answer(answers, question.get('id'))
        if to_number(choice) is None:
            continue

        strength = choice_to_strength(choice)
        weight = question_weight(question)
        direction = question.get('direction') or 0
        base = direction * weight * strength

        decay = decay_factor(question, now, half_life_days)
        contribution = base * decay

        contributions.append({
            'qid': question.get('id'),
            'axis': question.get('axis'),
            'type': question.get('type') or 'scale',
            'text': question.get('text', ''),
            'strength': strength,
            'weight': weight,
            'direction': direction,
            'decay': decay,
            'contribution': contribution,
            'abs': abs(contribution),
        })
    return contributions


def axis_norms(questions):
    """Largest possible |sum| per axis: sum of |weight| * 2, floored at 1."""
    norms = {}
    for axis in AXES:
        total = sum(
            abs(question_weight(q)) * MAX_STRENGTH
            for q in questions or []
            if q.get('axis') == axis
        )
        norms[axis] = max(1, total)
    return norms


def aggregate_axes(contributions, questions):
    """Sum contributions per axis and normalize into [-1, 1]."""
    sums = empty_scores()
    norms = axis_norms(questions)

    for c in contributions:
        if c.get('axis') in sums:
            sums[c['axis']] += c.get('contribution', 0)

    normalized = {
        axis: clamp(sums[axis] / norms[axis], -1.0, 1.0)
        for axis in AXES
    }
    return {'sums': sums, 'norms': norms, 'normalized': normalized}


def score_answers(answers, questions, now=None, half_life_days=None):
    """Canonical AxisScoreSet for an answer map."""
    contributions = compute_contributions(answers, questions, now=now, half_life_days=half_life_days)
    return aggregate_axes(contributions, questions)['normalized']


def legacy_axis_scores(answers, questions):
    """
    Older snapshot formula: (value - 3) * weight * direction, divided by the
    axis's total |weight|, scaled by 5 and clamped to [-5, 5].

    It disagrees with aggregate_axes by a factor of two before clamping, so it
    is only used to audit snapshots written by earlier versions.
    """
    sums = empty_scores()
    totals = empty_scores()

    for question in questions or []:
        axis = question.get('axis')
        if axis not in sums:
            continue
        weight = question_weight(question)
        totals[axis] += abs(weight)

        value = to_number(lookup_answer(answers, question.get('id')))
        if value is None:
            continue
        direction = question.get('direction')
        if direction is None:
            direction = 1
        sums[axis] += (value - LEGACY_CENTER) * weight * direction

    return {
        axis: clamp(sums[axis] / max(1, totals[axis]) * LEGACY_SCALE, -LEGACY_SCALE, LEGACY_SCALE)
        for axis in AXES
    }


def top_drivers(contributions, n=5):
    """Contributions with the largest absolute effect (stable for ties)."""
    return sorted(contributions, key=lambda c: c.get('abs', 0), reverse=True)[:n]


def find_contradictions(contributions, threshold=CONTRADICTION_THRESHOLD):
    """Flag axes where answers push hard in both directions at once."""
    pulls = {axis: {'pos': 0.0, 'neg': 0.0} for axis in AXES}
    for c in contributions:
        axis = c.get('axis')
        value = c.get('contribution', 0)
        if axis not in pulls or not value:
            continue
        if value > 0:
            pulls[axis]['pos'] += value
        else:
            pulls[axis]['neg'] += abs(value)

    return [
        AXIS_TENSION_NOTES[axis]
        for axis in AXES
        if pulls[axis]['pos'] >= threshold and pulls[axis]['neg'] >= threshold
    ]


def summarize_quadrant(percent_scores):
    """One-line description of an economic/social position on the percent scale."""
    econ = percent_scores.get('economic') or 0
    soc = percent_scores.get('social') or 0

    if abs(econ) <= QUADRANT_THRESHOLD and abs(soc) <= QUADRANT_THRESHOLD:
        return 'Centrist'

    if econ > QUADRANT_THRESHOLD:
        econ_label = 'Market-leaning'
    elif econ < -QUADRANT_THRESHOLD:
        econ_label = 'Equality-leaning'
    else:
        econ_label = 'Centrally economic'

    if soc > QUADRANT_THRESHOLD:
        soc_label = 'Authoritarian-leaning'
    elif soc < -QUADRANT_THRESHOLD:
        soc_label = 'Libertarian-leaning'
    else:
        soc_label = 'Centrally social'

    return f"{econ_label}, {soc_label}"


# --- Scale conversions ---

def _scaled(scores, factor, limit):
    out = {}
    for axis in AXES:
        value = to_number((scores or {}).get(axis))
        out[axis] = clamp((value or 0.0) * factor, -limit, limit)
    return out


def to_percent_scale(scores):
    """[-1, 1] -> [-100, 100]"""
    return _scaled(scores, PERCENT_SCALE, PERCENT_SCALE)


def from_percent_scale(scores):
    """[-100, 100] -> [-1, 1]"""
    return _scaled(scores, 1.0 / PERCENT_SCALE, 1.0)


def to_snapshot_scale(scores):
    """[-1, 1] -> [-5, 5]"""
    return _scaled(scores, SNAPSHOT_SCALE, SNAPSHOT_SCALE)


def from_snapshot_scale(scores):
    """[-5, 5] -> [-1, 1]"""
    return _scaled(scores, 1.0 / SNAPSHOT_SCALE, 1.0)


def display_scores(scores):
    """Canonical scores as whole numbers on the percent scale."""
    return {axis: int(round(value)) for axis, value in to_percent_scale(scores).items()}
