"""
Party reference positions and party matching.

Party positions live on the percent scale [-100, 100], the same scale
scoring.to_percent_scale produces for users. Only the economic and social
axes are compared.
"""
import math

from .scoring import (
    PERCENT_SCALE,
    aggregate_axes,
    clamp,
    compute_contributions,
    to_percent_scale,
    top_drivers,
)

MATCH_AXES = ['economic', 'social']

AXIS_RANGE = PERCENT_SCALE * 2
MAX_DISTANCE = math.sqrt(2) * AXIS_RANGE

CLOSE_DISTANCE = 20
PARTIAL_DISTANCE = 50

MAX_REASONS = 4

COUNTRIES = {
    'UK': 'United Kingdom',
    'USA': 'United States',
}

PARTIES = [
    # UK
    {
        'id': 'uk-conservative',
        'name': 'Conservative Party',
        'country': 'UK',
        'position': {'economic': 60, 'social': 40},
        'blurb': 'Right-leaning on economy, moderately authoritarian on social policy.',
    },
    {
        'id': 'uk-labour',
        'name': 'Labour Party',
        'country': 'UK',
        'position': {'economic': -40, 'social': 10},
        'blurb': 'Left-leaning on economy, mild authority/social regulation.',
    },
    {
        'id': 'uk-libdem',
        'name': 'Liberal Democrats',
        'country': 'UK',
        'position': {'economic': 10, 'social': -10},
        'blurb': 'Centrist economics, socially liberal.',
    },
    {
        'id': 'uk-green',
        'name': 'Green Party',
        'country': 'UK',
        'position': {'economic': -60, 'social': -40},
        'blurb': 'Progressive economics, socially libertarian/green priorities.',
    },
    {
        'id': 'uk-reform',
        'name': 'Reform UK',
        'country': 'UK',
        'position': {'economic': 50, 'social': 60},
        'blurb': 'Right-leaning economics and socially authoritarian.',
    },
    {
        'id': 'uk-snp',
        'name': 'Scottish National Party (SNP)',
        'country': 'UK',
        'position': {'economic': -30, 'social': -5},
        'blurb': 'Left-of-centre economics, socially liberal.',
    },

    # USA
    {
        'id': 'us-republican',
        'name': 'Republican Party',
        'country': 'USA',
        'position': {'economic': 60, 'social': 50},
        'blurb': 'Right-leaning on economy and socially conservative/authoritarian.',
    },
    {
        'id': 'us-democratic',
        'name': 'Democratic Party',
        'country': 'USA',
        'position': {'economic': -10, 'social': 10},
        'blurb': 'Centre-left economics, moderate social regulation.',
    },
    {
        'id': 'us-libertarian',
        'name': 'Libertarian Party',
        'country': 'USA',
        'position': {'economic': 40, 'social': -60},
        'blurb': 'Free-market economics and strongly socially libertarian.',
    },
    {
        'id': 'us-green',
        'name': 'Green Party (US)',
        'country': 'USA',
        'position': {'economic': -60, 'social': -40},
        'blurb': 'Left/progressive economics and socially libertarian.',
    },
]


def normalize_country(country):
    """Accepts 'uk', 'UK', 'usa', 'us' ... Returns the catalog key or None."""
    if not country:
        return None
    key = str(country).strip().upper()
    if key == 'US':
        key = 'USA'
    return key if key in COUNTRIES else None


def get_countries(parties=None):
    if parties is None:
        parties = PARTIES
    countries = []
    for code, name in COUNTRIES.items():
        members = [p for p in parties if p['country'] == code]
        countries.append({'id': code, 'name': name, 'party_count': len(members)})
    return countries


def get_parties(country, parties=None):
    if parties is None:
        parties = PARTIES
    code = normalize_country(country)
    if not code:
        return []
    return [p for p in parties if p['country'] == code]


def euclidean(a, b):
    return math.sqrt(sum((a.get(axis, 0) - b.get(axis, 0)) ** 2 for axis in MATCH_AXES))


def distance_to_percent(distance):
    """0 distance -> 100, opposite corners of the compass -> 0. Whole percents, halves round up."""
    return clamp(math.floor(100.0 * (1 - distance / MAX_DISTANCE) + 0.5), 0, 100)


def _axis_reason(axis, diff):
    """diff is user minus party on the percent scale."""
    gap = abs(diff)
    if axis == 'economic':
        if gap < CLOSE_DISTANCE:
            return 'Economic: very close positions on market regulation and government intervention.'
        if gap < PARTIAL_DISTANCE:
            return f"Economic: similar but not identical views. You lean {'more right' if diff > 0 else 'more left'} economically."
        return (
            f"Economic: different philosophies. You are {gap:.0f} points "
            f"{'more right-wing' if diff > 0 else 'more left-wing'} economically."
        )

    if gap < CLOSE_DISTANCE:
        return 'Social: strong agreement on individual freedoms vs social order.'
    if gap < PARTIAL_DISTANCE:
        return f"Social: moderate agreement. You lean {'more authoritarian' if diff > 0 else 'more libertarian'}."
    return (
        f"Social: different views on social freedom. You are {gap:.0f} points "
        f"{'more authoritarian' if diff > 0 else 'more libertarian'}."
    )


def _overall_reason(match_percent):
    if match_percent > 80:
        return 'Overall: this party closely represents your political views across both dimensions.'
    if match_percent > 60:
        return 'Overall: you share many core values, though some differences exist.'
    if match_percent > 40:
        return 'Overall: some common ground, but significant disagreements remain.'
    return "Overall: your views diverge significantly from this party's platform."


def _driver_reason(party, user_position, drivers):
    """First top driver that pulls the user the way this party leans."""
    for driver in drivers:
        axis = driver.get('axis')
        if axis not in MATCH_AXES or not driver.get('contribution'):
            continue
        party_sign = 1 if party['position'].get(axis, 0) >= 0 else -1
        pull_sign = 1 if driver['contribution'] > 0 else -1
        user_sign = 1 if user_position.get(axis, 0) >= 0 else -1
        if pull_sign == party_sign == user_sign:
            label = driver.get('text') or str(driver.get('qid'))
            return f"Your answer on \"{label}\" supports similar {axis} priorities."
    return None


def reasons_for_party(user_position, party, match_percent, drivers=None):
    reasons = [
        _axis_reason(axis, user_position.get(axis, 0) - party['position'].get(axis, 0))
        for axis in MATCH_AXES
    ]
    reasons.append(_overall_reason(match_percent))

    if drivers:
        driver_reason = _driver_reason(party, user_position, drivers)
        if driver_reason:
            reasons.append(driver_reason)

    deduped = []
    for reason in reasons:
        if reason not in deduped:
            deduped.append(reason)
    return deduped[:MAX_REASONS]


def match_position(country, user_position, parties=None, drivers=None):
    """
    Rank the parties of a country against a percent-scale position.
    Ties keep catalog order.
    """
    position = {axis: float(user_position.get(axis) or 0) for axis in MATCH_AXES}

    matches = []
    for party in get_parties(country, parties):
        match_percent = distance_to_percent(euclidean(position, party['position']))
        matches.append({
            'party': party,
            'matchPercent': match_percent,
            'reasons': reasons_for_party(position, party, match_percent, drivers),
        })
    return sorted(matches, key=lambda m: m['matchPercent'], reverse=True)


def compute_party_matches(country, answers, questions, now=None, parties=None, half_life_days=None):
    """Score the answers, then rank the country's parties by closeness."""
    contributions = compute_contributions(answers or {}, questions, now=now, half_life_days=half_life_days)
    scores = aggregate_axes(contributions, questions)['normalized']
    user_position = to_percent_scale(scores)
    drivers = top_drivers(contributions, n=6)
    return match_position(country, user_position, parties=parties, drivers=drivers)
