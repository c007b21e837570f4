import random
from collections import Counter
from types import SimpleNamespace

import pytest

from splitlink import crud, redirects


def targets(*weights):
    return [SimpleNamespace(name=f"t{i}", weight=w) for i, w in enumerate(weights)]


def test_draw_picks_slot_containing_r():
    a, b = targets(50, 50)
    assert redirects.target_for_draw([a, b], 25) is a
    assert redirects.target_for_draw([a, b], 50) is a
    assert redirects.target_for_draw([a, b], 51) is b
    assert redirects.target_for_draw([a, b], 75) is b
    assert redirects.target_for_draw([a, b], 100) is b


def test_draw_outside_total_matches_nothing():
    ts = targets(50, 50)
    assert redirects.target_for_draw(ts, 0) is None
    assert redirects.target_for_draw(ts, 101) is None


def test_single_target_always_selected():
    (only,) = targets(7)
    for r in range(1, 8):
        assert redirects.target_for_draw([only], r) is only
    rng = random.Random(3)
    for _ in range(50):
        assert redirects.select([only], rng) == redirects.Selected(only)


def test_zero_weight_target_skipped():
    a, b, c = targets(0, 10, 0)
    rng = random.Random(5)
    for _ in range(200):
        assert redirects.select([a, b, c], rng).target is b


def test_empty_and_zero_total():
    assert isinstance(redirects.select([]), redirects.NoTargets)
    assert isinstance(redirects.select(targets(0, 0)), redirects.ZeroWeight)


def test_negative_weight_rejected():
    with pytest.raises(ValueError):
        redirects.select(targets(10, -1))


def test_frequencies_follow_weights():
    ts = targets(10, 30, 60)
    rng = random.Random(1234)
    draws = 30000
    seen = Counter(redirects.select(ts, rng).target.name for _ in range(draws))
    assert set(seen) <= {t.name for t in ts}
    for t in ts:
        assert abs(seen[t.name] / draws - t.weight / 100) < 0.015


def test_resolve_unknown_code(db):
    assert redirects.resolve(db, "nope42") == redirects.NotFound("nope42")


def test_resolve_banned_owner(db, make_user, make_link):
    owner = make_user(banned=True)
    link = make_link(owner)
    assert redirects.resolve(db, link.short) == redirects.OwnerBanned(link.short)


def test_resolve_inactive_link(db, make_user, make_link):
    link = make_link(make_user())
    link.active = False
    db.commit()
    assert isinstance(redirects.resolve(db, link.short), redirects.NotFound)


def test_resolve_zero_weight_link(db, make_user, make_link):
    link = make_link(make_user(), targets=[("https://a.example", 0)])
    assert isinstance(redirects.resolve(db, link.short), redirects.ZeroWeight)


def test_resolve_picks_one_of_the_links_targets(db, make_user, make_link):
    link = make_link(make_user())
    outcome = redirects.resolve(db, link.short, random.Random(9))
    assert isinstance(outcome, redirects.Resolved)
    assert outcome.link.id == link.id
    assert outcome.target in link.targets
    # resolving alone has no side effects
    assert sum(t.hits for t in link.targets) == 0
    assert crud.count_visits(db) == 0
