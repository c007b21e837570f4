"""Weighted target selection and short-code resolution.

Both return tagged results rather than raising, so the caller has to decide
what each outcome means over HTTP:

    Selected(target) | NoTargets | ZeroWeight          -- select()
    Resolved(link, target) | NotFound | OwnerBanned
        | NoTargets | ZeroWeight                        -- resolve()
"""
import random
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.orm import Session

from splitlink import crud, models


@dataclass(frozen=True)
class Selected:
    target: models.Target


@dataclass(frozen=True)
class NoTargets:
    pass


@dataclass(frozen=True)
class ZeroWeight:
    pass


@dataclass(frozen=True)
class NotFound:
    code: str


@dataclass(frozen=True)
class OwnerBanned:
    code: str


@dataclass(frozen=True)
class Resolved:
    link: models.Link
    target: models.Target


Selection = Selected | NoTargets | ZeroWeight
Resolution = Resolved | NotFound | OwnerBanned | NoTargets | ZeroWeight


def target_for_draw(targets: Sequence, r: int):
    """Return the target whose slot ``(running, running + weight]`` holds ``r``.

    None when ``r`` falls outside ``(0, sum(weights)]``.
    """
    running = 0
    for target in targets:
        if running < r <= running + target.weight:
            return target
        running += target.weight
    return None


def select(targets: Sequence, rng: random.Random | None = None) -> Selection:
    if not targets:
        return NoTargets()
    if any(t.weight < 0 for t in targets):
        raise ValueError("Target weights must be non-negative")
    total = sum(t.weight for t in targets)
    if total == 0:
        return ZeroWeight()
    r = (rng or random).randint(1, total)
    return Selected(target_for_draw(targets, r))


def resolve(db: Session, code: str, rng: random.Random | None = None) -> Resolution:
    link = crud.get_link(db, code)
    if link is None or not link.active:
        return NotFound(code)
    if link.user.banned:
        return OwnerBanned(code)
    selection = select(link.targets, rng)
    if isinstance(selection, Selected):
        return Resolved(link, selection.target)
    return selection
