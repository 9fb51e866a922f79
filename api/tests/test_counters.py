from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from socialconnect import models
from socialconnect.stores.counters import clamp_count, decrement, increment


@pytest.mark.parametrize("value, expected", [(None, 0), (-4, 0), (0, 0), (12, 12)])
def test_clamp_count(value, expected):
    assert clamp_count(value) == expected


def _set_followers(db: Session, user: models.User, expression) -> int:
    db.query(models.User).filter(models.User.id == user.id).update(
        {models.User.followers_count: expression}, synchronize_session=False
    )
    db.commit()
    db.refresh(user)
    return user.followers_count


def test_decrement_stops_at_zero(db: Session, make_user):
    user = make_user("counted", followers_count=1)

    assert _set_followers(db, user, decrement(models.User.followers_count)) == 0
    assert _set_followers(db, user, decrement(models.User.followers_count)) == 0


def test_increment(db: Session, make_user):
    user = make_user("counted")
    assert _set_followers(db, user, increment(models.User.followers_count, by=2)) == 2
