import pytest
from sqlalchemy import event

from dealhub.core.errors import InvalidInputError, NotFoundError
from dealhub.models.point_history import PointHistory
from dealhub.models.vote import Vote
from dealhub.services.points import get_user_points, verify_ledger_consistency
from dealhub.services import voting
from dealhub.services.voting import VoteOutcome, cast_vote, get_user_vote, get_vote_score
from tests.fixtures_data import add_deal, add_tenant, add_user, build_session_factory, seed_two_tenants


@pytest.fixture()
def db():
    session = build_session_factory()()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def seeded(db):
    return seed_two_tenants(db)


def _vote(db, seeded, value, user_key="alice"):
    return cast_vote(db, seeded["acme"].id, seeded[user_key].id, seeded["acme_deal"].id, value)


def test_first_vote_is_recorded_and_rewarded(db, seeded):
    assert _vote(db, seeded, 1) is VoteOutcome.RECORDED
    assert get_vote_score(db, seeded["acme_deal"].id) == 1
    assert get_user_points(db, seeded["alice"].id) == 1
    assert verify_ledger_consistency(db, seeded["alice"].id)


def test_same_value_twice_removes_the_vote(db, seeded):
    _vote(db, seeded, 1)
    assert _vote(db, seeded, 1) is VoteOutcome.REMOVED

    assert get_vote_score(db, seeded["acme_deal"].id) == 0
    assert get_user_vote(db, seeded["alice"].id, seeded["acme_deal"].id) is None
    assert db.query(Vote).count() == 0


def test_opposite_value_flips_in_place(db, seeded):
    _vote(db, seeded, 1)
    assert _vote(db, seeded, -1) is VoteOutcome.RECORDED

    assert db.query(Vote).count() == 1
    assert get_vote_score(db, seeded["acme_deal"].id) == -1
    assert get_user_points(db, seeded["alice"].id) == 1


def test_revoting_after_removal_does_not_pay_twice(db, seeded):
    _vote(db, seeded, 1)
    _vote(db, seeded, 1)
    _vote(db, seeded, 1)

    assert get_vote_score(db, seeded["acme_deal"].id) == 1
    assert get_user_points(db, seeded["alice"].id) == 1
    assert db.query(PointHistory).filter(PointHistory.reason == "vote").count() == 1


def test_score_sums_votes_of_all_users(db, seeded):
    carol = add_user(db, seeded["acme"].id, "carol@example.com")
    dave = add_user(db, seeded["acme"].id, "dave@example.com")
    seeded.update(carol=carol, dave=dave)

    _vote(db, seeded, 1)
    _vote(db, seeded, 1, "carol")
    _vote(db, seeded, -1, "dave")

    assert get_vote_score(db, seeded["acme_deal"].id) == 1


@pytest.mark.parametrize("value", [0, 2, -2, True, "1", "-1", 1.0, -1.0, None])
def test_invalid_values_change_nothing(db, seeded, value):
    with pytest.raises(InvalidInputError):
        _vote(db, seeded, value)
    assert db.query(Vote).count() == 0
    assert db.query(PointHistory).count() == 0


def test_cannot_vote_across_tenants(db, seeded):
    with pytest.raises(NotFoundError):
        cast_vote(db, seeded["acme"].id, seeded["alice"].id, seeded["globex_deal"].id, 1)
    with pytest.raises(NotFoundError):
        cast_vote(db, seeded["acme"].id, seeded["bob"].id, seeded["acme_deal"].id, 1)
    assert db.query(Vote).count() == 0


def test_failed_ledger_append_rolls_back_the_vote_and_balance(db, seeded):
    def _fail_insert(mapper, connection, target):
        raise RuntimeError("ledger unavailable")

    event.listen(PointHistory, "before_insert", _fail_insert)
    try:
        with pytest.raises(RuntimeError):
            _vote(db, seeded, 1)
    finally:
        event.remove(PointHistory, "before_insert", _fail_insert)

    assert db.query(Vote).count() == 0
    assert get_user_points(db, seeded["alice"].id) == 0
    assert verify_ledger_consistency(db, seeded["alice"].id)


def test_vote_created_by_a_concurrent_request_is_decided_from_its_row(tmp_path, monkeypatch):
    url = f"sqlite+pysqlite:///{tmp_path / 'votes.db'}"
    session_factory = build_session_factory(url, connect_args={"timeout": 30})

    setup = session_factory()
    tenant_id = add_tenant(setup).id
    user_id = add_user(setup, tenant_id, "alice@example.com").id
    deal_id = add_deal(setup, tenant_id, user_id, "blender-50-off").id
    setup.close()

    # The other request commits its upvote after this request found no vote.
    other = session_factory()
    other.add(Vote(user_id=user_id, deal_id=deal_id, value=1))
    other.commit()
    other.close()

    real_lookup = voting._get_existing_vote
    lookups = []

    def _stale_first_lookup(db, user_id, deal_id):
        lookups.append(deal_id)
        if len(lookups) == 1:
            return None
        return real_lookup(db, user_id, deal_id)

    monkeypatch.setattr(voting, "_get_existing_vote", _stale_first_lookup)

    db = session_factory()
    try:
        assert cast_vote(db, tenant_id, user_id, deal_id, -1) is VoteOutcome.RECORDED
    finally:
        db.close()

    check = session_factory()
    try:
        assert check.query(Vote.value).filter(Vote.deal_id == deal_id).all() == [(-1,)]
        assert check.query(PointHistory).count() == 0
        assert verify_ledger_consistency(check, user_id)
    finally:
        check.close()
    assert len(lookups) == 2
