"""Bracket generation: dimensions, bye placement, persistence and guards."""
import pytest
from sqlmodel import Session, select

from bracket_engine.auth import Actor
from bracket_engine.competitors import UserCompetitor
from bracket_engine.errors import Forbidden, InsufficientParticipants, InvalidState, NotFound
from bracket_engine.models import Match, MatchStatus, RegistrationStatus, TournamentStatus, TournamentType, UserRole
from bracket_engine.services.bracket_generator import (
    bracket_dimensions,
    build_bracket,
    generate_bracket,
    pad_with_byes,
)
from bracket_engine.services.match_advancer import submit_result


@pytest.mark.parametrize(
    "count,rounds,size",
    [(2, 1, 2), (3, 2, 4), (4, 2, 4), (5, 3, 8), (8, 3, 8), (9, 4, 16), (16, 4, 16), (17, 5, 32)],
)
def test_bracket_dimensions(count, rounds, size):
    assert bracket_dimensions(count) == (rounds, size)


@pytest.mark.parametrize("count", [0, 1])
def test_bracket_dimensions_rejects_fewer_than_two(count):
    with pytest.raises(ValueError):
        bracket_dimensions(count)


def test_pad_with_byes_never_pairs_two_byes():
    for count in range(2, 40):
        _, size = bracket_dimensions(count)
        padded = pad_with_byes([UserCompetitor(i) for i in range(1, count + 1)], size)

        assert len(padded) == size
        assert sum(1 for p in padded if p is not None) == count
        for i in range(0, size, 2):
            assert padded[i] is not None or padded[i + 1] is not None, f"bye-vs-bye at {i} for {count}"


def test_build_bracket_five_players():
    """5 players: 8-slot bracket, three byes, one real first-round match."""
    p = [UserCompetitor(i) for i in range(1, 6)]
    matches = build_bracket(1, p)

    assert [(m.round, m.match_number) for m in matches] == [
        (1, 1), (1, 2), (1, 3), (1, 4), (2, 1), (2, 2), (3, 1)
    ]
    first_round = [m for m in matches if m.round == 1]
    byes = [m for m in first_round if m.is_bye]
    assert len(byes) == 3
    for m in byes:
        assert m.status == MatchStatus.COMPLETED
        assert m.completed_at is not None
        assert m.winner_user_id == m.player_a_id
        assert m.player_b_id is None

    real = first_round[3]
    assert real.is_bye is False
    assert real.status == MatchStatus.SCHEDULED
    assert (real.player_a_id, real.player_b_id) == (4, 5)

    # Bye winners are already waiting in round 2
    semi_1, semi_2 = matches[4], matches[5]
    assert (semi_1.player_a_id, semi_1.player_b_id) == (1, 2)
    assert (semi_2.player_a_id, semi_2.player_b_id) == (3, None)

    final = matches[6]
    assert final.player_a_id is None and final.player_b_id is None


def test_build_bracket_full_bracket_has_no_byes():
    matches = build_bracket(1, [UserCompetitor(i) for i in range(1, 9)])
    assert len(matches) == 7
    assert not any(m.is_bye for m in matches)
    assert all(m.status == MatchStatus.SCHEDULED for m in matches)


def test_build_bracket_match_count_is_size_minus_one():
    for count in (2, 3, 6, 7, 12, 17):
        _, size = bracket_dimensions(count)
        assert len(build_bracket(1, [UserCompetitor(i) for i in range(count)])) == size - 1


def test_generate_bracket_persists_matches(session: Session, solo_tournament, host_actor, keep_order):
    tournament, players = solo_tournament(5)

    matches = generate_bracket(session, tournament.id, host_actor, rng=keep_order)

    assert len(matches) == 7
    stored = session.exec(select(Match).where(Match.tournament_id == tournament.id)).all()
    assert len(stored) == 7

    real = [m for m in matches if m.round == 1 and not m.is_bye]
    assert len(real) == 1
    assert (real[0].player_a_id, real[0].player_b_id) == (players[3].id, players[4].id)


def test_generate_bracket_shuffles_with_given_rng(session: Session, solo_tournament, host_actor):
    class Reverse:
        def shuffle(self, x):
            x.reverse()

    tournament, players = solo_tournament(4)
    matches = generate_bracket(session, tournament.id, host_actor, rng=Reverse())

    first = matches[0]
    assert (first.player_a_id, first.player_b_id) == (players[3].id, players[2].id)


def test_generate_bracket_two_players_is_a_single_final(session: Session, solo_tournament, host_actor, keep_order):
    tournament, players = solo_tournament(2)
    matches = generate_bracket(session, tournament.id, host_actor, rng=keep_order)

    assert len(matches) == 1
    assert matches[0].round == 1
    assert matches[0].is_bye is False
    assert (matches[0].player_a_id, matches[0].player_b_id) == (players[0].id, players[1].id)


def test_generate_bracket_only_uses_confirmed_registrations(
    session: Session, solo_tournament, make_user, register, host_actor, keep_order
):
    tournament, players = solo_tournament(3)
    register(tournament, user=make_user(), status=RegistrationStatus.PENDING)
    register(tournament, user=make_user(), status=RegistrationStatus.CANCELLED)

    matches = generate_bracket(session, tournament.id, host_actor, rng=keep_order)

    # 3 participants -> 4-slot bracket
    assert len(matches) == 3
    seated = {m.player_a_id for m in matches if m.round == 1} | {m.player_b_id for m in matches if m.round == 1}
    assert seated - {None} == {p.id for p in players}


def test_generate_bracket_team_tournament_uses_team_slots(
    session: Session, make_tournament, make_user, make_team, register, host_actor, keep_order
):
    tournament = make_tournament(type=TournamentType.TEAM)
    teams = [make_team([make_user(), make_user()], name=f"T{i}") for i in range(3)]
    for team in teams:
        register(tournament, team=team)

    matches = generate_bracket(session, tournament.id, host_actor, rng=keep_order)

    bye = matches[0]
    assert bye.is_bye
    assert bye.team_a_id == teams[0].id
    assert bye.winner_team_id == teams[0].id
    assert bye.player_a_id is None and bye.winner_user_id is None

    real = matches[1]
    assert (real.team_a_id, real.team_b_id) == (teams[1].id, teams[2].id)
    assert real.player_a_id is None and real.player_b_id is None

    final = matches[2]
    assert final.team_a_id == teams[0].id


def test_regenerate_replaces_previous_bracket(session: Session, solo_tournament, host_actor, keep_order):
    tournament, players = solo_tournament(4)
    matches = generate_bracket(session, tournament.id, host_actor, rng=keep_order)
    submit_result(session, matches[0].id, host_actor, 2, 1, players[0].id)

    matches = generate_bracket(session, tournament.id, host_actor, rng=keep_order)

    session.expire_all()
    stored = session.exec(select(Match).where(Match.tournament_id == tournament.id)).all()
    assert len(stored) == 3
    assert all(m.status == MatchStatus.SCHEDULED for m in stored)
    assert all(m.winner_user_id is None for m in stored)


def test_generate_bracket_tournament_not_found(session: Session, host_actor):
    with pytest.raises(NotFound):
        generate_bracket(session, 9999, host_actor)


def test_generate_bracket_requires_host_or_admin(session: Session, solo_tournament, make_user, keep_order):
    tournament, players = solo_tournament(4)

    with pytest.raises(Forbidden):
        generate_bracket(session, tournament.id, Actor(user_id=players[0].id, role=UserRole.PLAYER))

    admin = make_user(role=UserRole.ADMIN)
    matches = generate_bracket(session, tournament.id, Actor(user_id=admin.id, role=admin.role), rng=keep_order)
    assert len(matches) == 3


def test_generate_bracket_banned_host_is_forbidden(session: Session, solo_tournament, host):
    tournament, _ = solo_tournament(4)
    with pytest.raises(Forbidden, match="banned"):
        generate_bracket(session, tournament.id, Actor(user_id=host.id, role=host.role, is_banned=True))


@pytest.mark.parametrize("status", [TournamentStatus.SCHEDULED, TournamentStatus.COMPLETED])
def test_generate_bracket_requires_ongoing(session: Session, solo_tournament, host_actor, status):
    tournament, _ = solo_tournament(4, status=status)
    with pytest.raises(InvalidState):
        generate_bracket(session, tournament.id, host_actor)

    assert session.exec(select(Match).where(Match.tournament_id == tournament.id)).all() == []


def test_generate_bracket_insufficient_participants(session: Session, solo_tournament, host_actor):
    tournament, _ = solo_tournament(1)
    with pytest.raises(InsufficientParticipants, match="have 1"):
        generate_bracket(session, tournament.id, host_actor)

    assert session.exec(select(Match).where(Match.tournament_id == tournament.id)).all() == []


def test_insufficient_participants_keeps_existing_bracket(session: Session, solo_tournament, host_actor, keep_order):
    tournament, _ = solo_tournament(2)
    generate_bracket(session, tournament.id, host_actor, rng=keep_order)

    for registration in tournament.registrations:
        registration.status = RegistrationStatus.CANCELLED
        session.add(registration)
    session.commit()

    with pytest.raises(InsufficientParticipants):
        generate_bracket(session, tournament.id, host_actor)

    assert len(session.exec(select(Match).where(Match.tournament_id == tournament.id)).all()) == 1
