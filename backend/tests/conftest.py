import itertools
import os

# Keep app startup (init_db) off the on-disk database during tests
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from bracket_engine.auth import Actor  # noqa: E402
from bracket_engine.database import get_session, import_models  # noqa: E402
from bracket_engine.main import app  # noqa: E402
from bracket_engine.models import (  # noqa: E402
    Payout,
    Registration,
    RegistrationStatus,
    Team,
    TeamMember,
    TeamRole,
    Tournament,
    TournamentStatus,
    TournamentType,
    User,
    UserRole,
    Wallet,
)

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Tables are created and dropped per test, so every test starts empty
# 4. App dependency overridden to use test_engine (see client_fixture)
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


class KeepOrder:
    """Seeding randomness that leaves participants in registration order."""

    def shuffle(self, x):
        pass


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a freshly created schema"""
    import_models()
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place
    for the entire duration. This ensures the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def keep_order():
    return KeepOrder()


@pytest.fixture
def make_user(session: Session):
    """Create a user (with an empty wallet unless wallet=False)."""
    counter = itertools.count(1)

    def _make(role=UserRole.PLAYER, wallet=True, is_banned=False, username=None):
        user = User(username=username or f"user{next(counter)}", role=role, is_banned=is_banned)
        session.add(user)
        session.commit()
        session.refresh(user)
        if wallet:
            session.add(Wallet(user_id=user.id, balance=0))
            session.commit()
        return user

    return _make


@pytest.fixture
def host(make_user):
    return make_user(role=UserRole.HOST, username="host")


@pytest.fixture
def host_actor(host):
    return Actor(user_id=host.id, role=host.role)


@pytest.fixture
def make_tournament(session: Session, host):
    def _make(
        type=TournamentType.SOLO,
        status=TournamentStatus.ONGOING,
        collected=0,
        prize_pool=0,
        payouts=None,
        host_id=None,
    ):
        tournament = Tournament(
            name="Friday Night Cup",
            game="Rocket League",
            type=type,
            status=status,
            host_id=host_id or host.id,
            entry_fee=500,
            collected=collected,
            prize_pool=prize_pool,
        )
        session.add(tournament)
        session.commit()
        session.refresh(tournament)

        for position, amount in (payouts or {}).items():
            session.add(Payout(tournament_id=tournament.id, position=position, amount=amount))
        session.commit()
        return tournament

    return _make


@pytest.fixture
def register(session: Session):
    def _register(tournament, user=None, team=None, status=RegistrationStatus.CONFIRMED):
        registration = Registration(
            tournament_id=tournament.id,
            user_id=user.id if user else None,
            team_id=team.id if team else None,
            status=status,
        )
        session.add(registration)
        session.commit()
        return registration

    return _register


@pytest.fixture
def make_team(session: Session):
    """Create a team; the first member is the captain unless captain=False."""

    def _make(members, name="Team", captain=True):
        team = Team(name=name, captain_id=members[0].id)
        session.add(team)
        session.commit()
        session.refresh(team)
        for index, user in enumerate(members):
            role = TeamRole.CAPTAIN if captain and index == 0 else TeamRole.MEMBER
            session.add(TeamMember(team_id=team.id, user_id=user.id, role=role))
        session.commit()
        return team

    return _make


@pytest.fixture
def solo_tournament(make_tournament, make_user, register):
    """An ONGOING SOLO tournament with `count` confirmed players, in registration order."""

    def _make(count, **kwargs):
        tournament = make_tournament(**kwargs)
        players = [make_user() for _ in range(count)]
        for player in players:
            register(tournament, user=player)
        return tournament, players

    return _make
