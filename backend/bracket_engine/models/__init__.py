from bracket_engine.models.dispute import Dispute
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.payout import Payout
from bracket_engine.models.registration import Registration, RegistrationStatus
from bracket_engine.models.team import Team, TeamMember, TeamRole
from bracket_engine.models.tournament import Tournament, TournamentStatus, TournamentType
from bracket_engine.models.user import User, UserRole
from bracket_engine.models.wallet import Wallet, WalletTransaction

__all__ = [
    "Dispute",
    "Match",
    "MatchStatus",
    "Payout",
    "Registration",
    "RegistrationStatus",
    "Team",
    "TeamMember",
    "TeamRole",
    "Tournament",
    "TournamentStatus",
    "TournamentType",
    "User",
    "UserRole",
    "Wallet",
    "WalletTransaction",
]
