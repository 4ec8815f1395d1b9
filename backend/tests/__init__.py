# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from bracket_engine.models.dispute import Dispute  # noqa: F401
from bracket_engine.models.match import Match  # noqa: F401
from bracket_engine.models.payout import Payout  # noqa: F401
from bracket_engine.models.registration import Registration  # noqa: F401
from bracket_engine.models.team import Team, TeamMember  # noqa: F401
from bracket_engine.models.tournament import Tournament  # noqa: F401
from bracket_engine.models.user import User  # noqa: F401
from bracket_engine.models.wallet import Wallet, WalletTransaction  # noqa: F401
