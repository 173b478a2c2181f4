"""
Identity resolver implementations.

Provides implementations of the IdentityResolver interface for attributing
anonymous leaderboard rows to configured drivers.

Available implementations:
- RankCorrelationResolver: Pairs drivers sorted by world rank with rows sorted
  by local rank
- DisplayNameResolver: Matches rows by the client-reported display name
"""

from .display_name_resolver import DisplayNameResolver
from .rank_correlation_resolver import RankCorrelationResolver

__all__ = ["DisplayNameResolver", "RankCorrelationResolver"]
