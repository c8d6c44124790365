"""Matching of job postings against alert criteria."""

from .engine import MatchEvaluator, matches
from .models import MatchResult

__all__ = ["MatchEvaluator", "MatchResult", "matches"]
