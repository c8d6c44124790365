"""Data models for the matching engine."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set


@dataclass
class MatchResult:
    """Result of evaluating one job against one alert.

    Attributes:
        is_match: True if every rule of the alert passed
        matched_keywords: Alert keywords found in the job, in alert order
        matched_fields: Field name ("title"/"description") to keywords found there
        failed_rule: Name of the first rule that rejected the job, None on match
    """

    is_match: bool
    matched_keywords: List[str] = field(default_factory=list)
    matched_fields: Dict[str, Set[str]] = field(default_factory=dict)
    failed_rule: Optional[str] = None

    def __bool__(self) -> bool:
        return self.is_match
