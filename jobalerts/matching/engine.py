"""Match evaluation of job postings against alert criteria.

Every rule is AND-combined and an absent criterion is vacuously true:

1. status: the job must be active
2. keywords: at least one keyword appears (case-insensitive substring) in
   the job title and description joined by a space, so a phrase may span
   the two fields
3. location: the job location contains the alert location, unless the
   alert is remote-only
4. job_type: exact equality
5. experience_level: exact equality
6. remote: remote-only alerts require a remote job
7. salary: ``(salary_max or salary_min or 0) >= salary_min``; a job with no
   salary information never meets a salary floor

Evaluation is deterministic and never touches the store or the network.
"""

import logging
from typing import Dict, Optional, Set

from jobalerts.domain.models import AlertCriteria, JobPosting, JobStatus
from jobalerts.logging import get_logger

from .models import MatchResult

logger = get_logger(__name__, component="matching")


class MatchEvaluator:
    """Evaluates job postings against an alert's filters."""

    def __init__(self, logger_instance: Optional[logging.LoggerAdapter] = None):
        self.logger = logger_instance or logger

    def evaluate(self, job: JobPosting, criteria: AlertCriteria) -> MatchResult:
        """Evaluate a job against alert criteria.

        Args:
            job: Job posting to test
            criteria: Alert whose filters apply

        Returns:
            MatchResult with the decision, matched keywords and, on
            rejection, the first failing rule
        """
        matched_fields: Dict[str, Set[str]] = {"title": set(), "description": set()}
        matched_keywords = []

        failed_rule = None
        if job.status is not JobStatus.ACTIVE:
            failed_rule = "status"

        if failed_rule is None and criteria.keywords:
            haystacks = {
                "title": job.title.lower(),
                "description": job.description.lower(),
            }
            combined = f"{haystacks['title']} {haystacks['description']}"
            for keyword in criteria.keywords:
                needle = keyword.lower()
                if needle not in combined:
                    continue
                matched_keywords.append(keyword)
                for field_name, text in haystacks.items():
                    if needle in text:
                        matched_fields[field_name].add(keyword)
            if not matched_keywords:
                failed_rule = "keywords"

        if failed_rule is None:
            failed_rule = self._first_failed_filter(job, criteria)

        is_match = failed_rule is None

        self.logger.debug(
            f"Job {'matched' if is_match else 'did not match'} alert",
            extra={
                "event": "match.evaluated",
                "job_id": job.id,
                "alert_id": criteria.id,
                "is_match": is_match,
                "failed_rule": failed_rule,
                "matched_keywords": matched_keywords,
            },
        )

        return MatchResult(
            is_match=is_match,
            matched_keywords=matched_keywords,
            matched_fields={k: v for k, v in matched_fields.items() if v},
            failed_rule=failed_rule,
        )

    def matches(self, job: JobPosting, criteria: AlertCriteria) -> bool:
        return self.evaluate(job, criteria).is_match

    @staticmethod
    def _first_failed_filter(job: JobPosting, criteria: AlertCriteria) -> Optional[str]:
        if criteria.location and not criteria.remote_only:
            if not job.location or criteria.location.lower() not in job.location.lower():
                return "location"

        if criteria.job_type is not None and job.job_type != criteria.job_type:
            return "job_type"

        if criteria.experience_level is not None and job.experience_level != criteria.experience_level:
            return "experience_level"

        if criteria.remote_only and not job.remote:
            return "remote"

        if criteria.salary_min is not None:
            upper_bound = job.salary_max if job.salary_max is not None else job.salary_min
            if upper_bound is None or upper_bound < criteria.salary_min:
                return "salary"

        return None


_default_evaluator = MatchEvaluator()


def matches(job: JobPosting, criteria: AlertCriteria) -> bool:
    """Whether ``job`` satisfies every filter of ``criteria``."""
    return _default_evaluator.matches(job, criteria)
