"""Template context for job alert digests."""

from typing import Dict, List, Optional, Sequence

from jobalerts.config.models import AppSettings
from jobalerts.domain.models import AlertCriteria, JobPosting, Profile
from jobalerts.matching.models import MatchResult
from jobalerts.utils.text import format_salary, truncate_text


def build_digest_context(
    profile: Profile,
    alert: AlertCriteria,
    jobs: Sequence[JobPosting],
    app_settings: AppSettings,
    max_jobs: int = 5,
    match_results: Optional[Dict[str, MatchResult]] = None,
) -> Dict:
    """Build the template context for one alert digest.

    Only the first ``max_jobs`` jobs are listed; the rest are reported as a
    count.

    Args:
        profile: Recipient
        alert: Alert the digest belongs to
        jobs: Matched jobs, in listing order (must be non-empty)
        app_settings: Public URL and brand used for links
        max_jobs: Number of jobs listed in the body
        match_results: Optional match details keyed by job id, used to show
            which keywords matched

    Returns:
        Dictionary with keys: recipient_name, alert_title, total_matches,
        jobs, remaining_count, matched_keywords, app_url, jobs_url,
        manage_alerts_url, brand_name
    """
    match_results = match_results or {}
    listed = list(jobs)[:max_jobs]

    job_entries: List[Dict] = []
    matched_keywords: List[str] = []
    for job in listed:
        result = match_results.get(job.id)
        keywords = result.matched_keywords if result is not None else []
        for keyword in keywords:
            if keyword not in matched_keywords:
                matched_keywords.append(keyword)

        job_entries.append(
            {
                "id": job.id,
                "title": job.title,
                "company": job.company_name or "",
                "location": "Remote" if job.remote and not job.location else (job.location or ""),
                "remote": job.remote,
                "job_type": job.job_type.value if job.job_type else "",
                "salary": format_salary(job.salary_min, job.salary_max, job.salary_currency) or "",
                "summary": truncate_text(job.description, max_length=200),
                "matched_keywords": keywords,
                "url": f"{app_settings.app_url}/jobs/{job.id}",
            }
        )

    return {
        "recipient_name": profile.display_name,
        "alert_title": alert.title,
        "total_matches": len(jobs),
        "jobs": job_entries,
        "remaining_count": max(len(jobs) - len(listed), 0),
        "matched_keywords": matched_keywords,
        "app_url": app_settings.app_url,
        "jobs_url": f"{app_settings.app_url}/jobs",
        "manage_alerts_url": f"{app_settings.app_url}/dashboard/job-alerts",
        "brand_name": app_settings.brand_name,
    }
