"""Infer a job's category and priority from its title and URL.

Pure functions; the same (title, url) always yields the same result.
"""

from app.models.cron_job import JobCategory, JobPriority

# Checked in order against the lower-cased title, first match wins
CATEGORY_KEYWORDS: list[tuple[JobCategory, tuple[str, ...]]] = [
    (JobCategory.CONTENT, ("content", "blog", "generate")),
    (JobCategory.MAINTENANCE, ("maintenance", "cleanup", "backup")),
    (JobCategory.PUBLISHING, ("publish", "deploy")),
    (JobCategory.ANALYTICS, ("analytics", "stats", "report")),
]

# Fallback checked against the lower-cased URL
URL_CONTENT_KEYWORDS = ("generate", "content")

HIGH_PRIORITY_KEYWORDS = ("critical", "urgent", "important")
MEDIUM_PRIORITY_KEYWORDS = ("backup", "maintenance")


def infer_category(title: str, url: str) -> JobCategory:
    """Map a job to a category, defaulting to content."""
    title_lower = (title or "").lower()
    url_lower = (url or "").lower()

    for category, keywords in CATEGORY_KEYWORDS:
        if any(kw in title_lower for kw in keywords):
            return category

    if any(kw in url_lower for kw in URL_CONTENT_KEYWORDS):
        return JobCategory.CONTENT

    return JobCategory.CONTENT


def infer_priority(title: str) -> JobPriority:
    """Map a job title to a priority tier, defaulting to medium."""
    title_lower = (title or "").lower()

    if any(kw in title_lower for kw in HIGH_PRIORITY_KEYWORDS):
        return JobPriority.HIGH
    if any(kw in title_lower for kw in MEDIUM_PRIORITY_KEYWORDS):
        return JobPriority.MEDIUM

    return JobPriority.MEDIUM


def infer(title: str, url: str) -> tuple[JobCategory, JobPriority]:
    """Infer (category, priority) for a job."""
    return infer_category(title, url), infer_priority(title)
