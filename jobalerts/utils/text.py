"""Text helpers for email digests."""

from typing import Optional


def truncate_text(text: str, max_length: int = 500, suffix: str = "...") -> str:
    """Truncate text to a maximum length, breaking at a word boundary.

    Args:
        text: Text to truncate
        max_length: Maximum length including the suffix
        suffix: Appended when text was cut

    Returns:
        Original text if short enough, otherwise the truncated text

    Example:
        >>> truncate_text("Senior Python Engineer for a remote team", max_length=20)
        'Senior Python...'
    """
    if not text or len(text) <= max_length:
        return text

    cut = text[: max_length - len(suffix)]
    last_space = cut.rfind(" ")
    if last_space > 0:
        cut = cut[:last_space]

    return cut.rstrip() + suffix


def format_salary(
    salary_min: Optional[int],
    salary_max: Optional[int],
    currency: Optional[str] = None,
) -> Optional[str]:
    """Render an advertised salary range for display.

    Returns None when the job carries no salary information.

    Example:
        >>> format_salary(50000, 65000, "USD")
        'USD 50,000 - 65,000'
    """
    prefix = f"{currency} " if currency else ""

    if salary_min is not None and salary_max is not None:
        if salary_min == salary_max:
            return f"{prefix}{salary_min:,}"
        return f"{prefix}{salary_min:,} - {salary_max:,}"
    if salary_min is not None:
        return f"{prefix}{salary_min:,}+"
    if salary_max is not None:
        return f"{prefix}up to {salary_max:,}"
    return None
