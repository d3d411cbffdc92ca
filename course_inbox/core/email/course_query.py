"""
Mailbox search query for a course's mail.
"""
import re
from typing import List

from .models import CourseInfo

STOP_WORDS = {
    "the", "and", "or", "in", "of", "for", "to", "a", "an", "is", "are",
    "with", "by", "on", "at", "from", "as", "into", "through", "during",
}

MAX_KEYWORDS = 3


def extract_significant_keywords(course_name: str) -> List[str]:
    """First three words of a course name longer than three characters that are not stop words."""
    keywords = [
        word for word in course_name.split()
        if len(word) > 3 and word.lower() not in STOP_WORDS
    ]
    return keywords[:MAX_KEYWORDS]


def build_course_email_query(course: CourseInfo) -> str:
    """
    OR-query over instructor address, course code and name keywords.

    Example:
        CourseInfo(name="Intro to Machine Learning", code="CS 229", email="prof@uni.edu")
        -> '(from:prof@uni.edu OR "CS 229" OR "CS229" OR "Intro" OR "Machine" OR "Learning")'
    """
    parts = []

    if course.email:
        parts.append(f"from:{course.email}")

    if course.code:
        code = course.code.strip()
        parts.append(f'"{code}"')
        # Codes are written both with and without the space
        compact = re.sub(r"\s+", "", code)
        if compact != code:
            parts.append(f'"{compact}"')

    if course.name:
        parts.extend(f'"{keyword}"' for keyword in extract_significant_keywords(course.name))

    return f"({' OR '.join(parts)})" if parts else ""
