"""
Course email models, categorization and search queries.
"""

from .models import (
    Assignment,
    CategorizedEmail,
    CourseInfo,
    EmailCategory,
    EmailData,
    GroupedEmails,
    SyllabusData,
)
from .categorizer import EmailCategorizer, categorize_email, group_emails, load_rules
from .course_query import build_course_email_query, extract_significant_keywords

__all__ = [
    'Assignment',
    'CategorizedEmail',
    'CourseInfo',
    'EmailCategory',
    'EmailData',
    'GroupedEmails',
    'SyllabusData',
    'EmailCategorizer',
    'categorize_email',
    'group_emails',
    'load_rules',
    'build_course_email_query',
    'extract_significant_keywords',
]
