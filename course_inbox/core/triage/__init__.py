"""
Inbound question triage: auto-reply or route to the professor.
"""

from .notifications import ApprovalLinks, format_professor_notification, generate_approval_links
from .processor import QuestionProcessor, TriageAction, TriageOutcome

__all__ = [
    'ApprovalLinks',
    'format_professor_notification',
    'generate_approval_links',
    'QuestionProcessor',
    'TriageAction',
    'TriageOutcome',
]
