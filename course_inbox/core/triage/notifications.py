"""
Professor notification for questions routed to human review.
"""
import base64
import json
import time
from dataclasses import dataclass
from string import Template

from course_inbox.core.ai.decision import Decision
from course_inbox.core.ai.model_tiers import MODEL_INFO
from course_inbox.core.email.models import EmailData

RULE = "━" * 48

NOTIFICATION_TEMPLATE = Template(f"""{RULE}
📬 NEW STUDENT QUESTION
{RULE}

FROM: $from_address
DATE: $date
SUBJECT: $subject

STUDENT'S QUESTION:
$body

{RULE}
🤖 AI SUGGESTED RESPONSE ($confidence% confidence)
Model: $model_name
{RULE}

$response

Reasoning: $reasoning

{RULE}
ACTIONS
{RULE}

✓ APPROVE & SEND:
$approve

✎ EDIT & SEND:
$edit

✗ IGNORE:
$ignore

{RULE}""")


@dataclass
class ApprovalLinks:
    approve: str
    edit: str
    ignore: str


def generate_approval_links(question_id: str, course_id: str, base_url: str) -> ApprovalLinks:
    """Review links carrying an opaque token for the question."""
    payload = json.dumps({
        "question_id": question_id,
        "course_id": course_id,
        "timestamp": int(time.time() * 1000),
    })
    token = base64.urlsafe_b64encode(payload.encode("utf-8")).decode("utf-8").rstrip("=")
    base = base_url.rstrip("/")
    return ApprovalLinks(
        approve=f"{base}/api/approve/{token}?action=approve",
        edit=f"{base}/api/approve/{token}?action=edit",
        ignore=f"{base}/api/approve/{token}?action=ignore",
    )


def format_notification_subject(email: EmailData) -> str:
    return f"[Course Q&A] New question from {email.from_address}"


def format_professor_notification(email: EmailData, decision: Decision, links: ApprovalLinks) -> str:
    return NOTIFICATION_TEMPLATE.substitute(
        from_address=email.from_address,
        date=email.date.isoformat(),
        subject=email.subject,
        body=email.body,
        confidence=f"{decision.confidence * 100:.0f}",
        model_name=MODEL_INFO[decision.model_used].name,
        response=decision.response,
        reasoning=decision.reasoning,
        approve=links.approve,
        edit=links.edit,
        ignore=links.ignore,
    )
