"""
Test professor notifications and review links.
"""
import base64
import json

from course_inbox.core.ai.decision import Decision
from course_inbox.core.ai.model_tiers import ModelTier
from course_inbox.core.triage.notifications import (
    format_notification_subject,
    format_professor_notification,
    generate_approval_links,
)


def _decode(token):
    padded = token + "=" * (-len(token) % 4)
    return json.loads(base64.urlsafe_b64decode(padded))


class TestApprovalLinks:

    def test_links_share_one_token(self):
        links = generate_approval_links("q-1", "cs-101", "https://inbox.example.edu/")

        assert links.approve.startswith("https://inbox.example.edu/api/approve/")
        assert links.approve.endswith("?action=approve")
        assert links.edit.endswith("?action=edit")
        assert links.ignore.endswith("?action=ignore")

        token = links.approve.split("/api/approve/")[1].split("?")[0]
        assert token in links.edit and token in links.ignore

        payload = _decode(token)
        assert payload["question_id"] == "q-1"
        assert payload["course_id"] == "cs-101"
        assert isinstance(payload["timestamp"], int)


class TestProfessorNotification:

    def test_body_sections(self, make_email):
        email = make_email(body="Is the final cumulative?", subject="Final exam")
        decision = Decision(
            confidence=0.62,
            response="Yes, it covers the whole term.",
            reasoning="Partially covered by the syllabus",
            model_used=ModelTier.SONNET,
        )
        links = generate_approval_links("q-1", "cs-101", "https://inbox.example.edu")

        body = format_professor_notification(email, decision, links)

        assert "NEW STUDENT QUESTION" in body
        assert "FROM: student@university.edu" in body
        assert "SUBJECT: Final exam" in body
        assert "Is the final cumulative?" in body
        assert "AI SUGGESTED RESPONSE (62% confidence)" in body
        assert "Model: Claude Sonnet 4" in body
        assert "Reasoning: Partially covered by the syllabus" in body
        assert links.approve in body
        assert links.edit in body
        assert links.ignore in body

    def test_subject(self, make_email):
        assert format_notification_subject(make_email()) == "[Course Q&A] New question from student@university.edu"
