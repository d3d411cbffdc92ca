"""
Prompts for answering student questions.

The system prompt fixes the JSON reply contract (confidence, response,
reasoning) and the confidence banding; the course context and up to three
similar FAQs are appended to it. The user turn carries the raw email.
"""
from typing import List

from course_inbox.core.email.models import EmailData
from course_inbox.core.knowledge.models import FAQMatch

MAX_SIMILAR_FAQS = 3

NO_CONTEXT_TEXT = "No knowledge base content available yet."
NO_SIMILAR_TEXT = "No similar questions found."

SYSTEM_PROMPT_TEMPLATE = """You are a helpful course assistant. Answer student questions based on the provided course knowledge base.

IMPORTANT: You must respond with a JSON object containing:
- "confidence": number between 0 and 1 indicating how confident you are in your answer
  - 0.9-1.0: Answer is directly from syllabus, FAQ, or course materials
  - 0.7-0.9: Answer is reasonably inferred from available information
  - 0.5-0.7: Answer is partially based on course info, needs verification
  - 0.0-0.5: Cannot answer from available information, needs professor
- "response": your answer to the student (write naturally, as if from the professor)
- "reasoning": brief explanation of why you assigned this confidence level

Be conservative with confidence scores. If you're unsure or the question requires professor judgment, use a lower score.

COURSE KNOWLEDGE BASE:
{context}

Similar previous Q&A (if any):
{similar}"""

USER_PROMPT_TEMPLATE = """Student email:
From: {from_address}
Subject: {subject}
Date: {date}

Message:
{body}

Generate a helpful response and rate your confidence."""


def format_similar_faqs(matches: List[FAQMatch]) -> str:
    blocks = [
        f"Q: {m.faq.question}\nA: {m.faq.answer}\nSimilarity: {m.similarity * 100:.0f}%"
        for m in matches[:MAX_SIMILAR_FAQS]
    ]
    return "\n\n".join(blocks) or NO_SIMILAR_TEXT


def build_system_prompt(knowledge_context: str, matches: List[FAQMatch]) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(
        context=knowledge_context or NO_CONTEXT_TEXT,
        similar=format_similar_faqs(matches),
    )


def build_user_prompt(email: EmailData) -> str:
    return USER_PROMPT_TEMPLATE.format(
        from_address=email.from_address,
        subject=email.subject,
        date=email.date.isoformat(),
        body=email.body,
    )
