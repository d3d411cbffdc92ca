"""
Knowledge context builder: serializes a knowledge base into a prompt block.
"""
from .models import KnowledgeBase

SECTION_SEPARATOR = "\n\n---\n\n"
DEFAULT_FAQ_LIMIT = 10


def build_knowledge_context(knowledge_base: KnowledgeBase, faq_limit: int = DEFAULT_FAQ_LIMIT) -> str:
    """
    Build the course context block for the answering prompt.

    Sections appear in a fixed order (syllabus summary, key dates as stored,
    policies, most recent FAQs). Empty sections are omitted and an empty
    knowledge base yields an empty string.
    """
    parts = []

    if knowledge_base.syllabus_summary:
        parts.append(f"SYLLABUS SUMMARY:\n{knowledge_base.syllabus_summary}")

    if knowledge_base.key_dates:
        dates = "\n".join(f"- {d.date}: {d.description}" for d in knowledge_base.key_dates)
        parts.append(f"KEY DATES:\n{dates}")

    if knowledge_base.policies:
        policies = "\n".join(f"- {p}" for p in knowledge_base.policies)
        parts.append(f"POLICIES:\n{policies}")

    if knowledge_base.faqs and faq_limit > 0:
        recent = knowledge_base.faqs[-faq_limit:]
        faq_text = "\n\n".join(f"Q: {f.question}\nA: {f.answer}" for f in recent)
        parts.append(f"PREVIOUS Q&A:\n{faq_text}")

    return SECTION_SEPARATOR.join(parts)
