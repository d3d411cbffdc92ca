"""
Lexical similarity search over a knowledge base's FAQs.

Scoring is plain substring overlap, not embeddings:

    similarity = (2 * words found in question + 1 * words found in answer) / (words * 3)

Query words are lowercased, split on whitespace and kept when longer than
two characters. Repeated query words count every time they occur. The 0.8
short-circuit and 0.85 auto-reply thresholds assume exactly this scoring.
"""
from typing import List

from .models import FAQ, FAQMatch, KnowledgeBase

MIN_WORD_LENGTH = 3


def tokenize_query(query: str) -> List[str]:
    """Lowercase whitespace split, dropping words of two characters or fewer."""
    return [word for word in query.lower().split() if len(word) >= MIN_WORD_LENGTH]


def score_faq(faq: FAQ, words: List[str]) -> float:
    if not words:
        return 0.0

    question = faq.question.lower()
    answer = faq.answer.lower()

    match_count = 0
    for word in words:
        if word in question:
            match_count += 2
        if word in answer:
            match_count += 1

    return match_count / (len(words) * 3)


def search_faqs(knowledge_base: KnowledgeBase, query: str) -> List[FAQMatch]:
    """
    Rank FAQs against a query.

    Returns:
        Matches with similarity > 0, best first. Ties keep insertion order.
    """
    words = tokenize_query(query)
    matches = [FAQMatch(faq=faq, similarity=score_faq(faq, words)) for faq in knowledge_base.faqs]
    matches = [m for m in matches if m.similarity > 0]
    # sorted() is stable
    return sorted(matches, key=lambda m: m.similarity, reverse=True)
