"""
Course knowledge base: storage, lexical search and prompt context.
"""

from .models import FAQ, FAQMatch, FAQSource, KeyDate, KnowledgeBase
from .search import search_faqs
from .context import build_knowledge_context
from .store import KnowledgeStore

__all__ = [
    'FAQ',
    'FAQMatch',
    'FAQSource',
    'KeyDate',
    'KnowledgeBase',
    'KnowledgeStore',
    'search_faqs',
    'build_knowledge_context',
]
