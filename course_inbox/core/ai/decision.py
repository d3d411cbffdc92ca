"""
Decision Engine

Decides how to answer a student question and how confident the answer is.

Flow:
1. Lexical FAQ search on the email body (top 3 matches are recorded)
2. Short-circuit: best match similarity > 0.8 -> answer with that FAQ, no model call
3. Otherwise ask the configured model tier, parsing its JSON reply
4. Optional escalation: confidence below ``smart_model_threshold`` -> retry once
   with the next tier and keep the retry only if it is strictly more confident

Any completion failure yields a fixed low-confidence decision that routes the
question to the professor. The engine never fails open.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from course_inbox.core.config import get_settings
from course_inbox.core.email.models import EmailData
from course_inbox.core.knowledge.context import build_knowledge_context
from course_inbox.core.knowledge.models import FAQMatch, KnowledgeBase
from course_inbox.core.knowledge.search import search_faqs
from .model_tiers import DEFAULT_TIER, MODEL_INFO, ModelTier, next_tier, parse_tier
from .prompts import build_system_prompt, build_user_prompt
from .providers.base import CompletionService

logger = logging.getLogger(__name__)

# Thresholds
SHORT_CIRCUIT_SIMILARITY = 0.8
SHORT_CIRCUIT_CONFIDENCE = 0.95
DEFAULT_AUTO_REPLY_THRESHOLD = 0.85
MAX_MATCHED_FAQS = 3

# Fallbacks for replies that are not the expected JSON
FALLBACK_CONFIDENCE = 0.5
FALLBACK_REASONING = "Could not parse structured response, defaulting to moderate confidence"
MISSING_REASONING = "No reasoning provided"

# Fail-closed decision
ERROR_CONFIDENCE = 0.3
ERROR_REASONING = "Error processing question, routing to professor for safety"
ERROR_RESPONSE_TEMPLATE = (
    'I received your question about "{subject}". '
    "I'll forward this to the professor for a more accurate response."
)


class Decision(BaseModel):
    """Outcome of analyzing one question. Not mutated after creation."""
    confidence: float = Field(..., ge=0.0, le=1.0)
    response: str
    matched_faq_ids: List[str] = Field(default_factory=list)
    reasoning: str
    model_used: ModelTier


class AnalyzeOptions(BaseModel):
    """Per-call decision options; unset fields come from the application settings."""
    model: ModelTier = Field(default_factory=lambda: parse_tier(get_settings().default_model_tier))
    api_key: Optional[str] = None
    auto_reply_threshold: float = Field(default_factory=lambda: get_settings().auto_reply_threshold)
    use_smart_model_for_low_confidence: bool = Field(
        default_factory=lambda: get_settings().use_smart_model_for_low_confidence
    )
    smart_model_threshold: float = Field(default_factory=lambda: get_settings().smart_model_threshold)

    @classmethod
    def from_settings(cls, course_settings, api_key: Optional[str] = None) -> 'AnalyzeOptions':
        """Options for a course's ``CourseSettings``."""
        return cls(
            model=parse_tier(course_settings.model or DEFAULT_TIER),
            api_key=api_key,
            auto_reply_threshold=course_settings.auto_reply_threshold,
            use_smart_model_for_low_confidence=course_settings.use_smart_model_for_low_confidence,
            smart_model_threshold=course_settings.smart_model_threshold,
        )


# ============================================================
# Reply parsing
# ============================================================

class ParseError(Exception):
    """Completion text did not contain a usable JSON object."""
    pass


@dataclass
class ParsedAnswer:
    confidence: float
    response: str
    reasoning: str


@dataclass
class ParseResult:
    """Either a parsed answer or the reason parsing failed."""
    answer: Optional[ParsedAnswer] = None
    error: Optional[ParseError] = None

    @property
    def ok(self) -> bool:
        return self.answer is not None

    def answer_or_fallback(self, raw_text: str) -> ParsedAnswer:
        if self.answer is not None:
            return self.answer
        return ParsedAnswer(confidence=FALLBACK_CONFIDENCE, response=raw_text, reasoning=FALLBACK_REASONING)


def extract_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced ``{...}`` span that parses as a JSON object.

    Brace matching skips braces inside JSON strings, so code fences and
    surrounding prose do not break extraction.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    candidate = text[start:index + 1]
                    try:
                        if isinstance(json.loads(candidate), dict):
                            return candidate
                    except json.JSONDecodeError:
                        pass
                    break
        start = text.find("{", start + 1)
    return None


def _coerce_confidence(value: Any) -> float:
    # Missing, zero or non-numeric confidence counts as unknown
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not value:
        value = FALLBACK_CONFIDENCE
    return min(1.0, max(0.0, float(value)))


def parse_agent_response(text: str) -> ParseResult:
    """Parse a model reply into confidence, response and reasoning."""
    candidate = extract_json_object(text)
    if candidate is None:
        return ParseResult(error=ParseError("No JSON object found in completion"))

    data = json.loads(candidate)
    return ParseResult(answer=ParsedAnswer(
        confidence=_coerce_confidence(data.get("confidence")),
        response=str(data.get("response") or text),
        reasoning=str(data.get("reasoning") or MISSING_REASONING),
    ))


# ============================================================
# Decisions
# ============================================================

def create_low_confidence_decision(email: EmailData, matched_faq_ids: List[str], model: ModelTier) -> Decision:
    """Fail-closed decision: route to the professor."""
    return Decision(
        confidence=ERROR_CONFIDENCE,
        response=ERROR_RESPONSE_TEMPLATE.format(subject=email.subject),
        matched_faq_ids=matched_faq_ids,
        reasoning=ERROR_REASONING,
        model_used=model,
    )


def should_auto_reply(decision: Decision, threshold: float = DEFAULT_AUTO_REPLY_THRESHOLD) -> bool:
    """True iff the decision is confident enough to send without review."""
    return decision.confidence >= threshold


async def _answer_with_model(
    email: EmailData,
    knowledge_context: str,
    matches: List[FAQMatch],
    model: ModelTier,
    completion: CompletionService,
    matched_faq_ids: List[str],
) -> Decision:
    system_prompt = build_system_prompt(knowledge_context, matches)
    user_prompt = build_user_prompt(email)

    try:
        text = await completion.complete(system_prompt, user_prompt, model)
    except Exception as e:
        logger.error(f"Decision error ({model.value}) for email {email.id}: {e}")
        return create_low_confidence_decision(email, matched_faq_ids, model)

    if not text:
        logger.error(f"Empty completion ({model.value}) for email {email.id}")
        return create_low_confidence_decision(email, matched_faq_ids, model)

    result = parse_agent_response(text)
    if not result.ok:
        logger.warning(f"Unparseable completion for email {email.id}: {result.error}")
    answer = result.answer_or_fallback(text)

    return Decision(
        confidence=answer.confidence,
        response=answer.response,
        matched_faq_ids=matched_faq_ids,
        reasoning=answer.reasoning,
        model_used=model,
    )


def _default_completion(options: AnalyzeOptions) -> CompletionService:
    from .providers.anthropic import AnthropicCompletionService
    return AnthropicCompletionService(api_key=options.api_key)


async def analyze_question(
    email: EmailData,
    knowledge_base: KnowledgeBase,
    options: Optional[AnalyzeOptions] = None,
    completion: Optional[CompletionService] = None,
) -> Decision:
    """
    Analyze a student question against a course knowledge base.

    Args:
        email: The student's message
        knowledge_base: The course's knowledge base (searched directly)
        options: Model tier, escalation settings and API key
        completion: Completion backend; defaults to Anthropic with ``options.api_key``

    Returns:
        Decision (never raises for completion failures)
    """
    options = options or AnalyzeOptions()
    model = options.model

    matches = search_faqs(knowledge_base, email.body)
    matched_faq_ids = [m.faq.id for m in matches[:MAX_MATCHED_FAQS]]

    if matches and matches[0].similarity > SHORT_CIRCUIT_SIMILARITY:
        best = matches[0]
        logger.info(
            f"Email {email.id}: FAQ match {best.similarity:.2f} on '{best.faq.question}', skipping model call"
        )
        return Decision(
            confidence=SHORT_CIRCUIT_CONFIDENCE,
            response=best.faq.answer,
            matched_faq_ids=matched_faq_ids,
            reasoning=f'Found highly similar FAQ: "{best.faq.question}"',
            # Records the configured tier even though no call was made
            model_used=model,
        )

    if completion is None:
        try:
            completion = _default_completion(options)
        except ValueError as e:
            logger.error(f"Completion service unavailable for email {email.id}: {e}")
            return create_low_confidence_decision(email, matched_faq_ids, model)

    knowledge_context = build_knowledge_context(knowledge_base, get_settings().context_faq_limit)
    decision = await _answer_with_model(email, knowledge_context, matches, model, completion, matched_faq_ids)

    if options.use_smart_model_for_low_confidence and decision.confidence < options.smart_model_threshold:
        smarter = next_tier(model)
        if smarter:
            logger.info(
                f"Low confidence ({decision.confidence * 100:.0f}%), retrying with {MODEL_INFO[smarter].name}"
            )
            retry = await _answer_with_model(
                email, knowledge_context, matches, smarter, completion, matched_faq_ids
            )
            if retry.confidence > decision.confidence:
                logger.info(f"Escalation to {smarter.value} raised confidence to {retry.confidence * 100:.0f}%")
                return retry
            logger.info(f"Escalation to {smarter.value} did not improve confidence, keeping {model.value}")

    return decision
