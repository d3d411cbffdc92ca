"""
Rule-based course email categorization.
Groups incoming mail into reviewer-facing buckets.

Evaluation order (first match wins):
1. Syllabus assignment names found in subject + snippet -> assignments
2. Pattern rules in priority order; within a rule, subject patterns before
   snippet patterns
3. Otherwise -> general

The rule list is data. The built-in rules can be replaced by a
``categorization_rules.yaml`` file (see ``load_rules``).
"""
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Pattern
import logging

import yaml

from course_inbox.core.paths import get_config_path
from .models import CategorizedEmail, EmailCategory, EmailData, GroupedEmails, SyllabusData

logger = logging.getLogger(__name__)

RULES_FILENAME = "categorization_rules.yaml"
MIN_ASSIGNMENT_NAME_LENGTH = 4


@dataclass
class CategorizationRule:
    """
    One category's patterns. Lower priority number = evaluated first.
    """
    category: EmailCategory
    priority: int
    subject_patterns: List[Pattern] = field(default_factory=list)
    snippet_patterns: List[Pattern] = field(default_factory=list)

    def match(self, subject: str, snippet: str) -> Optional[str]:
        """Return the matched text of the first pattern hit, or None."""
        for pattern in self.subject_patterns:
            found = pattern.search(subject)
            if found:
                return found.group(0)
        for pattern in self.snippet_patterns:
            found = pattern.search(snippet)
            if found:
                return found.group(0)
        return None


def _compile(patterns: List[str], rule_name: str) -> List[Pattern]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern, re.IGNORECASE))
        except re.error as e:
            raise ValueError(f"Invalid pattern {pattern!r} in rule '{rule_name}': {e}")
    return compiled


def build_rule(config: Dict[str, Any]) -> CategorizationRule:
    """
    Build a rule from its data form.

    Raises:
        ValueError: Unknown category or invalid regex
    """
    name = str(config.get("category", "<missing>"))
    try:
        category = EmailCategory(config["category"])
    except (KeyError, ValueError):
        raise ValueError(f"Unknown category in categorization rule: {name}")

    return CategorizationRule(
        category=category,
        priority=int(config.get("priority", 100)),
        subject_patterns=_compile(config.get("subject_patterns", []), name),
        snippet_patterns=_compile(config.get("snippet_patterns", []), name),
    )


DEFAULT_RULES: List[Dict[str, Any]] = [
    {
        "category": "schedule_changes",
        "priority": 1,
        "subject_patterns": [
            r"reschedul",
            r"cancell?ed",
            r"moved\s+to",
            r"room\s+change",
            r"class\s+(cancelled|moved|rescheduled)",
            r"date\s+change",
            r"time\s+change",
            r"location\s+change",
            r"\bpostponed?\b",
            r"\bno\s+class\b",
        ],
        "snippet_patterns": [
            r"class.*(?:cancelled|rescheduled|moved)",
            r"new\s+(?:location|room|time|date)",
            r"will\s+not\s+(?:meet|be\s+held)",
        ],
    },
    {
        "category": "assignments",
        "priority": 2,
        "subject_patterns": [
            r"assignment",
            r"homework",
            r"\bdue\b",
            r"\bsubmit",
            r"deadline",
            r"\bexam\b",
            r"\bquiz\b",
            r"\bproject\b",
            r"\bgrade[sd]?\b",
            r"\bfeedback\b",
            r"\btest\b",
            r"\bmidterm\b",
            r"\bfinal\b",
        ],
        "snippet_patterns": [
            r"due\s+(date|by)",
            r"please\s+submit",
            r"submission\s+deadline",
            r"your\s+grade",
        ],
    },
    {
        "category": "announcements",
        "priority": 3,
        "subject_patterns": [
            r"\bannouncement\b",
            r"\bupdate\b",
            r"\bimportant\b",
            r"\breminder\b",
            r"\bnotice\b",
            r"\balert\b",
            r"\bfyi\b",
            r"\bheads?\s*up\b",
            r"\bplease\s+note\b",
        ],
        "snippet_patterns": [
            r"please\s+note",
            r"i\s+wanted\s+to\s+(let\s+you\s+know|inform)",
            r"this\s+is\s+a\s+reminder",
        ],
    },
]


class EmailCategorizer:
    """
    Priority-ordered categorizer for course mail.
    """

    def __init__(self, rules: Optional[List[CategorizationRule]] = None):
        """
        Args:
            rules: Categorization rules (stable-sorted by priority). Defaults to the built-in rules.
        """
        if rules is None:
            rules = [build_rule(config) for config in DEFAULT_RULES]
        # Sort by priority, ties keep list order
        ordered = sorted(enumerate(rules), key=lambda x: (x[1].priority, x[0]))
        self.rules = [rule for _, rule in ordered]

    @classmethod
    def from_yaml(cls, yaml_path) -> 'EmailCategorizer':
        """
        Load rules from a YAML file with a top-level ``rules`` list.

        Raises:
            ValueError: Invalid rule
        """
        with open(yaml_path, 'r') as f:
            config = yaml.safe_load(f) or {}

        rules = [build_rule(rule_config) for rule_config in config.get('rules', [])]
        logger.info(f"Loaded {len(rules)} categorization rules from {yaml_path}")
        return cls(rules)

    def categorize(self, email: EmailData, syllabus: Optional[SyllabusData] = None) -> CategorizedEmail:
        snippet = email.preview
        text_to_search = f"{email.subject} {snippet}".lower()

        # Assignment names from the syllabus win over every pattern rule
        if syllabus:
            for assignment in syllabus.assignments:
                name = assignment.name.lower()
                if len(name) >= MIN_ASSIGNMENT_NAME_LENGTH and name in text_to_search:
                    logger.debug(f"Email {email.id} matched assignment '{assignment.name}'")
                    return CategorizedEmail(
                        email=email,
                        category=EmailCategory.ASSIGNMENTS,
                        matched_keywords=[assignment.name],
                    )

        for rule in self.rules:
            keyword = rule.match(email.subject, snippet)
            if keyword is not None:
                logger.debug(f"Email {email.id} matched {rule.category.value} on '{keyword}'")
                return CategorizedEmail(email=email, category=rule.category, matched_keywords=[keyword])

        return CategorizedEmail(email=email, category=EmailCategory.GENERAL, matched_keywords=[])

    def group(self, emails: List[EmailData], syllabus: Optional[SyllabusData] = None) -> GroupedEmails:
        """
        Bucket emails by category, newest first within each bucket.
        All four categories are always present.
        """
        grouped: GroupedEmails = {category: [] for category in EmailCategory}

        for email in emails:
            categorized = self.categorize(email, syllabus)
            grouped[categorized.category].append(categorized)

        for category in grouped:
            grouped[category].sort(key=lambda c: c.email.date, reverse=True)

        return grouped


_default_categorizer: Optional[EmailCategorizer] = None


def load_rules(config_dir: Optional[Path] = None) -> EmailCategorizer:
    """Categorizer from ``categorization_rules.yaml`` if present, else the built-in rules."""
    path = get_config_path(RULES_FILENAME, config_dir=config_dir)
    if path is None:
        return EmailCategorizer()
    return EmailCategorizer.from_yaml(path)


def get_categorizer() -> EmailCategorizer:
    """Shared categorizer (singleton)."""
    global _default_categorizer
    if _default_categorizer is None:
        _default_categorizer = load_rules()
    return _default_categorizer


def categorize_email(email: EmailData, syllabus: Optional[SyllabusData] = None) -> CategorizedEmail:
    return get_categorizer().categorize(email, syllabus)


def group_emails(emails: List[EmailData], syllabus: Optional[SyllabusData] = None) -> GroupedEmails:
    return get_categorizer().group(emails, syllabus)
