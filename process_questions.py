#!/usr/bin/env python3
"""
Course Questions CLI

Runs student emails through the decision engine, groups course mail for
review, and reports course statistics and builds mailbox queries for course mail.

Usage:
    python process_questions.py triage cs-101 emails.json
    python process_questions.py categorize emails.json --syllabus syllabus.json
    python process_questions.py stats cs-101
    python process_questions.py query --name "Intro to Machine Learning" --code "CS 229"

Examples:
    # Preview decisions without touching the review queue or knowledge base
    python process_questions.py triage cs-101 inbox.json --dry-run

    # Group mail using assignment names from the syllabus
    python process_questions.py categorize inbox.json --syllabus syllabus.json --verbose

Email files hold a JSON list of objects with id, from, subject, body,
snippet (optional) and date. Storage follows STORAGE_BACKEND / STORAGE_DIR;
triage and stats read stored courses, so they need the local or drive
backend (the default in-memory store is empty on every run).
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dotenv import load_dotenv
load_dotenv()


def setup_logging(verbose: bool = False, quiet: bool = False):
    """Configure logging based on verbosity."""
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def load_json_file(path: str):
    with open(Path(path).expanduser(), 'r', encoding='utf-8') as f:
        return json.load(f)


def load_emails(path: str):
    from course_inbox.core.email.models import EmailData

    data = load_json_file(path)
    if isinstance(data, dict):
        data = data.get("emails", [])
    return [EmailData.model_validate(item) for item in data]


MEMORY_STORAGE_ERROR = (
    "STORAGE_BACKEND=memory starts empty on every run, so no course exists. "
    "Set STORAGE_BACKEND to 'local' (with STORAGE_DIR) or 'drive'."
)


async def log_reply(email, response: str):
    logging.getLogger(__name__).info(f"[reply] To: {email.from_address} Re: {email.subject}\n{response}")


async def log_notification(to_address: str, subject: str, body: str):
    logging.getLogger(__name__).info(f"[notify] To: {to_address} Subject: {subject}\n{body}")


async def triage(args):
    """Decide and act on each email for a course."""
    from course_inbox.core.config import build_storage_backend, get_settings
    from course_inbox.core.courses.ledger import QuestionLedger
    from course_inbox.core.courses.repository import CourseRepository
    from course_inbox.core.knowledge.store import KnowledgeStore
    from course_inbox.core.triage.processor import QuestionProcessor, TriageAction

    logger = logging.getLogger(__name__)
    settings = get_settings()

    backend = build_storage_backend(settings)
    if backend is None:
        logger.error(MEMORY_STORAGE_ERROR)
        return 1

    store = KnowledgeStore(backend)
    repository = CourseRepository(backend)
    ledger = QuestionLedger(backend, settings.history_limit, store)

    course = await repository.get_course_config(args.course_id)
    if course is None:
        logger.error(f"Course not found: {args.course_id}")
        logger.error("Create it first (MCP tool setup_course) or check STORAGE_BACKEND / STORAGE_DIR")
        return 1

    api_key = await repository.get_decrypted_api_key(args.course_id)
    processor = QuestionProcessor(
        store,
        ledger,
        reply_sender=log_reply,
        notifier=log_notification,
    )

    emails = load_emails(args.emails)
    if args.limit:
        emails = emails[:args.limit]
    logger.info(f"Triaging {len(emails)} emails for {course.course_name}{' (dry run)' if args.dry_run else ''}")

    outcomes = []
    for email in emails:
        outcome = await processor.process(course, email, api_key=api_key, dry_run=args.dry_run)
        outcomes.append(outcome)

    print(json.dumps([o.to_dict() for o in outcomes], indent=2, default=str))

    auto = sum(1 for o in outcomes if o.action == TriageAction.AUTO_REPLIED)
    routed = sum(1 for o in outcomes if o.action == TriageAction.ROUTED)
    skipped = sum(1 for o in outcomes if o.action == TriageAction.SKIPPED)
    logger.info(f"Done: {auto} auto-replied, {routed} routed to professor, {skipped} skipped")
    return 0


async def categorize(args):
    """Group emails into reviewer buckets."""
    from course_inbox.core.email.categorizer import EmailCategorizer, load_rules
    from course_inbox.core.email.models import SyllabusData

    categorizer = EmailCategorizer.from_yaml(args.rules) if args.rules else load_rules()
    syllabus = SyllabusData.model_validate(load_json_file(args.syllabus)) if args.syllabus else None

    grouped = categorizer.group(load_emails(args.emails), syllabus)
    output = {
        category.value: [
            {
                "id": c.email.id,
                "from": c.email.from_address,
                "subject": c.email.subject,
                "date": c.email.date.isoformat(),
                "matched_keywords": c.matched_keywords,
            }
            for c in items
        ]
        for category, items in grouped.items()
    }
    print(json.dumps(output, indent=2))
    return 0


async def query(args):
    """Print the mailbox search query for a course."""
    from course_inbox.core.email.course_query import build_course_email_query
    from course_inbox.core.email.models import CourseInfo

    course = CourseInfo(name=args.name, code=args.code, email=args.instructor)
    print(build_course_email_query(course))
    return 0


async def stats(args):
    """Print course statistics."""
    from course_inbox.core.config import build_storage_backend, get_settings
    from course_inbox.core.courses.ledger import QuestionLedger

    settings = get_settings()
    backend = build_storage_backend(settings)
    if backend is None:
        logging.getLogger(__name__).error(MEMORY_STORAGE_ERROR)
        return 1

    ledger = QuestionLedger(backend, settings.history_limit)
    course_stats = await ledger.get_course_stats(args.course_id)
    print(json.dumps(course_stats.model_dump(), indent=2))
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Answer, group and report on course questions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s triage cs-101 inbox.json                 # Auto-reply or route each email
  %(prog)s triage cs-101 inbox.json --dry-run       # Decisions only, no writes
  %(prog)s categorize inbox.json --syllabus s.json  # Group mail for review
  %(prog)s stats cs-101                             # Course statistics
  %(prog)s query --code "CS 229" --instructor prof@uni.edu  # Mailbox search query

triage and stats need STORAGE_BACKEND=local or drive; the in-memory store starts empty.
        """
    )

    # Output options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    triage_parser = subparsers.add_parser("triage", help="Run the decision engine over a batch of emails")
    triage_parser.add_argument("course_id", type=str, help="Course identifier")
    triage_parser.add_argument("emails", type=str, help="JSON file of emails")
    triage_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Decide only: no replies, review queue or knowledge base writes",
    )
    triage_parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Process at most this many emails",
    )

    categorize_parser = subparsers.add_parser("categorize", help="Group emails by category")
    categorize_parser.add_argument("emails", type=str, help="JSON file of emails")
    categorize_parser.add_argument(
        "--syllabus",
        type=str,
        default=None,
        help="JSON file with course_name and assignments[{name}]",
    )
    categorize_parser.add_argument(
        "--rules",
        type=str,
        default=None,
        help="Categorization rules YAML (default: config/categorization_rules.yaml)",
    )

    stats_parser = subparsers.add_parser("stats", help="Print course statistics")
    stats_parser.add_argument("course_id", type=str, help="Course identifier")

    query_parser = subparsers.add_parser("query", help="Build a mailbox search query for course mail")
    query_parser.add_argument("--name", type=str, default=None, help="Course name")
    query_parser.add_argument("--code", type=str, default=None, help="Course code (e.g., \"CS 229\")")
    query_parser.add_argument("--instructor", type=str, default=None, help="Instructor email address")

    args = parser.parse_args()

    # Validate input files
    for attr in ("emails", "syllabus", "rules"):
        value = getattr(args, attr, None)
        if value and not Path(value).expanduser().is_file():
            print(f"Error: File does not exist: {value}", file=sys.stderr)
            sys.exit(1)

    # Setup logging
    setup_logging(verbose=args.verbose, quiet=args.quiet)

    commands = {
        "triage": triage,
        "categorize": categorize,
        "stats": stats,
        "query": query,
    }
    exit_code = asyncio.run(commands[args.command](args))

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
