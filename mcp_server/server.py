"""
Course Inbox MCP Server

A Model Context Protocol server that exposes the course Q&A engine
(knowledge base, decision engine, email categorization, review queue)
to AI assistants like Claude/Cursor.

Architecture:
    Cursor → MCP Server → course_inbox core → storage backend

Usage:
    python -m mcp_server.server

Or add to Cursor's MCP configuration.

Security:
- Transport: stdio (local only, no network exposure)
- Audit: All tool calls are logged
"""
import asyncio
import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    Tool,
    TextContent,
)

from course_inbox.core.config import get_settings
from mcp_server.course_tools import CourseToolsClient

logger = logging.getLogger(__name__)

COURSE_ID = {"type": "string", "description": "Course identifier (e.g., 'cs-101')"}

TOOLS = [
    # ------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------
    Tool(
        name="setup_course",
        description="Create a new course with default settings, an empty review queue and empty history.",
        inputSchema={
            "type": "object",
            "properties": {
                "course_id": COURSE_ID,
                "course_name": {"type": "string", "description": "Full course name"},
                "professor_email": {"type": "string", "description": "Professor's email address"},
                "professor_name": {"type": "string", "description": "Professor's name"},
                "api_key": {"type": "string", "description": "Anthropic API key for this course (stored encrypted)"},
            },
            "required": ["course_id", "course_name", "professor_email"],
        },
    ),
    Tool(
        name="list_courses",
        description="List all courses you have set up",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    Tool(
        name="get_course_info",
        description="Get course settings, knowledge base counts and analytics",
        inputSchema={
            "type": "object",
            "properties": {"course_id": COURSE_ID},
            "required": ["course_id"],
        },
    ),
    Tool(
        name="update_settings",
        description="Update course settings such as the auto-reply threshold, model tier or escalation.",
        inputSchema={
            "type": "object",
            "properties": {
                "course_id": COURSE_ID,
                "settings": {
                    "type": "object",
                    "description": "Settings to update",
                    "properties": {
                        "auto_reply_threshold": {"type": "number", "description": "Confidence threshold for auto-reply (0-1)"},
                        "notify_on_new_question": {"type": "boolean"},
                        "max_auto_replies_per_day": {"type": "integer"},
                        "model": {"type": "string", "enum": ["haiku", "sonnet", "opus"]},
                        "use_smart_model_for_low_confidence": {"type": "boolean"},
                        "smart_model_threshold": {"type": "number"},
                    },
                },
            },
            "required": ["course_id", "settings"],
        },
    ),
    # ------------------------------------------------------------
    # Knowledge base
    # ------------------------------------------------------------
    Tool(
        name="sync_syllabus",
        description="Store syllabus text as the course's syllabus summary. Then use add_faq, add_key_date and add_policy to extract specific items.",
        inputSchema={
            "type": "object",
            "properties": {
                "course_id": COURSE_ID,
                "syllabus_text": {"type": "string", "description": "Full syllabus text content"},
            },
            "required": ["course_id", "syllabus_text"],
        },
    ),
    Tool(
        name="add_faq",
        description="Add a question/answer pair to the course knowledge base",
        inputSchema={
            "type": "object",
            "properties": {
                "course_id": COURSE_ID,
                "question": {"type": "string", "description": "The question"},
                "answer": {"type": "string", "description": "The answer"},
                "source": {
                    "type": "string",
                    "enum": ["professor_approved", "syllabus", "manual"],
                    "default": "manual",
                },
            },
            "required": ["course_id", "question", "answer"],
        },
    ),
    Tool(
        name="list_faqs",
        description="List all FAQs in the course knowledge base",
        inputSchema={
            "type": "object",
            "properties": {"course_id": COURSE_ID},
            "required": ["course_id"],
        },
    ),
    Tool(
        name="update_faq",
        description="Edit an FAQ's question and/or answer text",
        inputSchema={
            "type": "object",
            "properties": {
                "course_id": COURSE_ID,
                "faq_id": {"type": "string", "description": "FAQ identifier"},
                "question": {"type": "string", "description": "New question text"},
                "answer": {"type": "string", "description": "New answer text"},
            },
            "required": ["course_id", "faq_id"],
        },
    ),
    Tool(
        name="remove_faq",
        description="Remove an FAQ from the knowledge base",
        inputSchema={
            "type": "object",
            "properties": {
                "course_id": COURSE_ID,
                "faq_id": {"type": "string", "description": "FAQ identifier"},
            },
            "required": ["course_id", "faq_id"],
        },
    ),
    Tool(
        name="search_faqs",
        description="Find FAQs sharing words with a query, ranked by lexical similarity",
        inputSchema={
            "type": "object",
            "properties": {
                "course_id": COURSE_ID,
                "query": {"type": "string", "description": "Question text to match"},
            },
            "required": ["course_id", "query"],
        },
    ),
    Tool(
        name="add_key_date",
        description="Add a key date (exam, deadline, holiday) to the knowledge base",
        inputSchema={
            "type": "object",
            "properties": {
                "course_id": COURSE_ID,
                "date": {"type": "string", "description": "Date (e.g., '2025-03-15')"},
                "description": {"type": "string", "description": "What happens on that date"},
            },
            "required": ["course_id", "date", "description"],
        },
    ),
    Tool(
        name="add_policy",
        description="Add a course policy (late work, attendance, grading) to the knowledge base",
        inputSchema={
            "type": "object",
            "properties": {
                "course_id": COURSE_ID,
                "policy": {"type": "string", "description": "Policy text"},
            },
            "required": ["course_id", "policy"],
        },
    ),
    # ------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------
    Tool(
        name="analyze_question",
        description="""Decide how to answer a student question.

Returns a suggested response with a confidence score (0-1), the matched FAQ ids,
the model tier used and whether the confidence clears the course's auto-reply threshold.
A near-identical FAQ is answered directly without calling a model.""",
        inputSchema={
            "type": "object",
            "properties": {
                "course_id": COURSE_ID,
                "from": {"type": "string", "description": "Student email address"},
                "subject": {"type": "string", "description": "Email subject"},
                "body": {"type": "string", "description": "Email body"},
                "email_id": {"type": "string", "description": "Message id (optional)"},
                "date": {"type": "string", "description": "ISO date the email was received (optional)"},
            },
            "required": ["course_id", "from", "body"],
        },
    ),
    Tool(
        name="categorize_emails",
        description="Group course emails into assignments, announcements, schedule_changes and general, newest first.",
        inputSchema={
            "type": "object",
            "properties": {
                "emails": {
                    "type": "array",
                    "description": "Emails with id, from, subject, snippet (or body) and date",
                    "items": {"type": "object"},
                },
                "assignments": {
                    "type": "array",
                    "description": "Assignment names from the syllabus",
                    "items": {"type": "string"},
                },
            },
            "required": ["emails"],
        },
    ),
    Tool(
        name="get_pending",
        description="List questions awaiting professor review",
        inputSchema={
            "type": "object",
            "properties": {"course_id": COURSE_ID},
            "required": ["course_id"],
        },
    ),
    Tool(
        name="approve_response",
        description="Approve a pending question's suggested (or edited) response; optionally add it to the FAQ.",
        inputSchema={
            "type": "object",
            "properties": {
                "course_id": COURSE_ID,
                "question_id": {"type": "string", "description": "Pending question id"},
                "response": {"type": "string", "description": "Edited response (defaults to the suggestion)"},
                "add_to_faq": {"type": "boolean", "default": False},
            },
            "required": ["course_id", "question_id"],
        },
    ),
    Tool(
        name="ignore_question",
        description="Remove a question from the review queue without answering",
        inputSchema={
            "type": "object",
            "properties": {
                "course_id": COURSE_ID,
                "question_id": {"type": "string", "description": "Pending question id"},
            },
            "required": ["course_id", "question_id"],
        },
    ),
    # ------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------
    Tool(
        name="get_stats",
        description="Question counts, auto-reply rate and questions answered this week",
        inputSchema={
            "type": "object",
            "properties": {"course_id": COURSE_ID},
            "required": ["course_id"],
        },
    ),
    Tool(
        name="estimate_cost",
        description="Estimated cost per question for one model tier, or all tiers",
        inputSchema={
            "type": "object",
            "properties": {
                "model": {"type": "string", "enum": ["haiku", "sonnet", "opus"]},
            },
            "required": [],
        },
    ),
]

TOOLS_BY_NAME = {tool.name: tool for tool in TOOLS}


def audit_log(tool_name: str, arguments: dict, user_info: str = "local"):
    """Log tool usage for audit trail."""
    # Sanitize arguments - don't log message or answer text, just its size
    safe_args = {
        k: v if k not in ('body', 'question', 'answer', 'response', 'syllabus_text', 'api_key', 'emails')
        else f"<{len(str(v))} chars>"
        for k, v in arguments.items()
    }
    logger.info(f"AUDIT: tool={tool_name} user={user_info} args={safe_args}")


def missing_arguments(tool_name: str, arguments: dict) -> Optional[Dict[str, Any]]:
    """Error result if a required argument is absent or empty."""
    required = TOOLS_BY_NAME[tool_name].inputSchema.get("required", [])
    missing = [name for name in required if arguments.get(name) in (None, "", [], {})]
    if not missing:
        return None
    return {"success": False, "error": f"{', '.join(missing)} required"}


async def handle_tool(client: CourseToolsClient, name: str, arguments: dict) -> Dict[str, Any]:
    """Validate arguments and route a tool call to the client."""
    if name not in TOOLS_BY_NAME:
        return {"success": False, "error": f"Unknown tool: {name}"}

    error = missing_arguments(name, arguments)
    if error:
        return error

    if name == "setup_course":
        return await client.setup_course(
            course_id=arguments["course_id"],
            course_name=arguments["course_name"],
            professor_email=arguments["professor_email"],
            professor_name=arguments.get("professor_name"),
            api_key=arguments.get("api_key"),
        )

    elif name == "list_courses":
        return await client.list_courses()

    elif name == "get_course_info":
        return await client.get_course_info(arguments["course_id"])

    elif name == "update_settings":
        return await client.update_settings(arguments["course_id"], arguments["settings"])

    elif name == "sync_syllabus":
        return await client.sync_syllabus(arguments["course_id"], arguments["syllabus_text"])

    elif name == "add_faq":
        return await client.add_faq(
            arguments["course_id"],
            arguments["question"],
            arguments["answer"],
            arguments.get("source", "manual"),
        )

    elif name == "list_faqs":
        return await client.list_faqs(arguments["course_id"])

    elif name == "update_faq":
        return await client.update_faq(
            arguments["course_id"],
            arguments["faq_id"],
            question=arguments.get("question"),
            answer=arguments.get("answer"),
        )

    elif name == "remove_faq":
        return await client.remove_faq(arguments["course_id"], arguments["faq_id"])

    elif name == "search_faqs":
        return await client.search_faqs(arguments["course_id"], arguments["query"])

    elif name == "add_key_date":
        return await client.add_key_date(arguments["course_id"], arguments["date"], arguments["description"])

    elif name == "add_policy":
        return await client.add_policy(arguments["course_id"], arguments["policy"])

    elif name == "analyze_question":
        return await client.analyze_question(
            course_id=arguments["course_id"],
            from_address=arguments["from"],
            subject=arguments.get("subject", ""),
            body=arguments["body"],
            email_id=arguments.get("email_id"),
            date=arguments.get("date"),
        )

    elif name == "categorize_emails":
        return await client.categorize_emails(arguments["emails"], arguments.get("assignments"))

    elif name == "get_pending":
        return await client.get_pending(arguments["course_id"])

    elif name == "approve_response":
        return await client.approve_response(
            arguments["course_id"],
            arguments["question_id"],
            response=arguments.get("response"),
            add_to_faq=bool(arguments.get("add_to_faq", False)),
        )

    elif name == "ignore_question":
        return await client.ignore_question(arguments["course_id"], arguments["question_id"])

    elif name == "get_stats":
        return await client.get_stats(arguments["course_id"])

    # estimate_cost
    return await client.estimate_cost(arguments.get("model"))


def create_server(client: Optional[CourseToolsClient] = None) -> Server:
    """Create and configure the MCP server."""
    server = Server("course-inbox")
    # One client per server: the in-memory store lives as long as the server
    tools_client = client or CourseToolsClient()

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """Return list of available tools."""
        return TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> list[TextContent]:
        """Execute a tool and return results."""
        arguments = arguments or {}
        try:
            audit_log(name, arguments)
            result = await handle_tool(tools_client, name, arguments)

            return [TextContent(
                type="text",
                text=json.dumps(result, indent=2, default=str)
            )]

        except Exception as e:
            logger.error(f"Tool execution error: {e}", exc_info=True)
            return [TextContent(
                type="text",
                text=json.dumps({"success": False, "error": str(e)})
            )]

    return server


def setup_logging():
    """Log to a daily file for the audit trail and to stderr (stdout carries the protocol)."""
    settings = get_settings()
    log_dir = os.path.expanduser("~/.course-inbox-mcp-logs")
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, f"mcp_server_{datetime.now().strftime('%Y%m%d')}.log")

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=settings.log_format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()  # stderr
        ]
    )


async def run_server():
    """Run the MCP server using stdio transport."""
    server = create_server()

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options()
        )


def main():
    """Entry point for the MCP server."""
    setup_logging()
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
