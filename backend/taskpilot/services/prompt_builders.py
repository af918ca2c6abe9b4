"""Prompt construction for the assistant's generation use cases."""
from __future__ import annotations

import re
from typing import List, Sequence

from taskpilot.services.generation_types import ClarifyQA, GenerationRequest, Message, MOOD_LABELS

DEFAULT_USER_PROFILE = "Jr Full Stack Developer"
RAW_CLARIFY_PROFILE = "Software Developer"

DATABASE_PATTERN = re.compile(
    r"\bdb\b|database|postgres|mysql|sqlite|mongo|mongodb|prisma|typeorm|sequelize|"
    r"mongoose|knex|sql|schema|migrations?",
    re.IGNORECASE,
)
PRIOR_EXPERIENCE_PATTERN = re.compile(
    r"\b(?:tried|attempted|worked on|done|built)\b.*\b(?:before|previously)\b"
    r"|\bprior (?:attempts?|experience)\b|\bprevious attempts?\b|\bexperience with\b",
    re.IGNORECASE,
)
TECHNICAL_TERMS = re.compile(
    r"framework|library|api|database|file|component|function|class|method|test|deploy|build|"
    r"config|architecture|infrastructure",
    re.IGNORECASE,
)
TIMELINE_TERMS = re.compile(r"deadline|urgent|asap|quick|fast|time|schedule|due date|priority", re.IGNORECASE)
RESOURCE_TERMS = re.compile(
    r"budget|limited|constraint|resource|team|skill|experience|tool|software|hardware", re.IGNORECASE
)

MOOD_SYSTEM_PROMPT = (
    "You are a concise wellbeing coach for everyday users. Output JSON with keys "
    f"mood (one of: {', '.join(MOOD_LABELS)}), motivation (0-10), suggestion (single sentence). "
    "No extra text."
)

DEV_BREAKDOWN_PROMPT = "\n".join(
    [
        "You are a senior tech lead. Produce 3-7 highly actionable, stack-specific development tasks.",
        "- Strictly tailor tasks to the provided stack and context (frameworks, language, build tool, folder names, file paths, APIs).",
        "- Use concrete identifiers: exact file paths, components, functions, env vars, CLI commands.",
        "- Prefer tasks that modify a specific artifact or run a specific command.",
        '- Avoid generic phrasing like "implement feature" or "write tests" without scope/file/module.',
        "- Scope each task to ~30-90 minutes. Keep under 12 words.",
        "- Infer stack hints from goal/context when possible (e.g., pyproject.toml, src/app.py, package.json scripts).",
        "Output JSON ONLY: an array of strings (no markdown, no prose).",
        "",
        "Examples (format/style only):",
        "- Add /ai/breakdown route in taskpilot/api/routes/ai.py",
        "- Read OPENAI_MODEL from settings in core/config.py",
        "- Write pytest for parse_task_list in tests/test_response_parser.py",
        "- Run alembic upgrade head against the staging database",
    ]
)

CUSTOM_BREAKDOWN_PROMPT = "\n".join(
    [
        "You are a helpful personal assistant. Break the provided goal into 3-7 highly actionable, concrete steps.",
        "- Each step should be specific, clear, and doable in ~30-90 minutes.",
        "- Prefer imperative phrasing and include practical specifics when helpful.",
        "- Keep each item under 12 words.",
        "Output JSON ONLY: an array of strings (no markdown, no prose).",
    ]
)

CLARIFY_JSON_CONTRACT = (
    'Return JSON ONLY as an object with key "questions": {"questions":["..."]}. '
    "No prose, no numbering, no markdown."
)


def mentions_persistence(*texts: str | None) -> bool:
    """True when goal/context/note talk about data storage or databases."""
    haystack = " ".join(text or "" for text in texts)
    return bool(DATABASE_PATTERN.search(haystack))


def prior_experience_covered(previous_qa: Sequence[ClarifyQA]) -> bool:
    return any(PRIOR_EXPERIENCE_PATTERN.search(pair.q) for pair in previous_qa)


def build_chat_messages(messages: Sequence[Message]) -> List[Message]:
    return list(messages)


def build_mood_messages(note: str) -> List[Message]:
    return [
        Message(role="system", content=MOOD_SYSTEM_PROMPT),
        Message(role="user", content=f"Note: {note}"),
    ]


def build_breakdown_messages(request: GenerationRequest) -> List[Message]:
    system = DEV_BREAKDOWN_PROMPT if request.task_type == "dev" else CUSTOM_BREAKDOWN_PROMPT
    lines = [f"Goal: {request.goal.strip()}"]
    if (request.context or "").strip():
        lines.append(f"Context: {request.context.strip()}")
    if (request.note or "").strip():
        lines.append(f"Notes: {request.note.strip()}")

    answered = request.answered_qa
    if answered:
        lines.append("")
        lines.append(summarize_answers(answered))
        lines.append("")
        lines.append("Use the answers above to make every task specific to the user's situation.")
    return [Message(role="system", content=system), Message(role="user", content="\n".join(lines))]


def build_clarify_messages(request: GenerationRequest) -> List[Message]:
    persistence = mentions_persistence(request.goal, request.context, request.note)
    ask_prior_experience = not prior_experience_covered(request.previous_qa)
    if request.task_type == "dev":
        rules = [
            "You are a senior tech lead. Ask 2-4 concise, non-redundant clarifying questions BEFORE planning.",
            "- Tailor to the user level. Use approachable language.",
            "- Focus on stack, files/modules, acceptance criteria, dependencies, env vars, blockers, scope.",
            (
                "- The goal mentions data or a database. Include at least one question about database "
                "engine/version, ORM/driver, schema/migrations, and connection env vars."
                if persistence
                else "- If data persistence might be involved, consider asking about database engine/version, "
                "ORM/driver, schema/migrations, and connection env vars."
            ),
            (
                f"- The user profile is: {request.user_profile}. Tailor questions to their level."
                if request.user_profile
                else f"- If no user profile is given, assume a {DEFAULT_USER_PROFILE}. Tailor questions accordingly."
            ),
            (
                "- Do not repeat anything already covered in previous Q/A below."
                if request.previous_qa
                else "- Avoid generic or repetitive questions."
            ),
            "- Each question must progress toward concrete implementation details.",
        ]
    else:
        rules = [
            "You are a helpful assistant. Ask 2-4 concise clarifying questions BEFORE planning.",
            "- Clarify objectives, constraints, resources. Avoid repeats.",
            (
                f"- The user profile is: {request.user_profile}. Keep language approachable."
                if request.user_profile
                else f"- If no user profile is given, assume a {DEFAULT_USER_PROFILE} and keep language approachable."
            ),
        ]
        if persistence:
            rules.append("- The goal mentions stored data. Include one question about where and how that data is kept.")
        if request.previous_qa:
            rules.append("- Do not repeat anything already covered in previous Q/A below.")
    if ask_prior_experience:
        rules.append(
            "- If prior experience with similar goals is unclear, include a question asking whether they "
            "worked on a similar goal before and what they tried."
        )
    rules.append(CLARIFY_JSON_CONTRACT)

    user_profile = request.user_profile or f"{DEFAULT_USER_PROFILE} (assumed)"
    return [
        Message(role="system", content="\n".join(rules)),
        Message(role="user", content=_clarify_user_content(request, user_profile)),
    ]


def build_clarify_raw_messages(request: GenerationRequest) -> List[Message]:
    if request.task_type == "dev":
        rules = [
            "You are a senior tech lead. Ask concise clarifying questions BEFORE planning.",
            "- Tailor to the user level and be specific to the stack.",
            "- Focus on files/modules, acceptance criteria, dependencies, env vars, blockers, scope.",
            "- If DB may be involved, ask about engine/version, ORM/driver, schema/migrations, connection env vars.",
        ]
    else:
        rules = [
            "You are a helpful assistant. Ask concise clarifying questions BEFORE planning.",
            "- Clarify concrete outcomes, constraints, resources; avoid repetition.",
        ]
    rules.append("- If prior experience is unclear, include a question about previous attempts and outcomes.")
    content = _clarify_user_content(request, request.user_profile or RAW_CLARIFY_PROFILE)
    return [
        Message(role="system", content="\n".join(rules)),
        Message(role="user", content=f"{content}\n\nPlease ask your clarifying questions now."),
    ]


def format_previous_qa(previous_qa: Sequence[ClarifyQA]) -> str:
    return "\n".join(
        f"Q{index}: {pair.q}\nA{index}: {pair.a or ''}" for index, pair in enumerate(previous_qa, start=1)
    )


def summarize_answers(answered: Sequence[ClarifyQA]) -> str:
    """Describe the user's clarification answers for the breakdown prompt."""
    questions = " ".join(pair.q for pair in answered)
    answers = [(pair.a or "").strip() for pair in answered]
    all_text = f"{questions} {' '.join(answers)}"

    technical_hits = len(TECHNICAL_TERMS.findall(all_text))
    if technical_hits > 5:
        complexity = "high"
    elif technical_hits > 2:
        complexity = "medium"
    else:
        complexity = "low"
    timeline = bool(TIMELINE_TERMS.search(all_text))
    resources = bool(RESOURCE_TERMS.search(all_text))
    key_requirements = [answer for answer in answers if len(answer) > 10][:3]

    lines = [
        "User Input Analysis:",
        f"- Technical Complexity: {complexity}",
        f"- Timeline Sensitivity: {'Yes' if timeline else 'No'}",
        f"- Resource Constraints: {'Yes' if resources else 'No'}",
    ]
    if key_requirements:
        lines.append(f"- Key Requirements: {', '.join(key_requirements)}")
    lines.append("")
    lines.append("Clarifications:")
    lines.append(format_previous_qa(answered))
    return "\n".join(lines)


def _clarify_user_content(request: GenerationRequest, user_profile: str) -> str:
    summary_parts = [
        f"The user wants to: {request.goal.strip()}" if request.goal.strip() else "",
        f"They have this context: {request.context.strip()}" if (request.context or "").strip() else "",
        f"Additional notes: {request.note.strip()}" if (request.note or "").strip() else "",
        f"Task type: {request.task_type}",
        f"User profile: {user_profile}",
    ]
    sections = [". ".join(part for part in summary_parts if part)]
    if request.previous_qa:
        sections.append(f"Previous Q/A:\n{format_previous_qa(request.previous_qa)}")
    return "\n\n".join(sections)
