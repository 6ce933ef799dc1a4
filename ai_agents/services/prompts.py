"""
Prompt templates for each generation role.

Product-specific constraints (voice, length ceilings, banned phrases) are
passed in by the caller so the templates stay free of policy.
"""
from __future__ import annotations

from typing import Mapping, Sequence

from .models import Entry, QUESTION_CATEGORIES

DRAFT_SYSTEM_PROMPT = (
    "You are an expert writer of {voice}s. You turn raw achievement notes into professional "
    "narrative statements that follow the ACTION--IMPACT--RESULT structure."
)

QUESTION_SYSTEM_PROMPT = (
    "You are a senior reviewer who has read thousands of {voice}s. You know which quantitative "
    "details, leadership scope, and strategic impacts make a statement stand out."
)

CRITIQUE_SYSTEM_PROMPT = (
    "You are an editor reviewing {voice}s for phrasing, clarity, and structure only. "
    "You never question or change the facts a writer supplied."
)


def _banned_clause(banned_phrases: Sequence[str]) -> str:
    if not banned_phrases:
        return ""
    joined = ", ".join(f'"{p}"' for p in banned_phrases)
    return f"\n- Never use these words or phrases: {joined}."


def _format_entry(entry: Entry) -> str:
    return (
        f"Category: {entry.category}\n"
        f"Action: {entry.action}\n"
        f"Impact: {entry.impact}\n"
        f"Result: {entry.result}"
    )


def build_first_draft_prompt(entries: Sequence[Entry], *, max_length: int, banned_phrases: Sequence[str]) -> str:
    entries_text = "\n\n".join(_format_entry(e) for e in entries)
    scope = "ONE comprehensive statement" if len(entries) > 1 else "one statement"
    return f"""
Transform the following achievement entries into {scope} following the ACTION--IMPACT--RESULT format.

Rules:
- Stay under {max_length} characters.
- Keep every specific number, dollar amount, percentage, and operation name exactly as written.
- Combine related achievements intelligently; do not invent details.{_banned_clause(banned_phrases)}
- Return only the statement text, with no preamble or quotes.

Entries:
{entries_text}
    """.strip()


def build_questions_prompt(content: str) -> str:
    categories = ", ".join(QUESTION_CATEGORIES)
    return f"""
Generate exactly 3 specific follow-up questions that would uncover missing details in this statement.
Use each of these categories exactly once: {categories}.

- quantitative: numbers, percentages, dollar amounts, timeframes
- leadership: how many people were led, supervised, or trained
- strategic: mission-level or organisation-wide outcomes

Each question should invite answers like "saved $2.3M annually" or "led a team of 45 personnel".

Return only valid JSON:
{{
  "questions": [
    {{"question": "...", "example": "...", "category": "quantitative"}}
  ]
}}

Statement: "{content}"
    """.strip()


def build_merge_prompt(content: str, answers: Mapping[str, str], *, soft_max_length: int, banned_phrases: Sequence[str]) -> str:
    details = "\n\n".join(f"Q: {question}\nA: {answer}" for question, answer in answers.items())
    return f"""
Rewrite the statement so it includes every fact from the original AND every fact from the answers below.

Rules:
- Keep every number, name, and scope term from the original and the answers exactly as written.
- Do not add any fact that is not in the original or the answers.
- Keep the same voice and the ACTION--IMPACT--RESULT structure.
- Aim for about {soft_max_length} characters, but never drop a fact to save space.{_banned_clause(banned_phrases)}
- Return only the statement text.

Original statement: "{content}"

Additional details:
{details}
    """.strip()


def build_critique_prompt(content: str, *, max_length: int) -> str:
    return f"""
Review this statement and score it from 0 to 10.

List its strengths, then suggest improvements limited to phrasing, clarity, word choice, and structure.
Never suggest changing, removing, or rounding any number, name, unit, or scope term.
The final statement must fit in {max_length} characters; you may suggest tighter phrasing for that.

Return only valid JSON:
{{
  "score": 0,
  "strengths": ["..."],
  "improvements": ["..."],
  "characterCount": 0,
  "hasQuantitativeData": true,
  "followsAirStructure": true
}}

Statement: "{content}"
    """.strip()


def build_polish_prompt(
    content: str,
    improvements: Sequence[str],
    facts: Sequence[str],
    *,
    max_length: int,
    banned_phrases: Sequence[str],
) -> str:
    notes = "\n".join(f"- {item}" for item in improvements) or "- Tighten phrasing where possible."
    fact_list = ", ".join(facts) if facts else "(none detected)"
    return f"""
Polish this statement to {max_length} characters or fewer.

Apply only these phrasing suggestions:
{notes}

Hard rules:
- Copy each of these facts verbatim: {fact_list}
- Do not add, remove, or round any fact.
- If the facts cannot fit in {max_length} characters, keep the facts and run slightly long.{_banned_clause(banned_phrases)}
- Return only the statement text.

Statement: "{content}"
    """.strip()


def build_synonyms_prompt(content: str) -> str:
    return f"""
Suggest professional synonyms for the key action words and impact terms in this statement.

Return only valid JSON:
{{
  "suggestions": [
    {{"original": "word", "synonyms": ["synonym1", "synonym2", "synonym3"], "position": 0}}
  ]
}}

Statement: "{content}"
    """.strip()
