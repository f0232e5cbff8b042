# instructions/composer.py
"""Deterministic system-instruction synthesis from the knowledge store.

``compose`` is pure and total: identical inputs always produce the identical
prompt, and malformed stored payloads degrade to placeholder text instead of
raising.
"""
from __future__ import annotations
import base64
import binascii
import json
from typing import Optional, Sequence

from livecontext.core.constants import DEFAULT_RESPONSE_LANGUAGE
from livecontext.core.logging import get_logger
from livecontext.instructions import templates as T
from livecontext.schemas.analysis import Analysis, AnalysisPersona, AnalysisType

logger = get_logger("livecontext.instructions.composer")


def persona_title(persona: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in persona.split("-"))


def persona_prefix(persona: Optional[str]) -> str:
    body = T.PERSONA_INSTRUCTIONS.get(persona or "")
    if not body:
        return ""
    return T.PERSONA_PREFIX.format(title=persona_title(persona), body=body)


def decode_workflow_summary(raw: str) -> str:
    """Unwrap the ``{summary_base64 | summary, workflow_json}`` envelope."""
    try:
        parsed = json.loads(raw)
        if not isinstance(parsed, dict):
            raise ValueError("workflow envelope is not an object")
        if parsed.get("summary_base64"):
            return base64.b64decode(parsed["summary_base64"], validate=True).decode("utf-8")
        if parsed.get("summary"):
            # older envelopes stored plain text
            return str(parsed["summary"])
        return T.WORKFLOW_EMPTY
    except (ValueError, TypeError, binascii.Error) as e:
        logger.warning("WORKFLOW_SUMMARY_DECODE_FAILED error=%s", e)
        return T.WORKFLOW_DECODE_ERROR


def _summary_text(a: Analysis) -> str:
    if a.type == AnalysisType.workflow:
        return decode_workflow_summary(a.summary)
    return a.summary


def single_instruction(a: Analysis, language: str = DEFAULT_RESPONSE_LANGUAGE) -> str:
    fields = {
        "title": a.title,
        "knowledge": T.KNOWLEDGE_BLOCK.format(summary=_summary_text(a)),
        "language": language,
        "enrichment": T.ENRICHMENT_INSTRUCTION,
        "detail": T.DETAIL_INSTRUCTION,
    }
    if a.persona == AnalysisPersona.data_analyst:
        return T.ANALYST_TEMPLATE.format(**fields)
    if a.type == AnalysisType.repository:
        return T.REPOSITORY_TEMPLATE.format(**fields)
    if a.type in (AnalysisType.video, AnalysisType.clip):
        return T.VIDEO_TEMPLATE.format(**fields)
    if a.type == AnalysisType.workflow:
        return T.WORKFLOW_TEMPLATE.format(**fields)
    return T.GENERIC_TEMPLATE.format(**fields)


def multi_instruction(analyses: Sequence[Analysis], language: str = DEFAULT_RESPONSE_LANGUAGE) -> str:
    out = T.MULTI_HEADER
    for i, a in enumerate(analyses, start=1):
        out += T.MULTI_SOURCE_BLOCK.format(index=i, title=a.title, type=a.type.value, summary=_summary_text(a))
    return out + T.MULTI_FOOTER.format(language=language)


def compose(
    analyses: Sequence[Analysis],
    persona: Optional[str] = None,
    language: str = DEFAULT_RESPONSE_LANGUAGE,
) -> str:
    prefix = persona_prefix(persona)
    if not analyses:
        general = T.GENERAL_INSTRUCTION.format(language=language)
        if prefix:
            return prefix + T.PERSONA_GENERAL_LEAD + general + T.TOOL_INSTRUCTIONS
        return general + T.TOOL_INSTRUCTIONS
    if len(analyses) == 1:
        return prefix + single_instruction(analyses[0], language) + T.TOOL_INSTRUCTIONS
    return prefix + multi_instruction(analyses, language) + T.TOOL_INSTRUCTIONS
