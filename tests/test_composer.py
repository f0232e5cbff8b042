from __future__ import annotations
import base64
import json

from livecontext.instructions import templates as T
from livecontext.instructions.composer import compose, decode_workflow_summary, persona_prefix, single_instruction
from livecontext.schemas.analysis import AnalysisPersona, AnalysisType

from fakes import make_analysis


def test_no_analyses_gives_general_instruction_with_tools():
    out = compose([], None, "English")
    assert out == T.GENERAL_INSTRUCTION.format(language="English") + T.TOOL_INSTRUCTIONS
    assert "[generate_images(N):" in out
    assert "[edit_image:" in out


def test_no_analyses_never_leaks_titles_or_summaries():
    a = make_analysis("Quarterly Report", "Revenue grew 12 percent")
    out = compose([], None)
    assert a.title not in out
    assert a.summary not in out


def test_single_analysis_contains_title_and_summary_verbatim():
    a = make_analysis("Quarterly Report", "Revenue grew 12 percent\nCosts were flat")
    out = compose([a], None, "English")
    assert a.title in out
    assert a.summary in out
    assert out.endswith(T.TOOL_INSTRUCTIONS)


def test_multiple_analyses_contain_every_title_and_summary_in_order():
    items = [
        make_analysis("Alpha", "first summary"),
        make_analysis("Beta", "second summary", AnalysisType.video),
        make_analysis("Gamma", "third summary", AnalysisType.repository),
    ]
    out = compose(items, None)
    for a in items:
        assert a.title in out
        assert a.summary in out
    assert out.index("SOURCE 1 START") < out.index("SOURCE 2 START") < out.index("SOURCE 3 START")
    assert '"Beta" (video)' in out


def test_compose_is_deterministic():
    items = [make_analysis("Alpha", "first"), make_analysis("Beta", "second")]
    assert compose(items, "tutor") == compose(items, "tutor")


def test_template_selection_by_type_and_persona():
    analyst = make_analysis("Sales", "s", AnalysisType.spreadsheet, persona=AnalysisPersona.data_analyst)
    repo = make_analysis("repo", "r", AnalysisType.repository)
    clip = make_analysis("clip", "c", AnalysisType.clip)
    page = make_analysis("page", "p", AnalysisType.webpage)
    assert "expert data analyst" in single_instruction(analyst)
    assert "code repository" in single_instruction(repo)
    assert "specialized in the video" in single_instruction(clip)
    assert "specialized in the following content" in single_instruction(page)


def test_persona_prefix_is_prepended():
    a = make_analysis("Alpha", "first")
    out = compose([a], "coding-engineer")
    assert out.startswith("**ACTIVE PERSONA: Coding Engineer**\n")
    assert a.summary in out


def test_persona_without_analyses_uses_general_lead():
    out = compose([], "direct")
    assert out.startswith(persona_prefix("direct") + T.PERSONA_GENERAL_LEAD)


def test_unknown_persona_adds_nothing():
    assert persona_prefix("pirate") == ""
    assert compose([], "pirate") == compose([], None)


def test_workflow_base64_summary_is_decoded():
    text = "Triggers on webhook, posts to Slack. Ação concluída."
    raw = json.dumps({"summary_base64": base64.b64encode(text.encode("utf-8")).decode(), "workflow_json": "{}"})
    a = make_analysis("Flow", raw, AnalysisType.workflow)
    out = compose([a])
    assert text in out
    assert "n8n workflow" in out


def test_workflow_plain_summary_is_used():
    assert decode_workflow_summary(json.dumps({"summary": "plain"})) == "plain"


def test_workflow_empty_and_malformed_payloads_degrade():
    assert decode_workflow_summary(json.dumps({"workflow_json": "{}"})) == T.WORKFLOW_EMPTY
    assert decode_workflow_summary("not json") == T.WORKFLOW_DECODE_ERROR
    assert decode_workflow_summary(json.dumps({"summary_base64": "%%%"})) == T.WORKFLOW_DECODE_ERROR
    bad_utf8 = base64.b64encode(b"\xff\xfe").decode()
    assert decode_workflow_summary(json.dumps({"summary_base64": bad_utf8})) == T.WORKFLOW_DECODE_ERROR
    assert decode_workflow_summary(json.dumps(["list"])) == T.WORKFLOW_DECODE_ERROR
