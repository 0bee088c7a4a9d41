"""Tests for export, diagram rendering and the thought console."""

import json
from io import StringIO

import pytest
from rich.console import Console

from thoughtchain.models import Branch, BranchStatus, MergeStrategy, Thought, ThoughtKind
from thoughtchain.tools.rendering import (
    ThoughtConsole,
    export_json,
    export_markdown,
    render_ascii,
    render_mermaid,
    thought_title,
)


@pytest.fixture
def chain():
    """Thought 1 on main, branch 'alt' from 1 holding thought 2, thought 3 on main."""
    t1 = Thought(thought_number=1, thought="Start", tags=["root"])
    t2 = Thought(
        thought_number=2, thought="BRANCH START: try it", kind=ThoughtKind.BRANCH_START,
        branch_id="alt", branch_from_thought=1,
    )
    t3 = Thought(thought_number=3, thought='Say "hi"', is_revision=True,
                 revises_thought=1, kind=ThoughtKind.REVISION)
    alt = Branch(branch_id="alt", origin_thought=1, thoughts=[t2])
    return [t1, t2, t3], {"alt": alt}


class TestExportMarkdown:

    def test_document_layout(self, chain):
        thoughts, branches = chain
        doc = export_markdown(thoughts, branches, None, False)

        assert doc.startswith("# Thinking Export\n")
        assert "- Thoughts: 3" in doc
        assert "- Active branch: main" in doc
        assert "- Status: in progress" in doc
        assert "### Thought 1 (thought)" in doc
        assert "Tags: `root`" in doc
        assert "_branch alt, from thought 1_" in doc
        assert "_revises thought 1_" in doc
        assert "### alt (active)" in doc
        assert "- Origin: thought 1" in doc
        assert doc.endswith("\n")

    def test_branch_title(self, chain):
        thoughts, branches = chain
        doc = export_markdown(thoughts[1:2], branches, "alt", False, branch_id="alt")
        assert doc.startswith("# Thinking Export: branch alt\n")
        assert "- Active branch: alt" in doc

    def test_empty_chain(self):
        doc = export_markdown([], {}, None, False)
        assert "_No thoughts recorded._" in doc
        assert "## Branches" not in doc

    def test_merged_branch_details(self, chain):
        thoughts, branches = chain
        branches["alt"].status = BranchStatus.MERGED
        branches["alt"].merge_strategy = MergeStrategy.SUMMARY
        branches["alt"].conclusion = "fine"

        doc = export_markdown(thoughts, branches, None, True)
        assert "- Status: complete" in doc
        assert "### alt (merged)" in doc
        assert "- Conclusion: fine" in doc
        assert "- Merge strategy: summary" in doc


class TestExportJson:

    def test_structure(self, chain):
        thoughts, branches = chain
        data = json.loads(export_json(thoughts, branches, "alt", False))

        assert [t["thought_number"] for t in data["thoughts"]] == [1, 2, 3]
        assert data["thoughts"][0]["tags"] == ["root"]
        assert data["active_branch_id"] == "alt"
        assert data["complete"] is False
        alt = data["branches"]["alt"]
        assert alt["thought_numbers"] == [2]
        assert "thoughts" not in alt
        assert alt["status"] == "active"


class TestExportVerb:

    def test_export_via_handler(self, call):
        call("think", thought="a")
        call("branch", branch_id="alt", reason="x")
        result = call("export", format="json", branch_id="alt")

        assert result["format"] == "json"
        assert result["thought_count"] == 1
        assert list(json.loads(result["content"])["branches"]) == ["alt"]

    def test_export_unknown_branch(self, call):
        assert call("export", branch_id="ghost")["error_type"] == "NotFoundError"

    def test_invalid_format(self, call):
        assert call("export", format="pdf")["error_type"] == "ValidationError"


class TestAscii:

    def test_tree(self, chain):
        thoughts, branches = chain
        assert render_ascii(thoughts, branches) == "\n".join([
            "main",
            "├── 1 [thought]",
            "│   └── branch alt (active)",
            "│       └── 2 [branch_start]",
            "└── 3 [revision] revises 1",
        ])

    def test_show_content(self, chain):
        thoughts, branches = chain
        assert "├── 1 [thought]: Start" in render_ascii(thoughts, branches, show_content=True)

    def test_branch_from_origin_zero_hangs_off_root(self):
        start = Thought(
            thought_number=1, thought="BRANCH START: early", kind=ThoughtKind.BRANCH_START,
            branch_id="early", branch_from_thought=0,
        )
        branches = {"early": Branch(branch_id="early", origin_thought=0, thoughts=[start])}

        assert render_ascii([start], branches) == "\n".join([
            "main",
            "└── branch early (active)",
            "    └── 1 [branch_start]",
        ])

    def test_empty(self):
        assert render_ascii([], {}) == "main"


class TestMermaid:

    def test_flowchart(self, chain):
        thoughts, branches = chain
        assert render_mermaid(thoughts, branches) == "\n".join([
            "graph TD",
            '    T1["1: thought"]',
            '    T3["3: revision"]',
            '    subgraph B1_alt["alt (active)"]',
            '        T2{{"2: branch_start"}}',
            "    end",
            "    T1 --> T3",
            "    T1 --> T2",
            "    T3 -.->|revises| T1",
        ]) + "\n"

    def test_content_labels_are_escaped(self, chain):
        thoughts, branches = chain
        diagram = render_mermaid(thoughts, branches, show_content=True)
        assert 'T3["3: Say #quot;hi#quot;"]' in diagram

    def test_conclusion_is_stadium(self):
        end = Thought(thought_number=1, thought="CONCLUSION: ok", kind=ThoughtKind.CONCLUSION)
        assert 'T1(["1: conclusion"])' in render_mermaid([end], {})

    def test_branch_ids_sanitized(self):
        branches = {"my-idea.v2": Branch(branch_id="my-idea.v2")}
        assert 'subgraph B1_my_idea_v2["my-idea.v2 (active)"]' in render_mermaid([], branches)


class TestVisualizeVerb:

    def test_mermaid_is_valid(self, call):
        call("think", thought='Quote "this"')
        call("branch", branch_id="alt-1", reason="x")
        call("think", thought="deeper")
        call("switch_branch")
        call("revise", thought="fix", revises_thought=1)
        call("complete", conclusion="done")

        result = call("visualize", show_content=True)

        assert result["format"] == "mermaid"
        assert result["node_count"] == 5
        assert result["valid"] is True
        assert result["diagram"].startswith("graph TD\n")

    def test_ascii(self, call):
        call("think", thought="a")
        result = call("visualize", format="ascii")
        assert result["diagram"] == "main\n└── 1 [thought]"
        assert "valid" not in result

    def test_empty_chain_is_valid(self, call):
        result = call("visualize")
        assert result["diagram"] == "graph TD\n"
        assert result["valid"] is True


class TestThoughtConsole:

    def test_titles(self, chain):
        thoughts, _ = chain
        assert thought_title(thoughts[0]) == "Thought 1"
        assert thought_title(thoughts[1]) == "Branch 2 (from thought 1, ID: alt)"
        assert thought_title(thoughts[2]) == "Revision 3 (revising thought 1)"

    def test_thought_on_branch(self):
        thought = Thought(thought_number=4, thought="x", branch_id="alt")
        assert thought_title(thought) == "Thought 4 [alt]"

    def test_render_includes_tags(self, chain):
        buffer = StringIO()
        console = ThoughtConsole(Console(file=buffer, width=80, color_system=None))
        console.show(chain[0][0])

        output = buffer.getvalue()
        assert "Thought 1" in output
        assert "Start" in output
        assert "#root" in output
