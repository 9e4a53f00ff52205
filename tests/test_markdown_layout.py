"""Tests for tools/markdown_layout.py: constrained markdown to layout nodes."""

from __future__ import annotations

from proposal_builder.tools.markdown_layout import (
    BannerNode,
    BulletNode,
    HeadingNode,
    NumberedNode,
    ParagraphNode,
    RuleNode,
    SpacerNode,
    SubheadingNode,
    TableNode,
    TextRun,
    parse_inline,
    render_markdown,
    strip_markers,
    to_plain_text,
)


class TestBlocks:
    def test_banner_and_bullets(self):
        nodes = render_markdown("## TEAM\n- Alice\n- Bob")
        assert len(nodes) == 3
        assert isinstance(nodes[0], BannerNode)
        assert nodes[0].text == "TEAM"
        assert [type(n) for n in nodes[1:]] == [BulletNode, BulletNode]
        assert [n.text for n in nodes[1:]] == ["Alice", "Bob"]

    def test_level_two_heading_is_uppercased_banner(self):
        (node,) = render_markdown("## User App")
        assert isinstance(node, BannerNode)
        assert node.text == "USER APP"

    def test_other_heading_levels(self):
        nodes = render_markdown("# Title\n### Sub\n#### Minor")
        assert [(n.level, n.text) for n in nodes] == [(1, "Title"), (3, "Sub"), (4, "Minor")]
        assert all(isinstance(n, HeadingNode) for n in nodes)

    def test_legacy_colon_line_is_banner(self):
        (node,) = render_markdown("Driver App:")
        assert isinstance(node, BannerNode)
        assert node.text == "DRIVER APP"

    def test_long_colon_line_stays_paragraph(self):
        line = "This sentence is deliberately long enough to pass the legacy banner limit, so it ends:"
        assert len(line) >= 80
        (node,) = render_markdown(line)
        assert isinstance(node, ParagraphNode)

    def test_bold_label_colon_line_is_banner(self):
        (node,) = render_markdown("**Timeline**:")
        assert isinstance(node, BannerNode)
        assert node.text == "TIMELINE"

    def test_bullet_marker_colon_line_is_bullet(self):
        (node,) = render_markdown("- Payments:")
        assert isinstance(node, BulletNode)

    def test_bold_only_line_is_subheading(self):
        (node,) = render_markdown("**Core Flows**")
        assert isinstance(node, SubheadingNode)
        assert node.text == "Core Flows"

    def test_rules(self):
        nodes = render_markdown("---\n***\n-----")
        assert all(isinstance(n, RuleNode) for n in nodes)
        assert len(nodes) == 3

    def test_blank_line_is_spacer(self):
        nodes = render_markdown("one\n\ntwo")
        assert isinstance(nodes[1], SpacerNode)

    def test_all_bullet_markers(self):
        nodes = render_markdown("- dash\n* star\n• dot")
        assert [n.text for n in nodes] == ["dash", "star", "dot"]
        assert all(isinstance(n, BulletNode) for n in nodes)

    def test_numbered_keeps_literal_number(self):
        nodes = render_markdown("3. Third\n7. Seventh")
        assert all(isinstance(n, NumberedNode) for n in nodes)
        assert [n.number for n in nodes] == ["3", "7"]
        assert nodes[1].text == "Seventh"

    def test_accent_color_passed_to_list_items(self):
        nodes = render_markdown("- a\n1. b", accent_color="#123456")
        assert {n.accent_color for n in nodes} == {"#123456"}

    def test_body_font_size_on_paragraphs(self):
        (node,) = render_markdown("Plain text", body_font_size=12)
        assert node.font_size == 12


class TestTables:
    def test_table_block(self):
        content = "| Role | Count |\n|---|:---:|\n| PM | 1 |\n| **Dev** | 2 |\nAfter"
        nodes = render_markdown(content)
        table = nodes[0]
        assert isinstance(table, TableNode)
        assert table.headers == ["Role", "Count"]
        assert table.rows == [["PM", "1"], ["Dev", "2"]]
        assert isinstance(nodes[1], ParagraphNode)
        assert len(nodes) == 2

    def test_pipe_line_without_separator_is_paragraph(self):
        nodes = render_markdown("| not | a table |\nplain")
        assert not any(isinstance(n, TableNode) for n in nodes)


class TestInline:
    def test_bold_runs(self):
        runs = parse_inline("Pay **40%** upfront")
        assert runs == [
            TextRun(text="Pay "),
            TextRun(text="40%", bold=True),
            TextRun(text=" upfront"),
        ]

    def test_italic_and_code_flattened(self):
        runs = parse_inline("use *fast* `cache` now")
        assert runs == [TextRun(text="use fast cache now")]

    def test_bold_italic_collapses_to_bold(self):
        runs = parse_inline("***Key*** point")
        assert runs[0] == TextRun(text="Key", bold=True)

    def test_strip_markers(self):
        assert strip_markers(" **Bold** and *it* ") == "Bold and it"


class TestDeterminismAndPlainText:
    def test_plain_lines_become_paragraphs(self):
        nodes = render_markdown("alpha line\nbeta line\ngamma line")
        assert len(nodes) == 3
        assert all(isinstance(n, ParagraphNode) for n in nodes)
        assert [n.text for n in nodes] == ["alpha line", "beta line", "gamma line"]

    def test_same_input_same_output(self):
        content = "## A\n- **b** c\n| x | y |\n|---|---|\n| 1 | 2 |"
        assert render_markdown(content) == render_markdown(content)

    def test_plain_text_round_trip_modulo_emphasis(self):
        content = "Hello **world**\n- item *one*\n1. step"
        assert to_plain_text(render_markdown(content)) == "Hello world\n- item one\n1. step"

    def test_plain_text_is_stable_on_plain_input(self):
        content = "first\nsecond\n\nthird"
        assert to_plain_text(render_markdown(content)) == content
