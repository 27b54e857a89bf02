"""Tests for ReaperNode construction, queries and navigation."""

import gc
from pathlib import Path

import pytest

from reaper_project_parser.api import parse_string
from reaper_project_parser.tree import ReaperNode

KICK_PROJECT = """<REAPER_PROJECT
  <TRACK
    NAME "Drums"
    <ITEM
      NAME "Kick"
      <SOURCE WAVE
        FILE "Audio/kick.wav"
      >
    >
  >
>
"""


def make_track(parent, name=None, node_type="TRACK"):
    """Create a block child of ``parent`` with an optional NAME child."""
    node = ReaperNode(node_type, parent=parent, is_block=True)
    parent.add_child(node)
    if name is not None:
        node.add_child(ReaperNode("NAME", [name], parent=node))
    return node


class TestNodeConstruction:
    """Test the self-typing rule applied to document lines."""

    def test_typed_line(self):
        node = ReaperNode.from_line("TEMPO 120 4 4")

        assert node.type == "TEMPO"
        assert node.values == ["120", "4", "4"]
        assert node.value == "120"
        assert node.is_typed

    def test_numeric_first_token_is_untyped(self):
        node = ReaperNode.from_line("  -1.5 0 1")

        assert node.type == ""
        assert node.values == ["-1.5", "0", "1"]
        assert not node.is_typed

    def test_quoted_name(self):
        node = ReaperNode.from_line('NAME "My Track One"')

        assert node.type == "NAME"
        assert node.values == ["My Track One"]

    def test_opening_line(self):
        node = ReaperNode.from_line("<REAPER_PROJECT 0.1 \"6.80/linux64\" 1700000000")

        assert node.type == "REAPER_PROJECT"
        assert node.values == ["0.1", "6.80/linux64", "1700000000"]

    def test_tag_without_values(self):
        node = ReaperNode.from_line("<TRACK")

        assert node.type == "TRACK"
        assert node.values == []
        assert node.value == ""

    def test_empty_line(self):
        node = ReaperNode.from_line("   ")

        assert node.type == ""
        assert node.values == []

    @pytest.mark.parametrize("tag", ["1E5", "inf", "nan"])
    def test_numeric_looking_tag_is_read_as_value(self, tag):
        """Test that tags which parse as numbers produce untyped nodes."""
        node = ReaperNode.from_line(f"{tag} 1 2")

        assert node.type == ""
        assert node.values == [tag, "1", "2"]

    def test_from_tokens(self):
        node = ReaperNode.from_tokens(["ITEM", "x"], is_block=True, line_number=7)

        assert node.type == "ITEM"
        assert node.values == ["x"]
        assert node.is_block
        assert node.line_number == 7

    def test_values_is_a_copy(self):
        node = ReaperNode("TEMPO", ["120"])

        node.values.append("4")

        assert node.values == ["120"]

    def test_children_is_a_copy(self):
        root = ReaperNode("ROOT", is_block=True)
        make_track(root)

        root.children.clear()

        assert len(root.children) == 1

    def test_leaf_node_is_truthy(self):
        assert ReaperNode("CURSOR", ["0"])

    def test_repr(self):
        assert repr(ReaperNode("TEMPO", ["120"])) == (
            "ReaperNode(type='TEMPO', values=['120'], children=0)"
        )


class TestParentLinks:
    """Test the non-owning parent link."""

    def test_parent_and_children_agree(self):
        root = ReaperNode("ROOT", is_block=True)
        track = make_track(root)

        assert track.parent is root
        assert root.children == [track]
        assert root.parent is None

    def test_add_child_requires_matching_parent(self):
        root = ReaperNode("ROOT")
        stranger = ReaperNode("TRACK")

        with pytest.raises(ValueError, match="this node as parent"):
            root.add_child(stranger)

    def test_add_child_rejects_non_nodes(self):
        with pytest.raises(TypeError, match="ReaperNode instance"):
            ReaperNode("ROOT").add_child("TRACK")  # type: ignore

    def test_node_kept_from_parse_keeps_ancestors(self):
        """Test that a node outliving its parse result still navigates upward."""
        item = parse_string(KICK_PROJECT).root.find_by_type_and_name("ITEM", "Kick")
        gc.collect()

        assert item.parent.type == "TRACK"
        assert item.get_depth() == 2
        assert item.get_path() == "/REAPER_PROJECT/TRACK/ITEM"
        assert item.document.item_source_path(item) == Path("Audio/kick.wav")

    def test_hand_built_node_has_no_document(self):
        root = ReaperNode("ROOT", is_block=True)

        assert make_track(root).document is None

    def test_depth(self):
        root = ReaperNode("ROOT", is_block=True)
        track = make_track(root, "Drums")
        name = track.first_child_of_type("NAME")

        assert root.get_depth() == 0
        assert track.get_depth() == 1
        assert name.get_depth() == 2


class TestQueries:
    """Test child lookup by type and name."""

    @pytest.fixture
    def project(self):
        """Root with three direct tracks, one holding a nested TRACK block."""
        root = ReaperNode("REAPER_PROJECT", is_block=True)
        root.add_child(ReaperNode("CURSOR", ["42.0"], parent=root))
        drums = make_track(root, "Drums")
        bass = make_track(root, "Bass")
        keys = make_track(root, "Keys")
        nested = make_track(drums, "Nested")
        kick = make_track(drums, "Kick", "ITEM")
        snare = make_track(bass, "Snare", "ITEM")
        second_kick = make_track(keys, "Kick", "ITEM")
        unnamed = make_track(keys, None, "ITEM")
        return {
            "root": root, "drums": drums, "bass": bass, "keys": keys,
            "nested": nested, "kick": kick, "snare": snare,
            "second_kick": second_kick, "unnamed": unnamed,
        }

    def test_first_child_of_type(self, project):
        assert project["root"].first_child_of_type("TRACK") is project["drums"]

    def test_last_child_of_type(self, project):
        assert project["root"].last_child_of_type("TRACK") is project["keys"]

    def test_missing_type_is_absent(self, project):
        assert project["root"].first_child_of_type("MARKER") is None
        assert project["root"].last_child_of_type("MARKER") is None

    def test_all_children_of_type_direct_only(self, project):
        """Test that nested TRACK blocks are excluded without recursion."""
        tracks = project["root"].all_children_of_type("TRACK")

        assert tracks == [project["drums"], project["bass"], project["keys"]]

    def test_all_children_of_type_recursive(self, project):
        """Test pre-order collection that descends into matched subtrees."""
        tracks = project["root"].all_children_of_type("TRACK", recursive=True)

        assert tracks == [
            project["drums"], project["nested"], project["bass"], project["keys"],
        ]

    def test_recursive_search_excludes_self(self, project):
        drums = project["drums"]

        assert drums not in drums.all_children_of_type("TRACK", recursive=True)

    def test_children_of_type_and_name(self, project):
        matches = project["root"].children_of_type_and_name("TRACK", "Bass")

        assert matches == [project["bass"]]

    def test_children_of_type_and_name_recursive(self, project):
        matches = project["root"].children_of_type_and_name("ITEM", "Kick", recursive=True)

        assert matches == [project["kick"], project["second_kick"]]

    def test_find_by_type_and_name_returns_first_match(self, project):
        assert project["root"].find_by_type_and_name("ITEM", "Kick") is project["kick"]

    def test_find_by_type_and_name_absent(self, project):
        assert project["root"].find_by_type_and_name("ITEM", "Hat") is None

    def test_node_without_name_never_matches(self, project):
        assert project["unnamed"].name is None
        assert project["keys"].children_of_type_and_name("ITEM", "") == []

    def test_name_property(self, project):
        assert project["drums"].name == "Drums"

    def test_iter_descendants_pre_order(self, project):
        types = [node.type for node in project["bass"].iter_descendants()]

        assert types == ["NAME", "ITEM", "NAME"]

    def test_iteration_yields_direct_children(self, project):
        assert list(project["drums"])[1:] == [project["nested"], project["kick"]]

    def test_get_path(self, project):
        assert project["root"].get_path() == "/REAPER_PROJECT"
        assert project["bass"].get_path() == "/REAPER_PROJECT/TRACK[2]"
        assert project["kick"].get_path() == "/REAPER_PROJECT/TRACK[1]/ITEM"

    def test_get_path_untyped(self):
        root = ReaperNode("ROOT", is_block=True)
        root.add_child(ReaperNode("", ["1", "2"], parent=root))

        assert root.children[0].get_path() == "/ROOT/_"

    def test_to_dict(self, project):
        data = project["bass"].to_dict()

        assert data["type"] == "TRACK"
        assert data["block"] is True
        assert data["children"][0] == {"type": "NAME", "values": ["Bass"]}

    def test_get_path_updates_after_add_child(self):
        root = ReaperNode("ROOT", is_block=True)
        first = make_track(root)
        assert first.get_path() == "/ROOT/TRACK"

        make_track(root)

        assert first.get_path() == "/ROOT/TRACK[1]"

    def test_get_path_in_wide_block(self):
        root = ReaperNode("ENV", is_block=True)
        for _ in range(20000):
            root.add_child(ReaperNode("PT", ["0", "1"], parent=root))

        paths = [child.get_path() for child in root.children]

        assert paths[0] == "/ENV/PT[1]"
        assert paths[-1] == "/ENV/PT[20000]"

    def test_to_dict_deep_tree(self):
        root = ReaperNode("T", is_block=True)
        node = root
        for _ in range(3000):
            child = ReaperNode("T", is_block=True, parent=node)
            node.add_child(child)
            node = child

        data = root.to_dict()

        depth = 0
        while "children" in data:
            data = data["children"][0]
            depth += 1
        assert depth == 3000
        assert data == {"type": "T", "values": [], "block": True}
