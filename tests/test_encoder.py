"""Tests for the Visual Encoder: precedence, overlays, themes, totality."""

import pytest

from engine.diff import CategoryAssignment, compute
from engine.encoder import DARK, LIGHT, PALETTES, encode, encode_all
from engine.entity import Entity
from engine.families import FAMILIES, QUICK_SORT
from steptrace import REGISTRY, UnstyledCategory

from conftest import family_of, load


def _bar_assignment(tags, roles=None, next_suggestion=None):
    entities = tuple(Entity(id=eid, kind="bar", label=eid) for eid in tags)
    return CategoryAssignment(
        step_index=0,
        entities=entities,
        tags={eid: frozenset(t) for eid, t in tags.items()},
        roles=roles or {},
        next_suggestion=next_suggestion,
    )


def _styles(key, index, theme="light"):
    return encode_all(compute(load(key), index, family_of(key)), family_of(key), theme)


class TestFillPrecedence:
    def test_swap_beats_comparing_and_sorted(self):
        styles = _styles("bubble_sort", 4)
        assert styles["3"].fill == LIGHT["swapped"]
        assert styles["4"].fill == LIGHT["swapped"]
        assert styles["2"].fill == LIGHT["unsorted"]

    def test_categories_clear_on_the_next_step(self):
        styles = _styles("bubble_sort", 5)
        assert styles["0"].fill == LIGHT["comparing"]
        assert styles["1"].fill == LIGHT["comparing"]
        assert styles["3"].fill == LIGHT["unsorted"]
        assert styles["4"].fill == LIGHT["sorted"]

    def test_role_outranks_tags(self):
        a = _bar_assignment({"0": {"comparing", "sorted"}, "1": {"sorted"}}, roles={"0": "pivot"})
        assert encode(a.entities[0], a, QUICK_SORT).fill == LIGHT["pivot"]
        assert encode(a.entities[1], a, QUICK_SORT).fill == LIGHT["sorted"]

    def test_labels_and_annotations_pass_through(self):
        styles = _styles("bfs", 1)
        assert styles["A"].label == "A"
        assert styles["A"].note == "L0"


class TestStrokeChannel:
    def test_next_outline_keeps_the_fill(self):
        styles = _styles("bfs", 0)
        assert styles["B"].fill == LIGHT["frontier"]
        assert styles["B"].stroke == LIGHT["next"]
        assert styles["B"].stroke_width == 4

    def test_role_stroke(self):
        styles = _styles("bfs", 0)
        assert styles["A"].fill == LIGHT["visited"]
        assert styles["A"].stroke == LIGHT["start"]
        assert styles["A"].stroke_width == 3

    def test_plain_entity_gets_kind_default(self):
        styles = _styles("bfs", 0)
        assert styles["D"].stroke == LIGHT["outline"]
        assert styles["D"].stroke_width == 2

    def test_connectors_are_never_filled(self):
        styles = _styles("bfs", 0)
        assert styles["A-B"].fill == "none"
        assert styles["A-B"].stroke == LIGHT["tree"]
        assert styles["D-E"].stroke == LIGHT["line"]

    def test_next_suggestion_beats_stroke_precedence(self):
        a = _bar_assignment({"0": {"search-range", "boundary"}}, next_suggestion="0")
        style = encode(a.entities[0], a, FAMILIES["binary_search"])
        assert style.stroke == LIGHT["next"]
        assert style.fill == LIGHT["unsorted"]


class TestThemes:
    def test_dark_palette(self):
        styles = _styles("bfs", 0, theme="dark")
        assert styles["B"].fill == DARK["frontier"]
        assert styles["B"].text == DARK["text"]

    def test_theme_changes_colour_not_category(self):
        light, dark = _styles("bfs", 3), _styles("bfs", 3, theme="dark")
        # visited shares one colour across palettes
        assert light["A"].fill == dark["A"].fill == "#10b981"
        assert light["E"].fill != dark["E"].fill


class TestUnstyled:
    def test_unknown_tag_raises(self):
        a = _bar_assignment({"0": {"glowing"}})
        with pytest.raises(UnstyledCategory) as exc:
            encode(a.entities[0], a, QUICK_SORT)
        assert exc.value.category == "glowing"

    def test_empty_tag_set_raises(self):
        a = _bar_assignment({"0": set()})
        with pytest.raises(UnstyledCategory):
            encode(a.entities[0], a, QUICK_SORT)


class TestTotality:
    @pytest.mark.parametrize("key", sorted(REGISTRY))
    def test_every_step_encodes_in_every_theme(self, key):
        trace, family = load(key), family_of(key)
        for i in range(len(trace)):
            a = compute(trace, i, family)
            for theme in PALETTES:
                styles = encode_all(a, family, theme)
                assert set(styles) == {e.id for e in a.entities}

    @pytest.mark.parametrize("family", list(FAMILIES.values()), ids=list(FAMILIES))
    def test_every_rule_names_a_palette_key(self, family):
        for rule in family.styles.values():
            for key in (rule.fill, rule.stroke):
                if key is not None:
                    assert all(key in palette for palette in PALETTES.values())
