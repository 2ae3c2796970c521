"""Tests for the SVG surface and the per-shape renderer adapters."""

import pytest

from engine.encoder import Style
from engine.entity import Entity
from layout.store import Position
from steptrace import UnknownEntity
from ui.canvas import DiagramRenderer, SvgSurface, make_adapter

from conftest import family_of, load


def _renderer_for(key, width=600, height=400):
    family = family_of(key)
    w, h = family.canvas_size(load(key).input, width, height)
    return DiagramRenderer(family.shape, width=w, height=h)


def _style(label=""):
    return Style(fill="#fff", stroke="#000", stroke_width=2, label=label)


class TestSvgSurface:
    def test_layers_are_drawn_in_order(self):
        surface = SvgSurface(100, 100)
        surface.upsert("n", "shapes", "<circle/>")
        surface.upsert("e", "connectors", "<line/>")
        svg = surface.to_svg()
        assert svg.index("<line/>") < svg.index("<circle/>")

    def test_upsert_replaces_in_place(self):
        surface = SvgSurface(100, 100)
        surface.upsert("n", "shapes", "<a/>")
        surface.upsert("n", "shapes", "<b/>")
        assert surface.ids() == ["n"]
        assert surface.markup("n") == "<b/>"

    def test_unknown_layer(self):
        with pytest.raises(ValueError):
            SvgSurface(10, 10).upsert("x", "overlay", "")

    def test_background(self):
        assert 'fill="#0d1117"' in SvgSurface(10, 10).to_svg(background="#0d1117")


class TestAdapters:
    @pytest.mark.parametrize("shape, entity", [
        ("graph", Entity(id="A", kind="node", label="A")),
        ("bars", Entity(id="0", kind="bar", label="5", value=5)),
        ("bars", Entity(id="left:0", kind="aux", label="5", value=5, group="left")),
        ("tree", Entity(id="0-1", kind="tree_node", label="5, 1")),
        ("list", Entity(id="n1", kind="list_node", label="10")),
    ])
    def test_draw_returns_layer_and_markup(self, shape, entity):
        adapter = make_adapter(shape, 600)
        adapter.begin([entity], {entity.id: _style(entity.label)})
        layer, markup = adapter.draw(entity, _style(entity.label), {entity.id: Position(100, 100)})
        assert layer == "shapes"
        assert f'data-id="{entity.id}"' in markup

    def test_bar_diagram_mounts(self, make_controller):
        renderer = _renderer_for("bubble_sort")
        make_controller("bubble_sort", renderer=renderer)
        assert renderer.frames == 1
        assert 'class="bar draggable" data-id="0"' in renderer.surface.markup("0")


class TestDiagramRenderer:
    def test_unknown_shape(self):
        with pytest.raises(ValueError):
            make_adapter("pie", 600)

    def test_stale_auxiliary_rows_are_removed(self, make_controller):
        renderer = _renderer_for("merge_sort")
        ctl = make_controller("merge_sort", renderer=renderer)
        assert "left:0" not in renderer.surface.ids()
        ctl.seek(1)
        assert {"left:0", "left:1", "right:0", "right:1"} <= set(renderer.surface.ids())
        assert "#caption:left" in renderer.surface.ids()
        ctl.jump_to_end()
        assert not [i for i in renderer.surface.ids() if ":" in i]

    def test_positioned_elements_are_draggable(self, make_controller):
        renderer = _renderer_for("bfs")
        make_controller("bfs", renderer=renderer)
        assert 'class="node draggable" data-id="A"' in renderer.surface.markup("A")
        assert "draggable" not in renderer.surface.markup("A-B")

    def test_directed_edges_get_arrowheads(self, make_controller):
        renderer = _renderer_for("bellman_ford")
        make_controller("bellman_ford", renderer=renderer)
        assert "<polygon" in renderer.surface.markup("A-B")
        undirected = _renderer_for("bfs")
        make_controller("bfs", renderer=undirected)
        assert "<polygon" not in undirected.surface.markup("A-B")

    def test_matrix_is_drawn_beside_the_graph(self, make_controller):
        renderer = _renderer_for("floyd_warshall")
        make_controller("floyd_warshall", renderer=renderer)
        assert "Distance Matrix" in renderer.surface.markup("#matrix-headers")
        assert "A:C" in renderer.surface.ids()
        assert renderer.surface.width > 600

    def test_style_change_keeps_coordinates(self, make_controller):
        renderer = _renderer_for("bfs")
        ctl = make_controller("bfs", renderer=renderer)
        before = renderer.surface.markup("D")
        ctl.seek(2)
        after = renderer.surface.markup("D")
        assert before != after
        x = ctl.layout.get("D").x
        assert f'cx="{x:.1f}"' in before and f'cx="{x:.1f}"' in after

    def test_missing_position(self):
        renderer = DiagramRenderer("graph")
        node = Entity(id="A", kind="node", label="A")
        with pytest.raises(UnknownEntity):
            renderer.render([node], {"A": _style("A")}, {})

    def test_labels_are_escaped(self):
        renderer = DiagramRenderer("list")
        node = Entity(id="n1", kind="list_node", label="<b>")
        renderer.render([node], {"n1": _style("<b>")}, {"n1": Position(100, 100)})
        markup = renderer.surface.markup("n1")
        assert "&lt;b&gt;" in markup
        assert ">null<" in markup

    def test_frame_counter(self, make_controller):
        renderer = _renderer_for("linked_list")
        ctl = make_controller("linked_list", renderer=renderer)
        ctl.next()
        assert renderer.frames == 2
