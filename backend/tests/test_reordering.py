"""Tests for optimistic reordering and builder view state."""

import pytest

from anamnesis.engine.document_store import TemplateDocumentStore
from anamnesis.engine.reordering import (
    ActionState,
    BuilderReorderingEngine,
    OptimisticAction,
    array_move,
)
from anamnesis.models.template import FieldType

pytestmark = pytest.mark.anyio


@pytest.fixture
def abc_template(template_factory):
    return template_factory("Reorder", [
        ("A", False, [
            {"tipo_campo": FieldType.TEXT, "label": "a1"},
            {"tipo_campo": FieldType.TEXT, "label": "a2"},
            {"tipo_campo": FieldType.TEXT, "label": "a3"},
        ]),
        ("B", False, [{"tipo_campo": FieldType.TEXT, "label": "b1"}]),
        ("C", False, []),
    ])


async def load_builder(transport, template):
    store = TemplateDocumentStore(transport, template.id)
    await store.fetch()
    return BuilderReorderingEngine(store)


def titles(store):
    return [s.titulo for s in store.ordered_sections()]


def test_array_move():
    assert array_move(["A", "B", "C"], 2, 0) == ["C", "A", "B"]
    assert array_move(["A", "B", "C"], 0, 2) == ["B", "C", "A"]


def test_optimistic_action_revert_restores_snapshot():
    items = [1, 2, 3]

    def restore(snapshot):
        items[:] = snapshot

    action = OptimisticAction(snapshot=lambda: list(items), restore=restore)
    action.apply(lambda: items.reverse())
    assert items == [3, 2, 1]

    action.revert()
    assert items == [1, 2, 3]
    assert action.state is ActionState.REVERTED

    action.commit()
    assert action.state is ActionState.REVERTED


async def test_move_section_persists(transport, abc_template):
    builder = await load_builder(transport, abc_template)
    a, b, c = builder.store.section_order

    task = builder.move_section(c, a)
    assert titles(builder.store) == ["C", "A", "B"]
    assert await task is True

    assert titles(builder.store) == ["C", "A", "B"]
    sections = await transport.get(f"/templates/{abc_template.id}/sections")
    assert [s["titulo"] for s in sections] == ["C", "A", "B"]
    assert [s["ordem"] for s in sections] == [0, 1, 2]


async def test_failed_section_move_rolls_back(flaky_transport, abc_template):
    builder = await load_builder(flaky_transport, abc_template)
    a, b, c = builder.store.section_order

    task = builder.move_section(c, a)
    # Visible before persistence completes
    assert titles(builder.store) == ["C", "A", "B"]

    assert await task is False
    assert titles(builder.store) == ["A", "B", "C"]
    assert [s.ordem for s in builder.store.ordered_sections()] == [0, 1, 2]
    assert builder.notifier.errors[-1].title == "Could not reorder sections"


async def test_move_field_within_section(transport, abc_template):
    builder = await load_builder(transport, abc_template)
    section_a = builder.store.section_order[0]
    a1, a2, a3 = builder.store.field_order[section_a]

    task = builder.move_field(section_a, a1, a3)
    assert [f.label for f in builder.store.fields_of(section_a)] == ["a2", "a3", "a1"]
    await builder.settle()

    assert task.result() is True
    assert [f.ordem for f in builder.store.fields_of(section_a)] == [0, 1, 2]
    assert builder.store.fields[a1].ordem == 2


async def test_failed_field_move_rolls_back(flaky_transport, abc_template):
    builder = await load_builder(flaky_transport, abc_template)
    section_a = builder.store.section_order[0]
    a1, a2, a3 = builder.store.field_order[section_a]

    builder.move_field(section_a, a3, a1)
    await builder.settle()

    assert builder.store.field_order[section_a] == [a1, a2, a3]
    assert not builder.has_pending


async def test_failed_field_move_after_section_removed(flaky_transport, abc_template):
    builder = await load_builder(flaky_transport, abc_template)
    section_a = builder.store.section_order[0]
    a1, a2, a3 = builder.store.field_order[section_a]

    task = builder.move_field(section_a, a3, a1)
    # Section dropped from the store while the reorder is in flight
    builder.store.field_order.pop(section_a)
    await builder.settle()

    assert task.exception() is None
    assert task.result() is False
    assert section_a not in builder.store.field_order
    assert not builder.has_pending


async def test_cross_section_field_drop_is_ignored(transport, abc_template):
    builder = await load_builder(transport, abc_template)
    section_a, section_b, _ = builder.store.section_order
    a1 = builder.store.field_order[section_a][0]
    b1 = builder.store.field_order[section_b][0]

    assert builder.move_field(section_a, a1, b1) is None
    assert builder.move_field(section_b, a1, b1) is None
    assert builder.store.field_order[section_a][0] == a1
    assert builder.store.field_order[section_b] == [b1]


async def test_drop_on_self_is_noop(transport, abc_template):
    builder = await load_builder(transport, abc_template)
    a = builder.store.section_order[0]
    assert builder.move_section(a, a) is None
    assert builder.move_section(a, None) is None


async def test_drop_field_type_clears_drop_target(transport, abc_template):
    builder = await load_builder(transport, abc_template)
    section_c = builder.store.section_order[2]

    builder.drag_over(section_c)
    assert builder.drop_target == section_c

    campo = await builder.drop_field_type(section_c, FieldType.RADIO)

    assert builder.drop_target is None
    assert campo.label == "Single Choice"
    assert builder.store.field_order[section_c] == [campo.id]


async def test_failed_drop_still_clears_drop_target(flaky_transport, abc_template):
    flaky_transport.fail_methods = {"POST"}
    builder = await load_builder(flaky_transport, abc_template)
    section_c = builder.store.section_order[2]

    builder.drag_over(section_c)
    assert await builder.drop_field_type(section_c, FieldType.TEXT) is None
    assert builder.drop_target is None
    assert builder.store.field_order[section_c] == []


async def test_view_state(transport, abc_template):
    builder = await load_builder(transport, abc_template)
    a, b, c = builder.store.section_order
    assert builder.expanded == {a, b, c}

    assert builder.toggle_section(a) is False
    assert builder.toggle_section(a) is True

    secao = await builder.create_section("D")
    assert secao.id in builder.expanded

    builder.select_section(secao.id)
    await builder.delete_section(secao.id)
    assert builder.selected_section is None
    assert secao.id not in builder.expanded
