import pytest

from slidesmith.editor import PresentationEditor
from slidesmith.layouts import LEFT, RIGHT
from slidesmith.schemas import Presentation, Slide, SlideLayout, Transition


def _deck(template, n):
    return Presentation(title="Deck", slides=[Slide(title=f"S{i}") for i in range(n)], template=template)


@pytest.mark.parametrize("n", range(2, 6))
def test_reorder_keeps_selected_slide_selected(template, n):
    for from_index in range(n):
        for to_index in range(n):
            for selected in range(n):
                editor = PresentationEditor(_deck(template, n))
                editor.select(selected)
                selected_id = editor.selected_slide.id
                moved_id = editor.slides[from_index].id
                editor.reorder(from_index, to_index)
                assert editor.selected_slide.id == selected_id
                assert editor.slides[to_index].id == moved_id
                assert len(editor.slides) == n


def test_reorder_example(editor):
    ids = [s.id for s in editor.slides]
    editor.select(1)
    assert editor.reorder(2, 0)
    assert [s.id for s in editor.slides] == [ids[2], ids[0], ids[1]]
    assert editor.selected_index == 2


def test_reorder_noop_keeps_snapshot(editor):
    snapshot = editor.presentation
    assert not editor.reorder(1, 1)
    assert not editor.reorder(0, 7)
    assert editor.presentation is snapshot


def test_update_slide_creates_new_snapshot(editor):
    snapshot = editor.presentation
    old_slide = editor.slides[1]
    assert editor.update_slide(1, title="Plan", transition=Transition.FADE)
    assert editor.presentation is not snapshot
    assert snapshot.slides[1] is old_slide
    assert editor.slides[1].title == "Plan"
    assert editor.slides[1].content == old_slide.content
    assert editor.slides[1].id == old_slide.id
    assert editor.slides[0] is snapshot.slides[0]


def test_update_slide_out_of_range_is_ignored(editor):
    snapshot = editor.presentation
    assert not editor.update_slide(5, title="x")
    assert editor.presentation is snapshot


def test_update_slide_rejects_unknown_fields(editor):
    with pytest.raises(TypeError):
        editor.update_slide(0, colour="red")


def test_add_slide_appends_and_selects(editor):
    slide = editor.add_slide()
    assert editor.slides[-1] is slide
    assert slide.title == "New Slide"
    assert slide.content == ["Your content here."]
    assert slide.layout == SlideLayout.TITLE_CONTENT
    assert editor.selected_index == 3


def test_add_then_delete(editor):
    editor.add_slide()
    assert len(editor.slides) == 4
    assert editor.selected_index == 3
    assert editor.delete_slide(3)
    assert len(editor.slides) == 3
    assert editor.selected_index == 2


def test_delete_selection_steps_back(editor):
    editor.select(0)
    editor.delete_slide(2)
    assert editor.selected_index == 0
    assert [s.title for s in editor.slides] == ["Intro", "Agenda"]


def test_deck_never_becomes_empty(template):
    editor = PresentationEditor(_deck(template, 1))
    snapshot = editor.presentation
    assert not editor.delete_slide(0)
    assert editor.presentation is snapshot
    assert not editor.delete_slide(4)


@pytest.mark.parametrize("n", range(1, 5))
def test_delete_everything_leaves_one(template, n):
    editor = PresentationEditor(_deck(template, n))
    for _ in range(n + 2):
        editor.delete_slide(0)
    assert len(editor.slides) == 1
    assert editor.selected_index == 0


def test_select_out_of_range(editor):
    assert not editor.select(3)
    assert editor.selected_index == 0


def test_set_transition_touches_one_slide(editor):
    editor.set_transition(1, "zoom-in")
    assert editor.slides[1].transition == Transition.ZOOM_IN
    assert editor.slides[0].transition is None
    assert editor.slides[2].transition is None
    with pytest.raises(ValueError):
        editor.set_transition(1, "spin")


def test_set_title(editor):
    editor.set_title("Board Update")
    assert editor.presentation.title == "Board Update"


def test_remove_image(editor):
    editor.update_slide(0, image_url="data:image/png;base64,AAAA")
    editor.remove_image(0)
    assert editor.slides[0].image_url is None


def test_bullet_edits(editor):
    assert editor.add_bullet(1)
    assert editor.slides[1].content[-1] == "New bullet point."
    assert editor.edit_content(1, 0, "Uno")
    assert editor.delete_bullet(1, 1)
    assert editor.slides[1].content == ["Uno", "Three", "New bullet point."]
    assert not editor.edit_content(1, 9, "x")
    assert not editor.delete_bullet(1, 9)


def test_two_column_edits_use_column_indices(editor):
    # content a..e splits into [a, b, c] | [d, e]
    assert editor.edit_column_bullet(2, RIGHT, 0, "D")
    assert editor.edit_column_bullet(2, LEFT, 2, "C")
    assert editor.slides[2].content == ["a", "b", "C", "D", "e"]
    assert editor.delete_column_bullet(2, RIGHT, 1)
    assert editor.slides[2].content == ["a", "b", "C", "D"]
    assert not editor.edit_column_bullet(2, RIGHT, 2, "x")


def test_present_from_selection(editor):
    editor.select(2)
    assert editor.present().index == 0
    assert editor.present(from_selection=True).index == 2
