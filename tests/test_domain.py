import pytest

from proceso_domain import (
    ChildRow, EligibilityResult, Exoneration, GroupRow, Percent, Weight,
    clamp_num, norm_text, round_half_up,
)


@pytest.mark.parametrize("raw, expected", [
    (50, 50),
    ("75", 75),
    (" 12.5 ", 12.5),
    (-3, 0),
    (150, 100),
    ("abc", 0),
    ("", 0),
    (None, 0),
    (float("nan"), 0),
    ([1, 2], 0),
])
def test_clamp_num(raw, expected):
    assert clamp_num(raw, 0, 100) == expected


def test_round_half_up_rounds_halves_up():
    assert round_half_up(65.5) == 66
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4999) == 2
    assert round_half_up(0) == 0


def test_norm_text_drops_case_and_diacritics():
    assert norm_text("  EXAMEN   Parcial 1 ") == "examen parcial 1"
    assert norm_text("Evaluación") == "evaluacion"
    assert norm_text(None) == ""


def test_weight_and_percent_reject_out_of_range():
    with pytest.raises(ValueError):
        Weight(1000)
    with pytest.raises(ValueError):
        Percent(-1)


def test_smart_constructors_clamp():
    assert Weight.of(5000).value == 999
    assert Weight.of("x").value == 0
    assert Percent.of(120).value == 100
    assert Percent.of("40").value == 40


def test_group_requires_children():
    with pytest.raises(ValueError):
        GroupRow(rid="g", label="Vacío", children=())


def test_group_children_stored_as_tuple():
    group = GroupRow(rid="g", label="Talleres", children=[ChildRow("t1", "Taller 1")])
    assert isinstance(group.children, tuple)


def test_status_labels():
    not_applicable = EligibilityResult(10, 90, None, None, None, None)
    assert set(not_applicable.status().values()) == {"-"}
    assert not not_applicable.valid

    result = EligibilityResult(85, 100, True, True, True, Exoneration(True, 4))
    assert result.status() == {"minimos": "SI", "recuperatorio": "SI", "firma": "SI", "exoneracion": "SI"}
    assert result.valid
