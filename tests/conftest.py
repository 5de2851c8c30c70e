import pytest

from proceso_domain import ChildRow, GroupRow, LeafRow, Percent, Weight


def leaf(rid, weight, pct, minimum=0, label=None):
    return LeafRow(rid=rid, label=label or rid, weight=Weight.of(weight),
                   percent=Percent.of(pct), minimum=Percent.of(minimum))


def child(rid, weight, pct):
    return ChildRow(rid=rid, label=rid, weight=Weight.of(weight), percent=Percent.of(pct))


def group(rid, *children, minimum=0):
    return GroupRow(rid=rid, label=rid, children=children, minimum=Percent.of(minimum))


@pytest.fixture
def course_rows():
    """p1 15 pts, p2 6 pts, talleres 40 pts: process total 61, weights add up to 100"""
    return (
        leaf("p1", 30, 50, label="Parcial 1"),
        leaf("p2", 30, 20, label="Parcial 2"),
        group("g_talleres", child("t1", 20, 100), child("t2", 20, 100)),
    )
