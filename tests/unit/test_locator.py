"""Unit tests for container, field and control scoring"""

from bonus_manager.domain.locator import (
    choose_control,
    pick_best_container,
    pick_input_field,
    pick_option,
    pick_select_field,
    score_container,
)
from bonus_manager.domain.models import Container, FieldOption, FormField
from conftest import DONATE_FORM, STORE_FORMS, UPLOAD_FORM, VIP_FORM


def test_score_container_requires_a_section_hit():
    assert score_container(VIP_FORM, ("millionaire",), ("donate",)) == -1


def test_score_container_weights():
    # two section hits (millionaire, vault), one action hit, has controls
    assert score_container(DONATE_FORM, ("millionaire", "vault", "pot"), ("donate", "contribute")) == 23


def test_pick_best_container_per_benefit():
    assert pick_best_container(STORE_FORMS, ("millionaire", "vault", "pot"), ("donate",))[0] is DONATE_FORM
    assert pick_best_container(STORE_FORMS, ("vip",), ("buy", "week"))[0] is VIP_FORM
    assert pick_best_container(STORE_FORMS, ("upload", "credit", "gb"), ("exchange",))[0] is UPLOAD_FORM


def test_pick_best_container_none_when_unmatched():
    assert pick_best_container(STORE_FORMS, ("lottery",), ("buy",)) == (None, -1)


def test_pick_best_container_ties_go_to_first():
    first = Container(index=0, text="VIP", controls=("Buy",))
    second = Container(index=1, text="VIP", controls=("Buy",))

    assert pick_best_container([first, second], ("vip",), ("buy",))[0] is first


def test_pick_input_field_prefers_point_amount():
    fields = (
        FormField(tag="input", type="hidden", name="token"),
        FormField(tag="input", type="text", name="comment"),
        FormField(tag="input", type="number", name="bonus_points"),
        FormField(tag="select", name="points"),
    )

    assert pick_input_field(fields).name == "bonus_points"


def test_pick_input_field_none_without_text_inputs():
    assert pick_input_field((FormField(tag="input", type="checkbox", name="agree"),)) is None


def test_pick_select_field_prefers_vip_weeks():
    fields = (FormField(tag="select", name="points"), FormField(tag="select", id="vip_weeks"))

    assert pick_select_field(fields).key == "vip_weeks"


def test_pick_option_largest_not_above_amount():
    options = (
        FieldOption(value="4", text="4 weeks"),
        FieldOption(value="8", text="8 weeks"),
        FieldOption(value="12", text="12 weeks", disabled=True),
    )

    assert pick_option(options, 12).value == "8"
    assert pick_option(options, 5).value == "4"


def test_pick_option_falls_back_to_smallest():
    options = (FieldOption(value="a", text="1,000 points"), FieldOption(value="b", text="5,000 points"))

    assert pick_option(options, 500).value == "a"


def test_pick_option_none_without_numbers():
    assert pick_option((FieldOption(value="x", text="Choose..."),), 10) is None


def test_choose_control():
    controls = ("Cancel", "Max me out!", "Buy 4 weeks")

    assert choose_control(controls, ("4 week",)) == "Buy 4 weeks"
    assert choose_control(controls, ("donate",)) == "Cancel"
    assert choose_control(controls, ("donate",), fallback_first=False) is None
    assert choose_control((), ("donate",)) is None
