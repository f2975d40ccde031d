import pytest

from primus.html import (
    ACTION,
    ACTION_SERVUS_EDIT,
    SERVUS_ID,
    ArgumentMissing,
    Html,
    Request,
    build_url,
)


def test_has_pair_matches_exact_value():
    request = Request("servus", {ACTION: ACTION_SERVUS_EDIT})
    assert request.has_pair(ACTION, ACTION_SERVUS_EDIT) is True
    assert request.has_pair(ACTION, "servus_save") is False
    assert request.has_pair("button", "submit") is False


def test_get_returns_argument_and_raises_when_missing():
    request = Request("servus", {"servus_title": "Garage"})
    assert request.get("servus_title") == "Garage"
    with pytest.raises(ArgumentMissing):
        request.get("servus_id")


def test_integer_parses_and_rejects():
    request = Request("servus", {SERVUS_ID: "42", "bad": "4x", "neg": "-1"})
    assert request.integer(SERVUS_ID) == 42
    with pytest.raises(ArgumentMissing):
        request.integer("bad")
    with pytest.raises(ArgumentMissing):
        request.integer("neg")
    with pytest.raises(ArgumentMissing):
        request.integer("missing")


def test_argument_missing_is_a_key_error():
    with pytest.raises(KeyError):
        Request().get("anything")


def test_nested_elements_render_in_order():
    html = Html()
    with html.element("div", id="workspace"):
        with html.element("span", class_="title"):
            html.text("Start")
    assert html.render() == '<div id="workspace"><span class="title">Start</span></div>'


def test_text_is_escaped_and_markup_is_not():
    html = Html()
    html.text("<b>&</b>")
    html.markup("<b>bold</b>")
    out = html.render()
    assert "&lt;b&gt;&amp;&lt;/b&gt;" in out
    assert out.endswith("<b>bold</b>")


def test_attribute_values_are_escaped_and_none_dropped():
    html = Html()
    html.void("img", src='a"b', alt=None, data_role="x")
    out = html.render()
    assert "&quot;" in out
    assert "alt" not in out
    assert 'data-role="x"' in out
    assert out.endswith(" />")


def test_message_rejects_unknown_kind():
    html = Html()
    with pytest.raises(ValueError):
        html.message("shout", "hello")


def test_message_keeps_markup():
    html = Html()
    html.message("error", "Servus <b>X</b>")
    out = html.render()
    assert "error" in out
    assert "<b>X</b>" in out


def test_render_refuses_open_element():
    html = Html()
    with html.element("div"):
        with pytest.raises(RuntimeError):
            html.render()
    assert html.render().startswith("<div")


def test_build_url_without_params_is_page():
    assert build_url("servus", {}) == "servus"


def test_build_url_joins_params_in_order():
    url = build_url("servus", [(ACTION, ACTION_SERVUS_EDIT), (SERVUS_ID, 7)])
    assert url == "servus?action=servus_edit&servus_id=7"


def test_build_url_encodes_special_characters():
    url = build_url("servus", {"t": "a&b c"})
    assert url.startswith("servus?t=")
    assert "&b" not in url