from dataclasses import dataclass, field
from datetime import datetime
from html import escape

import pytest

from primus.html import Html, Request, build_url
from primus.servus_page import servus_edit_form, servus_info, servus_list, servus_page


@dataclass
class FakeServus:
    servus_id: int
    title: str
    enabled: bool = True
    online: bool = False
    running_since: datetime | None = None
    authenticator: str = "auth-placeholder"

    def toggle_enabled(self):
        self.enabled = not self.enabled

    def set_title(self, title):
        self.title = title


@dataclass
class FakeRegistry:
    servuses: list = field(default_factory=list)
    define_result: int | None = None
    defined: list = field(default_factory=list)

    def all(self):
        return list(self.servuses)

    def by_id(self, servus_id):
        for servus in self.servuses:
            if servus.servus_id == servus_id:
                return servus
        raise LookupError(servus_id)

    def define(self, title):
        self.defined.append(title)
        if self.define_result is not None:
            return self.define_result
        new_id = len(self.servuses) + 1
        self.servuses.append(FakeServus(new_id, title))
        return new_id


@pytest.fixture
def registry():
    return FakeRegistry(
        [
            FakeServus(1, "Garage", enabled=True, online=False),
            FakeServus(
                2,
                "Keller",
                enabled=False,
                online=True,
                running_since=datetime(2020, 5, 17, 8, 30),
            ),
        ]
    )


def render(function, arguments, registry, page="servus"):
    html = Html()
    function(Request(page=page, arguments=arguments), html, registry)
    return html.render()


def test_page_lists_all_servuses(registry):
    out = render(servus_page, {}, registry)
    assert 'class="workspace"' in out
    assert "Garage" in out
    assert "Keller" in out
    assert out.count("[Details]") == 2


def test_toggle_disables_enabled_servus(registry):
    out = render(servus_page, {"action": "servus_toggle", "servus_id": "1"}, registry)
    assert registry.by_id(1).enabled is False
    assert "<u>deaktiviert</u>" in out
    assert "<b>Garage</b>" in out


def test_toggle_enables_disabled_servus(registry):
    out = render(servus_page, {"action": "servus_toggle", "servus_id": "2"}, registry)
    assert registry.by_id(2).enabled is True
    assert "<u>aktiviert</u>" in out


def test_toggle_without_id_reports_browser_error(registry):
    out = render(servus_page, {"action": "servus_toggle"}, registry)
    assert "Fehler in Browser!" in out
    assert "workspace" not in out


def test_edit_action_shows_form(registry):
    out = render(servus_page, {"action": "servus_edit", "servus_id": "1"}, registry)
    assert "<form" in out
    assert "Servus bearbeiten" in out
    assert 'name="action" value="servus_save"' in out
    assert 'name="servus_id" value="1"' in out
    assert 'value="Garage"' in out


def test_edit_form_for_new_servus(registry):
    out = render(servus_edit_form, {}, registry)
    assert "Neuen Servus definieren" in out
    assert 'name="servus_id"' not in out


def test_save_renames_servus(registry):
    out = render(
        servus_page,
        {"action": "servus_save", "button": "submit", "servus_id": "1", "servus_title": "Dach"},
        registry,
    )
    assert registry.by_id(1).title == "Dach"
    assert "Dach" in out


def test_save_with_empty_title_reports_browser_error(registry):
    out = render(
        servus_page,
        {"action": "servus_save", "button": "submit", "servus_id": "1", "servus_title": ""},
        registry,
    )
    assert registry.by_id(1).title == "Garage"
    assert "Fehler in Browser!" in out


def test_save_without_submit_changes_nothing(registry):
    render(
        servus_page,
        {"action": "servus_save", "servus_id": "1", "servus_title": "Dach"},
        registry,
    )
    assert registry.by_id(1).title == "Garage"


def test_save_without_id_defines_servus(registry):
    out = render(
        servus_page,
        {"action": "servus_save", "button": "submit", "servus_title": "Dach"},
        registry,
    )
    assert registry.defined == ["Dach"]
    assert "Neuer Servus wurde definiert." in out
    assert [servus.title for servus in registry.all()][-1] == "Dach"


def test_define_failure_reports_error(registry):
    registry.define_result = 0
    out = render(
        servus_page,
        {"action": "servus_save", "button": "submit", "servus_title": "Dach"},
        registry,
    )
    assert "Servus konnte nicht definiert werden!" in out
    assert "Neuer Servus wurde definiert." not in out


def test_define_without_title_shows_form_again(registry):
    out = render(servus_page, {"action": "servus_save", "button": "submit"}, registry)
    assert registry.defined == []
    assert "Servus konnte nicht definiert werden!" in out
    assert "Beschreibung fehlt!" in out
    assert "Neuen Servus definieren" in out
    assert "workspace" not in out


def test_info_shows_selected_servus(registry):
    out = render(servus_info, {"servus_id": "2"}, registry)
    assert "<b>Keller</b>" in out
    assert "Gesperrt" in out
    assert "2020-05-17 08:30" in out
    assert "auth-placeholder" in out


def test_info_for_offline_servus(registry):
    out = render(servus_info, {"servus_id": "1"}, registry)
    assert "Anmeldungen zugelassen" in out
    assert "Nicht verbunden" in out


def test_info_without_selection_is_empty(registry):
    assert render(servus_info, {}, registry) == ""


def test_list_links_and_states(registry):
    out = render(servus_list, {}, registry)
    assert escape(build_url("servus", [("action", "servus_edit"), ("servus_id", 1)])) in out
    assert escape(build_url("servus", [("action", "servus_toggle"), ("servus_id", 2)])) in out
    assert "[Deaktivieren]" in out
    assert "[Aktivieren]" in out
    assert "Disabled" in out
    assert "Offline" in out


def test_titles_are_escaped(registry):
    registry.servuses.append(FakeServus(3, "<script>"))
    out = render(servus_list, {}, registry)
    assert "<script>" not in out
    assert "&lt;script&gt;" in out


def test_unknown_servus_raises(registry):
    with pytest.raises(LookupError):
        render(servus_info, {"servus_id": "99"}, registry)