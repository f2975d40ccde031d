"""The 'Relay' tab of the web site: relay states, switching links and renaming."""

from __future__ import annotations

from collections.abc import Sequence
from html import escape
from typing import Any, Protocol

from primus.html import (
    ACTION,
    ACTION_RELAY_EDIT,
    ACTION_RELAY_SAVE,
    BUTTON,
    BUTTON_CANCEL,
    BUTTON_SUBMIT,
    RELAY_ID,
    RELAY_STATE,
    RELAY_STATE_DOWN,
    RELAY_STATE_UP,
    RELAY_TITLE,
    SWITCH_RELAY,
    ArgumentMissing,
    Html,
    Request,
    build_url,
)

BROWSER_ERROR = "Fehler in Browser!"


class _Relay(Protocol):
    relay_id: int
    title: str
    gpio_pin_number: int

    def is_off(self) -> bool: ...

    def set_title(self, title: str) -> None: ...


class RelayRegistry(Protocol):
    """Storage of the relays known to the system."""

    def all(self) -> Sequence[Any]:
        """Return every relay, in display order."""
        ...

    def by_id(self, relay_id: int) -> Any:
        """Return the relay with ``relay_id`` or raise LookupError."""
        ...


def _save(request: Request, html: Html, relays: RelayRegistry) -> bool:
    """Store a submitted edit form; False if the page must not go on."""
    try:
        relay_id = request.integer(RELAY_ID)
    except ArgumentMissing:
        html.message("alert", BROWSER_ERROR)
        return False
    try:
        title = request.get(RELAY_TITLE)
        if not title:
            raise ArgumentMissing(RELAY_TITLE)
    except ArgumentMissing:
        html.message("error", "Beschreibung fehlt!")
        relay_edit_form(request, html, relays)
        return False
    relays.by_id(relay_id).set_title(title)
    return True


def relay_page(request: Request, html: Html, relays: RelayRegistry) -> None:
    """Process the relay tab's actions and write the tab into ``html``."""
    if request.has_pair(ACTION, ACTION_RELAY_EDIT):
        relay_edit_form(request, html, relays)
        return

    if request.has_pair(BUTTON, BUTTON_SUBMIT) and request.has_pair(ACTION, ACTION_RELAY_SAVE):
        if not _save(request, html, relays):
            return

    page = request.page
    with html.element("div", class_="workspace"):
        with html.element("div", id="full", class_="slice"):
            with html.element("h2"):
                html.text("Relay")
            with html.element("table"):
                with html.element("thead"), html.element("tr"):
                    for heading in ("Bezeichnung", "GPIO Pin", "Status"):
                        with html.element("td"):
                            html.text(heading)
                    with html.element("td", colspan=3):
                        pass
                with html.element("tbody"):
                    for index, relay in enumerate(relays.all()):
                        _relay_row(html, page, index, relay)


def _switch_link(
    html: Html, page: str, index: int, state: str, title: str, image: str, label: str
) -> None:
    url = build_url(page, [(SWITCH_RELAY, index), (RELAY_STATE, state)])
    with html.element("a", href=url, title=title):
        html.void("img", src=image, alt=label)
        with html.element("span"):
            html.text(label)


def _relay_row(html: Html, page: str, index: int, relay: _Relay) -> None:
    off = relay.is_off()
    with html.element("tr"):
        with html.element("td", class_="label"):
            html.text(relay.title)
        with html.element("td", class_="label"):
            html.text(str(relay.gpio_pin_number))
        with html.element("td", class_="red" if off else "green"):
            html.text("Aus" if off else "Ein")
        with html.element("td", class_="action"):
            _switch_link(
                html, page, index, RELAY_STATE_UP, "Schalte Relais ein.", "img/enable.png", "Ein"
            )
        with html.element("td", class_="action"):
            _switch_link(
                html,
                page,
                index,
                RELAY_STATE_DOWN,
                "Schalte Relais aus.",
                "img/disable.png",
                "Aus",
            )
        with html.element("td", class_="action"):
            url = build_url(page, [(ACTION, ACTION_RELAY_EDIT), (RELAY_ID, relay.relay_id)])
            with html.element("a", href=url, title="Bearbeiten."):
                html.void("img", src="img/edit.png", alt="Bearbeiten")
                html.text("[Bearbeiten]")


def relay_edit_form(request: Request, html: Html, relays: RelayRegistry) -> None:
    """Write the form to rename the selected relay."""
    try:
        relay_id = request.integer(RELAY_ID)
    except ArgumentMissing:
        relay_id = 0

    title = relays.by_id(relay_id).title if relay_id != 0 else ""

    with html.element(
        "form",
        method="get",
        id="full",
        class_="observatorium",
        name="observatorium",
        action=request.page,
    ):
        html.void("input", type="hidden", name=ACTION, value=ACTION_RELAY_SAVE)
        html.void("input", type="hidden", name=RELAY_ID, value=relay_id)

        with html.element("fieldset", class_="north"):
            with html.element("h2"):
                if relay_id == 0:
                    html.message("alert", BROWSER_ERROR)
                    return
                html.markup(f"Relay <b>{escape(title)}</b> bearbeiten")
            with html.element("dl"):
                with html.element("dt"), html.element("label"):
                    html.text("Beschreibung")
                with html.element("dd"):
                    html.void(
                        "input",
                        type="text",
                        id="description",
                        class_="inputbox",
                        name=RELAY_TITLE,
                        value=title,
                        maxlength=100,
                        size=40,
                    )

        with html.element("fieldset", class_="south"):
            with html.element("button", type="submit", name=BUTTON, value=BUTTON_SUBMIT):
                html.text("Speichern")
            with html.element("button", type="submit", name=BUTTON, value=BUTTON_CANCEL):
                html.text("Abbrechen")