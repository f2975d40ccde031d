"""The 'Servus' tab of the web site: list, details, enabling and editing of Servus units."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from html import escape
from typing import Any, Protocol

from primus.html import (
    ACTION,
    ACTION_SERVUS_EDIT,
    ACTION_SERVUS_SAVE,
    ACTION_SERVUS_TOGGLE_ENABLED,
    BUTTON,
    BUTTON_CANCEL,
    BUTTON_SUBMIT,
    SERVUS_ID,
    SERVUS_TITLE,
    ArgumentMissing,
    Html,
    Request,
    build_url,
)

BROWSER_ERROR = "Fehler in Browser!"


class _Servus(Protocol):
    servus_id: int
    title: str
    enabled: bool
    online: bool
    running_since: datetime | None
    authenticator: str

    def toggle_enabled(self) -> None: ...

    def set_title(self, title: str) -> None: ...


class ServusRegistry(Protocol):
    """Storage of the Servus units known to the system."""

    def all(self) -> Sequence[Any]:
        """Return every Servus, in display order."""
        ...

    def by_id(self, servus_id: int) -> Any:
        """Return the Servus with ``servus_id`` or raise LookupError."""
        ...

    def define(self, title: str) -> int:
        """Create a Servus with ``title``; return its id, or 0 on failure."""
        ...


def _form_submitted(request: Request) -> bool:
    return request.has_pair(BUTTON, BUTTON_SUBMIT)


def _minutes(moment: datetime | None) -> str:
    return moment.strftime("%Y-%m-%d %H:%M") if moment is not None else ""


def _action_link(html: Html, url: str, title: str, image: str, label: str) -> None:
    with html.element("a", href=url, title=title):
        html.void("img", src=image, alt=label)
        html.text(f"[{label}]")


def _toggle(request: Request, html: Html, registry: ServusRegistry) -> bool:
    """Flip the enabled flag of the selected Servus; False if the request is broken."""
    try:
        servus_id = request.integer(SERVUS_ID)
    except ArgumentMissing:
        html.message("alert", BROWSER_ERROR)
        return False
    servus = registry.by_id(servus_id)
    servus.toggle_enabled()
    title = escape(servus.title)
    if servus.enabled:
        html.message(
            "info",
            f"Servus <b>{title}</b> wurde <u>aktiviert</u>. "
            "Logins von diesem Servus werden künftig akzeptiert.",
        )
    else:
        html.message(
            "info",
            f"Servus <b>{title}</b> wurde <u>deaktiviert</u>. "
            "Logins von diesem Servus werden künftig abgelehnt.",
        )
    return True


def _save(request: Request, html: Html, registry: ServusRegistry) -> bool:
    """Store a submitted edit form; False if the page must not go on."""
    try:
        servus_id = request.integer(SERVUS_ID)
    except ArgumentMissing:
        servus_id = None

    if servus_id is not None:
        try:
            title = request.get(SERVUS_TITLE)
            if not title:
                raise ArgumentMissing(SERVUS_TITLE)
        except ArgumentMissing:
            html.message("alert", BROWSER_ERROR)
            return False
        registry.by_id(servus_id).set_title(title)
        return True

    try:
        title = request.get(SERVUS_TITLE)
        if not title:
            raise ArgumentMissing(SERVUS_TITLE)
    except ArgumentMissing:
        html.message("error", "Servus konnte nicht definiert werden!")
        html.message("notice", "Beschreibung fehlt!")
        servus_edit_form(request, html, registry)
        return False
    if registry.define(title) != 0:
        html.message("success", "Neuer Servus wurde definiert.")
    else:
        html.message("error", "Servus konnte nicht definiert werden!")
    return True


def servus_page(request: Request, html: Html, registry: ServusRegistry) -> None:
    """Process the Servus tab's actions and write the tab into ``html``."""
    if request.has_pair(ACTION, ACTION_SERVUS_TOGGLE_ENABLED):
        if not _toggle(request, html, registry):
            return

    if request.has_pair(ACTION, ACTION_SERVUS_EDIT):
        servus_edit_form(request, html, registry)
        return

    if _form_submitted(request) and request.has_pair(ACTION, ACTION_SERVUS_SAVE):
        if not _save(request, html, registry):
            return

    with html.element("div", class_="workspace"):
        servus_info(request, html, registry)
        servus_list(request, html, registry)


def servus_info(request: Request, html: Html, registry: ServusRegistry) -> None:
    """Show the details of the selected Servus; nothing if none is selected."""
    try:
        servus_id = request.integer(SERVUS_ID)
    except ArgumentMissing:
        return
    servus = registry.by_id(servus_id)

    with html.element("div", id="full", class_="slice"):
        with html.element("h2"):
            html.markup(f"Servus <b>{escape(servus.title)}</b>")
        with html.element("table"), html.element("tbody"):
            with html.element("tr"):
                with html.element("th"):
                    html.text("Anmeldestatus:")
                with html.element("td"):
                    html.text("Anmeldungen zugelassen" if servus.enabled else "Gesperrt")
            with html.element("tr"):
                with html.element("th"):
                    html.text("Online-Status:")
                with html.element("td"):
                    if servus.online:
                        html.text(
                            "Mit Primus verbunden (Servus läuft seit "
                            f"{_minutes(servus.running_since)})"
                        )
                    else:
                        html.text("Nicht verbunden")
            with html.element("tr"):
                with html.element("th"):
                    html.text("Authenticator:")
                with html.element("td"):
                    html.text(servus.authenticator)


def servus_list(request: Request, html: Html, registry: ServusRegistry) -> None:
    """Show the table of all Servus units with their controls."""
    page = request.page
    with html.element("div", id="full", class_="slice"):
        with html.element("h2"):
            html.text("Servuses")

        with html.element("div", class_="controls"), html.element("div", class_="button"):
            with html.element(
                "a",
                href=build_url(page, {ACTION: ACTION_SERVUS_EDIT}),
                title="Neuen Servus erstellen.",
            ):
                html.void("img", src="img/new.png", alt="Definieren")
                with html.element("span"):
                    html.text("Definieren")

        with html.element("table"):
            with html.element("thead"), html.element("tr"):
                for heading in ("Bezeichnung", "Enabled", "Online", "Authenticator"):
                    with html.element("td"):
                        html.text(heading)
                with html.element("td", colspan=3):
                    pass

            with html.element("tbody"):
                for servus in registry.all():
                    _servus_row(html, page, servus)


def _servus_row(html: Html, page: str, servus: _Servus) -> None:
    with html.element("tr"):
        with html.element("td", class_="label"):
            html.text(servus.title)
        with html.element("td", class_="green" if servus.enabled else "red"):
            html.text("Enabled" if servus.enabled else "Disabled")
        with html.element("td", class_="green" if servus.online else "red"):
            html.text("Online" if servus.online else "Offline")
        with html.element("td", class_="dump"):
            html.text(servus.authenticator)

        with html.element("td", class_="action"):
            _action_link(
                html,
                build_url(page, {SERVUS_ID: servus.servus_id}),
                "Mehr Details.",
                "img/details.png",
                "Details",
            )
        with html.element("td", class_="action"):
            _action_link(
                html,
                build_url(page, [(ACTION, ACTION_SERVUS_EDIT), (SERVUS_ID, servus.servus_id)]),
                "Bearbeiten.",
                "img/edit.png",
                "Bearbeiten",
            )
        with html.element("td", class_="action"):
            toggle_url = build_url(
                page, [(ACTION, ACTION_SERVUS_TOGGLE_ENABLED), (SERVUS_ID, servus.servus_id)]
            )
            if servus.enabled:
                _action_link(html, toggle_url, "Deaktivieren.", "img/disable.png", "Deaktivieren")
            else:
                _action_link(html, toggle_url, "Aktivieren.", "img/enable.png", "Aktivieren")


def servus_edit_form(request: Request, html: Html, registry: ServusRegistry) -> None:
    """Write the form to define a new Servus or rename the selected one."""
    try:
        servus_id = request.integer(SERVUS_ID)
    except ArgumentMissing:
        servus_id = 0

    title = registry.by_id(servus_id).title if servus_id != 0 else ""

    with html.element(
        "form",
        method="get",
        id="full",
        class_="colloquium",
        name="colloquium",
        action=request.page,
    ):
        html.void("input", type="hidden", name=ACTION, value=ACTION_SERVUS_SAVE)
        if servus_id != 0:
            html.void("input", type="hidden", name=SERVUS_ID, value=servus_id)

        with html.element("fieldset", class_="north"):
            with html.element("h2"):
                html.text("Neuen Servus definieren" if servus_id == 0 else "Servus bearbeiten")
            with html.element("dl"):
                with html.element("dt"), html.element("label"):
                    html.text("Beschreibung")
                with html.element("dd"):
                    html.void(
                        "input",
                        type="text",
                        id="description",
                        class_="inputbox",
                        name=SERVUS_TITLE,
                        value=title,
                        maxlength=100,
                        size=40,
                    )

        with html.element("fieldset", class_="south"):
            with html.element("button", type="submit", name=BUTTON, value=BUTTON_SUBMIT):
                html.text("Speichern")
            with html.element("button", type="submit", name=BUTTON, value=BUTTON_CANCEL):
                html.text("Abbrechen")