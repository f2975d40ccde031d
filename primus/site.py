"""The web site: login, tab bar, page dispatch, relay switching and file downloads."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

from primus.html import (
    ACTION,
    ACTION_LOGIN,
    BUTTON,
    BUTTON_CANCEL,
    BUTTON_SUBMIT,
    DOWNLOAD,
    DOWNLOAD_SUBJECT,
    DOWNLOAD_SUBJECT_AJAX,
    IMAGES,
    JAVASCRIPT,
    PAGE_PHOENIX,
    PAGE_RELAY,
    PAGE_SERVUS,
    PAGE_SYSTEM_INFORMATION,
    PAGE_THERMA,
    PASSWORD,
    RELAY_STATE,
    RELAY_STATE_DOWN,
    RELAY_STATE_UP,
    SWITCH_RELAY,
    USERNAME,
    ArgumentMissing,
    Html,
    Request,
    build_url,
)
from primus.relay_page import RelayRegistry, relay_page
from primus.servus_page import ServusRegistry, servus_page
from primus.sessions import SessionManager
from primus.system_page import SystemInfo, render_system_information

log = logging.getLogger(__name__)

ROOT_PATH = "/opt/castellum/"

_TABS = (
    (PAGE_SYSTEM_INFORMATION, "Start", "Systeminformation"),
    (PAGE_SERVUS, "Servus", "Servus Systeme"),
    (PAGE_PHOENIX, "Phoenix", "Mobile devices"),
    (PAGE_RELAY, "Relais", "Relaisstation"),
    (PAGE_THERMA, "Therma", "Thermalzone"),
)

_STYLESHEETS = (
    ("layout.css", "screen,projection"),
    ("tabs.css", None),
    ("messages.css", None),
    ("workspace.css", None),
    ("form.css", None),
)


class _Switchable(Protocol):
    def switch_on(self) -> None: ...

    def switch_off(self) -> None: ...

    def switch_over(self) -> None: ...


class _RelayLookup(Protocol):
    def by_id(self, relay_id: int) -> Any: ...


def form_submitted(request: Request) -> bool:
    """Tell whether the request comes from a form's submit button."""
    return request.has_pair(BUTTON, BUTTON_SUBMIT)


def form_cancelled(request: Request) -> bool:
    """Tell whether the request comes from a form's cancel button."""
    return request.has_pair(BUTTON, BUTTON_CANCEL)


def process_relays(request: Request, relays: _RelayLookup) -> None:
    """Switch the relay named in the request, if any.

    An explicit state switches the relay on or off; without a state it is
    toggled.
    """
    try:
        relay_id = request.integer(SWITCH_RELAY)
    except ArgumentMissing:
        return
    relay: _Switchable = relays.by_id(relay_id)
    try:
        state = request.get(RELAY_STATE)
    except ArgumentMissing:
        relay.switch_over()
        return
    if state == RELAY_STATE_DOWN:
        relay.switch_off()
    elif state == RELAY_STATE_UP:
        relay.switch_on()


class Site:
    """Generates every page of the web interface."""

    def __init__(
        self,
        sessions: SessionManager,
        servuses: ServusRegistry,
        relays: RelayRegistry,
        system_info: SystemInfo,
        root_path: str | Path = ROOT_PATH,
    ) -> None:
        self.sessions = sessions
        self.servuses = servuses
        self.relays = relays
        self.system_info = system_info
        self.root_path = Path(root_path)

    def generate(self, request: Request) -> str | bytes:
        """Answer a request: file contents as bytes for downloads, otherwise an HTML page.

        Raises FileNotFoundError for a missing download and PermissionError
        for one outside the root directory.
        """
        if request.has_pair(ACTION, ACTION_LOGIN):
            try:
                password = request.get(PASSWORD)
            except ArgumentMissing:
                log.warning("[WWW] Login from %s without password", request.remote_address)
            else:
                self.sessions.login(request.remote_address, password)
        permitted = self.sessions.permitted(request.remote_address)

        process_relays(request, self.relays)

        if request.page.startswith((JAVASCRIPT, IMAGES)):
            return self._download(request.page)

        html = Html()
        html.markup("<!DOCTYPE html>")
        with html.element("html"):
            self._head(html)
            with html.element("body"):
                if not permitted:
                    with html.element("div", id="content-south"):
                        with html.element("div", class_="inliner"):
                            self.page_login(request, html)
                else:
                    with html.element("div", id="content-north"):
                        with html.element("div", class_="inliner"):
                            self.page_north(request, html)
                    with html.element("div", id="content-south"):
                        with html.element("div", class_="inliner"):
                            self.page_south(request, html)
        return html.render()

    def page_north(self, request: Request, html: Html) -> None:
        """Write the tab bar, marking the tab of the current page as active."""
        page = request.page
        with html.element("div", class_="tabs"):
            with html.element("ul", class_="tabs_list"):
                for tab_page, title, subtitle in _TABS:
                    active = page == tab_page or (
                        tab_page == PAGE_SYSTEM_INFORMATION and not page
                    )
                    with html.element("li", class_="tabs_item active" if active else "tabs_item"):
                        with html.element("a", href=tab_page):
                            with html.element("span", class_="title"):
                                html.text(title)
                            with html.element("span", class_="subtitle"):
                                html.text(subtitle)

    def page_south(self, request: Request, html: Html) -> None:
        """Write the contents of the current tab."""
        page = request.page
        if page == PAGE_SERVUS:
            servus_page(request, html, self.servuses)
        elif page == PAGE_RELAY:
            relay_page(request, html, self.relays)
        else:
            render_system_information(html, self.system_info)

    def page_login(self, request: Request, html: Html) -> None:
        """Write the login form."""
        with html.element(
            "form",
            method="get",
            id="full",
            class_="colloquium",
            name="colloquium",
            action=request.page,
        ):
            html.void("input", type="hidden", name=ACTION, value=ACTION_LOGIN)
            with html.element("fieldset", class_="north"):
                with html.element("h2"):
                    html.text("Anmeldung")
                for label, field_type, field_name in (
                    ("Benutzername", "text", USERNAME),
                    ("Passwort", "password", PASSWORD),
                ):
                    with html.element("dl"):
                        with html.element("dt"), html.element("label"):
                            html.text(label)
                        with html.element("dd"):
                            html.void(
                                "input",
                                type=field_type,
                                id="description",
                                class_="inputbox",
                                name=field_name,
                                value="",
                                maxlength=20,
                                size=20,
                            )
            with html.element("fieldset", class_="south"):
                with html.element("button", type="submit", name=BUTTON, value=BUTTON_SUBMIT):
                    html.text("Login")

    def _head(self, html: Html) -> None:
        with html.element("head"):
            with html.element("title"):
                html.text("Primus")
            html.void("meta", http_equiv="Content-Type", content="text/html; charset=utf-8")
            for name, media in _STYLESHEETS:
                html.void("link", rel="stylesheet", href=name, type="text/css", media=media)
            ajax_url = build_url(DOWNLOAD, {DOWNLOAD_SUBJECT: DOWNLOAD_SUBJECT_AJAX})
            with html.element("script", type="text/javascript", src=ajax_url):
                pass

    def _download(self, page: str) -> bytes:
        root = self.root_path.resolve()
        target = (root / page).resolve()
        if target != root and root not in target.parents:
            raise PermissionError(f"download outside of root: {page}")
        return target.read_bytes()