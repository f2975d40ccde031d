"""Request arguments, page constants and a small HTML builder for the web site."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from html import escape
from urllib.parse import urlencode

PAGE_SYSTEM_INFORMATION = "sysinfo"
PAGE_SERVUS = "servus"
PAGE_PHOENIX = "phoenix"
PAGE_RELAY = "relay"
PAGE_THERMA = "therma"

JAVASCRIPT = "js"
IMAGES = "img"
DOWNLOAD = "download"
DOWNLOAD_SUBJECT = "subject"
DOWNLOAD_SUBJECT_AJAX = "ajax.js"

SWITCH_RELAY = "switch_relay"
RELAY_STATE = "relay_state"
RELAY_STATE_DOWN = "down"
RELAY_STATE_UP = "up"

ACTION = "action"
ACTION_LOGIN = "login"
ACTION_SERVUS_TOGGLE_ENABLED = "servus_toggle"
ACTION_SERVUS_EDIT = "servus_edit"
ACTION_SERVUS_SAVE = "servus_save"
ACTION_PHOENIX_EDIT = "phoenix_edit"
ACTION_PHOENIX_SAVE = "phoenix_save"
ACTION_PHOENIX_REMOVE = "phoenix_remove"
ACTION_PHOENIX_REMOVE_CONFIRMED = "phoenix_remove_confirmed"
ACTION_ACTIVATOR_EDIT = "activator_edit"
ACTION_ACTIVATOR_SAVE = "activator_save"
ACTION_THERMA_EDIT = "therma_edit"
ACTION_THERMA_SAVE = "therma_save"
ACTION_THERMA_DIAGRAM = "therma_diagram"
# The relay tab shares its action names with the therma tab.
ACTION_RELAY_EDIT = "therma_edit"
ACTION_RELAY_SAVE = "therma_save"

BUTTON = "button"
BUTTON_SUBMIT = "submit"
BUTTON_CANCEL = "cancel"

USERNAME = "username"
PASSWORD = "password"

SERVUS_ID = "servus_id"
SERVUS_TITLE = "servus_title"

PHOENIX_ID = "phoenix_id"
PHOENIX_TITLE = "phoenix_title"

ACTIVATOR_ID = "activator_id"
ACTIVATION_CODE = "activation_code"
ACTIVATOR_TITLE = "activator_title"

THERMA_ID = "therma_id"
THERMA_TITLE = "therma_title"

RELAY_ID = "relay_id"
RELAY_TITLE = "relay_title"

MESSAGE_KINDS = frozenset({"info", "notice", "success", "error", "alert"})


class ArgumentMissing(KeyError):
    """A request argument is absent or cannot be read as asked."""


@dataclass
class Request:
    """An HTTP request as the site sees it: page name, query arguments, guest."""

    page: str = ""
    arguments: Mapping[str, str] = field(default_factory=dict)
    remote_address: str = ""

    def has_pair(self, key: str, value: str) -> bool:
        """Tell whether the argument ``key`` is present with exactly ``value``."""
        return self.arguments.get(key) == value

    def get(self, key: str) -> str:
        """Return the argument ``key`` or raise ArgumentMissing."""
        try:
            return self.arguments[key]
        except KeyError:
            raise ArgumentMissing(key) from None

    def integer(self, key: str) -> int:
        """Return the argument ``key`` as a non-negative integer."""
        raw = self.get(key).strip()
        if not raw.isdigit():
            raise ArgumentMissing(key)
        return int(raw)


def _attributes(attributes: Mapping[str, object]) -> str:
    rendered = []
    for name, value in attributes.items():
        if value is None or value is False:
            continue
        name = name.rstrip("_").replace("_", "-")
        if value is True:
            rendered.append(f" {name}")
        else:
            rendered.append(f' {name}="{escape(str(value), quote=True)}"')
    return "".join(rendered)


class Html:
    """Accumulates an HTML document from nested elements and text."""

    def __init__(self) -> None:
        self._parts: list[str] = []
        self._open: list[str] = []

    @contextmanager
    def element(self, tag: str, **kwargs: object) -> Iterator[Html]:
        """Open ``tag`` with the given attributes and close it on exit.

        A trailing underscore is stripped from attribute names (``class_``),
        other underscores become hyphens; None and False are left out.
        """
        self._parts.append(f"<{tag}{_attributes(kwargs)}>")
        self._open.append(tag)
        try:
            yield self
        finally:
            self._open.pop()
            self._parts.append(f"</{tag}>")

    def void(self, tag: str, **kwargs: object) -> None:
        """Emit an element that has no content, such as ``br`` or ``img``."""
        self._parts.append(f"<{tag}{_attributes(kwargs)} />")

    def text(self, text: str) -> None:
        """Emit text, escaping markup characters."""
        self._parts.append(escape(text, quote=False))

    def markup(self, markup: str) -> None:
        """Emit trusted markup verbatim."""
        self._parts.append(markup)

    def message(self, kind: str, text: str) -> None:
        """Emit a message box of one of the kinds in MESSAGE_KINDS; text is markup."""
        if kind not in MESSAGE_KINDS:
            raise ValueError(f"unknown message kind: {kind!r}")
        with self.element("div", class_=f"message {kind}"):
            self.markup(text)

    def render(self) -> str:
        """Return the document; every element must have been closed."""
        if self._open:
            raise RuntimeError(f"unclosed element: {self._open[-1]}")
        return "".join(self._parts)


def build_url(page: str, params: Mapping[str, object] | Iterable[tuple[str, object]]) -> str:
    """Return ``page`` followed by the query string of ``params``, if any."""
    pairs = list(params.items()) if isinstance(params, Mapping) else list(params)
    if not pairs:
        return page
    return f"{page}?{urlencode([(key, str(value)) for key, value in pairs])}"