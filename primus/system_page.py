"""The 'System Information' tab of the web site."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from html import escape

from primus.html import Html


@dataclass
class SystemInfo:
    """Everything the system information page shows."""

    software_version: str
    started: datetime
    configuration_file_path: str
    server_key: str
    interface_address: str
    http_port: int
    servus_port_ipv4: int
    servus_port_ipv6: int
    phoenix_port_ipv4: int
    phoenix_port_ipv6: int
    apns_certificate: str
    apns_sandbox: bool


def _row(html: Html, label: str, value: str) -> None:
    with html.element("tr"):
        with html.element("th"):
            html.text(label)
        with html.element("td"):
            html.text(value)


def render_system_information(html: Html, info: SystemInfo) -> None:
    """Write the system information page into ``html``."""
    with html.element("div", class_="workspace"):
        with html.element("div", id="full", class_="slice"):
            with html.element("h2"):
                html.text("Server-Key")
            with html.element("table"), html.element("tbody"):
                with html.element("tr"):
                    with html.element("th"):
                        html.text("Öffentlicher Customer-Key:")
                    with html.element("td"):
                        html.markup(f"<strong>{escape(info.server_key)}</strong>")
                _row(
                    html,
                    "Verrechnungsbasis:",
                    f"{info.interface_address}:{info.phoenix_port_ipv4}",
                )

        with html.element("div", id="full", class_="slice"):
            with html.element("h2"):
                html.text("System information")
            with html.element("table"):
                with html.element("caption"):
                    html.text("Software")
                with html.element("tbody"):
                    _row(html, "Version:", info.software_version)
                    _row(html, "Läuft seit:", info.started.strftime("%Y-%m-%d %H:%M"))
                    _row(html, "Konfigurationsdatei:", info.configuration_file_path)
                    mode = "Development" if info.apns_sandbox else "Deployment"
                    _row(html, "APNS SSL-Zertifikat:", f"{info.apns_certificate} ({mode})")
            with html.element("table"):
                with html.element("caption"):
                    html.text("Netzwerkeinstellungen")
                with html.element("tbody"):
                    _row(html, "Webseite TCP Portnummer (IPv4):", str(info.http_port))
                    _row(html, "Servus TCP Portnummer (IPv4):", str(info.servus_port_ipv4))
                    _row(html, "Servus TCP Portnummer (IPv6):", str(info.servus_port_ipv6))
                    _row(
                        html, "Anticipator TCP Portnummer (IPv4):", str(info.phoenix_port_ipv4)
                    )
                    _row(
                        html, "Anticipator TCP Portnummer (IPv6):", str(info.phoenix_port_ipv6)
                    )