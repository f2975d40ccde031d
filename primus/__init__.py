"""Home automation hub library: servus protocol, notification queue and web console pages."""

__version__ = "0.1.0"