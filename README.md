# primus

`primus` holds the building blocks of a small home automation hub: the
protocol spoken by field controllers ("servuses"), a background worker that
delivers queued push notifications, and the pages of a web console with
password logins.

## Modules

- **`primus.protocol`** – the text protocol of servuses.
  - `Request` assembles a datagram from received chunks (`push(data)`);
    `is_complete()` tells when the head and the whole payload have arrived,
    and `header(name)` reads a header without regard to case, raising
    `StatementNotFound` when it is absent. Malformed or oversized input
    raises `DatagramError`.
  - `Response` holds a `Status` and headers; `encode()` gives the bytes to
    send.
  - `ProtocolSession.handle(request)` checks that `CSeq` counts up from 1,
    authenticates with `AUTH` (a 36-character authenticator looked up
    through a `ServusDirectory`), and answers `SETUP`, `PLAY`, `NEUTRINO`,
    `AVISO`, `DHT_HUMIDITY`, `DHT_TEMPERATURE` and `DS_TEMPERATURE`. When the
    session has to end it raises `RejectDatagram`, whose `response` is still
    to be sent. An optional `Recorder` receives comments and every
    exchange; `on_aviso` is called after an aviso has been stored.
    `close()` marks the authenticated servus offline.
  - `parse_timestamp(text)` reads seconds since the epoch as a UTC datetime.
- **`primus.notificator`** – `Notificator` takes a `NotificationStore` and a
  push client. `process_pending()` sends every `PendingNotification`,
  marking it rescheduled when sending raises `PushError`, and sent in any
  case. `start()` runs a thread that processes the queue whenever
  `trigger_processing()` is called, or at the latest every
  `refresh_interval` seconds; `stop()` ends it.
- **`primus.sessions`** – `SessionManager` compares the MD5 of a password
  (`md5_hex`) with the configured digest and keeps a `WebSession` per guest
  address until it has been idle longer than the keep-alive time.
- **`primus.html`** – `Request` (page name, query arguments, remote
  address), the `Html` builder with `element`, `void`, `text`, `markup`,
  `message` and `render`, `build_url`, and the names of pages, actions and
  arguments used by the console.
- **`primus.site`** – `Site.generate(request)` handles a login attempt,
  switches a relay named in the request (`process_relays`), returns the
  bytes of files below the root directory for pages starting with `js` or
  `img`, and otherwise renders the login form or the tab bar and the
  current tab as an HTML string.
- **`primus.system_page`**, **`primus.servus_page`**, **`primus.relay_page`**
  – the tabs for system information (`SystemInfo`), servuses (listing,
  details, enabling, defining and renaming through a `ServusRegistry`) and
  relays (states, switching links and renaming through a `RelayRegistry`).

## Web logins

```python
import time

from primus.sessions import SessionManager, md5_hex

password = "password"
manager = SessionManager(md5_hex(password), 600, time.time)

manager.login("192.0.2.10", password)   # True
manager.permitted("192.0.2.10")         # True, and refreshes the session
manager.permitted("192.0.2.99")         # False, no session for this guest
```

A session that has been idle longer than the keep-alive time is dropped the
next time it is checked, and the guest has to log in again.

## What the package does not do

- It installs no command and has no entry point that starts a hub.
- It does not open sockets: there is no listener for servus connections and
  no HTTP server. Feed received bytes into `protocol.Request` and send
  `Response.encode()` yourself; call `Site.generate` from your own web
  server.
- It stores nothing itself. Servuses, relays, avisos, sensor readings and
  queued notifications live behind the `ServusDirectory`, `ServusRegistry`,
  `RelayRegistry` and `NotificationStore` interfaces, which you provide, as
  you do the push client.
- The Phoenix and Therma tabs appear in the tab bar, but selecting them
  shows the system information page.

## Tests

The test suite uses pytest; its requirements are listed in the `test` extra.