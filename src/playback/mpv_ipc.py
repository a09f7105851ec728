"""Minimal client for mpv's JSON IPC protocol.

mpv listens on a local Unix socket (``--input-ipc-server``) and speaks
newline-delimited JSON: commands go in as ``{"command": [...]}`` and
property changes come back asynchronously as ``property-change`` events.
"""

import json
import logging
import socket
from typing import Any, Dict, Iterator, List

logger = logging.getLogger(__name__)


class MpvIpcClient:
    """Connection to one mpv instance's control socket."""

    def __init__(self, sock: socket.socket):
        self._sock = sock
        self._reader = sock.makefile("rb")
        self._request_id = 0

    @classmethod
    def connect(cls, path: str, timeout: float = 2.0) -> "MpvIpcClient":
        """Connect to the socket at `path`.

        The timeout only bounds the connect; reads afterwards block until mpv
        sends something or exits.

        Raises:
            OSError: If the socket cannot be connected
        """
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.settimeout(timeout)
            sock.connect(path)
            sock.settimeout(None)
        except OSError:
            sock.close()
            raise
        return cls(sock)

    def command(self, *args: Any) -> int:
        """Send a command and return its request id. Replies arrive among the events."""
        self._request_id += 1
        payload = {"command": list(args), "request_id": self._request_id}
        self._sock.sendall((json.dumps(payload) + "\n").encode("utf-8"))
        return self._request_id

    def observe_property(self, observer_id: int, name: str) -> int:
        return self.command("observe_property", observer_id, name)

    def events(self) -> Iterator[Dict[str, Any]]:
        """Yield events until mpv closes the connection.

        Command replies and lines that are not valid JSON are skipped.
        """
        for line in self._reader:
            try:
                message = json.loads(line)
            except ValueError:
                logger.debug(f"Ignoring malformed IPC line: {line!r}")
                continue
            if "event" in message:
                yield message
            elif message.get("error") not in (None, "success"):
                logger.warning(f"mpv rejected request {message.get('request_id')}: {message['error']}")

    def close(self) -> None:
        try:
            self._reader.close()
        finally:
            self._sock.close()


def build_mpv_args(mpv_binary: str, url: str, ipc_path: str, start_secs: float) -> List[str]:
    """Command line that plays `url` from `start_secs` with a control socket at `ipc_path`."""
    return [
        mpv_binary,
        url,
        f"--input-ipc-server={ipc_path}",
        f"--start=+{start_secs}",
        "--force-window=immediate",
    ]
