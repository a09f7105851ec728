"""Playback sessions: run mpv on an active item and reconcile its progress.

A session promotes the url to the active set, starts mpv at the stored
resume position, watches position, duration and title over mpv's control
socket, and once mpv exits decides whether the item was watched to the end
(removed from the active set) or interrupted (progress saved for resuming).
"""

import logging
import os
import subprocess
import tempfile
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..db.repository import CatalogStoreInterface
from ..schemas import ActiveItem
from .mpv_ipc import MpvIpcClient, build_mpv_args

logger = logging.getLogger(__name__)

# mpv often stops slightly short of the nominal end
END_DETECTION_TOLERANCE_SECS = 1.0

SOCKET_POLL_INTERVAL_SECS = 0.1

OBSERVED_PROPERTIES = ("playback-time", "duration", "media-title")


class PlaybackError(Exception):
    """The player's control channel could not be established."""


class PlaybackState(str, Enum):
    NOT_STARTED = "not_started"
    LAUNCHING = "launching"
    OBSERVING = "observing"
    FINISHED = "finished"
    INTERRUPTED = "interrupted"


@dataclass
class ObservedProgress:
    """Player state gathered from property-change events, not yet persisted."""

    position_secs: Optional[float] = None
    duration_secs: Optional[float] = None
    title: Optional[str] = None

    def apply(self, event: Dict[str, Any]) -> None:
        """Update the field named by a property-change event. Other events are ignored."""
        if event.get("event") != "property-change":
            return
        data = event.get("data")
        if data is None:
            return

        name = event.get("name")
        if name == "playback-time":
            self.position_secs = float(data)
        elif name == "duration":
            self.duration_secs = float(data)
        elif name == "media-title" and isinstance(data, str):
            self.title = data


@dataclass
class PlaybackResult:
    """Terminal outcome of one playback session."""

    url: str
    state: PlaybackState
    position_secs: Optional[float] = None
    duration_secs: Optional[float] = None
    title: Optional[str] = None


def is_finished(
    position_secs: Optional[float],
    duration_secs: Optional[float],
    tolerance: float = END_DETECTION_TOLERANCE_SECS,
) -> bool:
    """True if both values are known and the position is within `tolerance` of the end."""
    if position_secs is None or duration_secs is None:
        return False
    return position_secs >= duration_secs - tolerance


def reconcile(
    store: CatalogStoreInterface,
    active: ActiveItem,
    observed: ObservedProgress,
    tolerance: float = END_DETECTION_TOLERANCE_SECS,
) -> PlaybackState:
    """
    Persist the outcome of a finished player run.

    A fully watched item is removed from the active set. Otherwise the last
    known position and duration are saved, and the player's title is kept if
    the item had none (a feed-provided title is never overwritten).

    Returns:
        PlaybackState: `FINISHED` or `INTERRUPTED`.
    """
    if is_finished(observed.position_secs, observed.duration_secs, tolerance):
        store.remove_active(active.url)
        logger.info(f"Finished: {active.title or active.url}")
        return PlaybackState.FINISHED

    if observed.position_secs is not None:
        store.set_position(active.url, observed.position_secs)
    if observed.duration_secs is not None:
        store.set_duration(active.url, observed.duration_secs)
    if observed.title and not active.title:
        store.set_title(active.url, observed.title)

    logger.info(
        f"Interrupted: {active.title or observed.title or active.url} "
        f"at {observed.position_secs or active.position_secs:.1f}s"
    )
    return PlaybackState.INTERRUPTED


class PlaybackSession:
    """One run of mpv against one url.

    Example:
        session = PlaybackSession(store, "https://example.com/video", mpv_binary="mpv")
        result = session.run()
        print(result.state)
    """

    def __init__(
        self,
        store: CatalogStoreInterface,
        url: str,
        mpv_binary: str = "mpv",
        tolerance: float = END_DETECTION_TOLERANCE_SECS,
        poll_interval: float = SOCKET_POLL_INTERVAL_SECS,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
        connect: Callable[[str], MpvIpcClient] = MpvIpcClient.connect,
    ):
        """Initialize the session.

        Args:
            store: Catalog store holding the active item
            url: Item to play
            mpv_binary: Path or name of the mpv executable
            tolerance: Seconds before the end at which an item counts as watched
            poll_interval: Delay between checks for the control socket
            popen: Process factory
            connect: Control socket client factory
        """
        self.store = store
        self.url = url
        self.mpv_binary = mpv_binary
        self.tolerance = tolerance
        self.poll_interval = poll_interval
        self._popen = popen
        self._connect = connect
        self.state = PlaybackState.NOT_STARTED

    def run(self) -> PlaybackResult:
        """Play the item to completion and persist the outcome.

        Returns:
            PlaybackResult with a terminal state

        Raises:
            PlaybackError: If mpv cannot be started or its control socket never becomes usable
        """
        self.state = PlaybackState.LAUNCHING
        active = self.store.promote(self.url)
        observed = ObservedProgress()

        with tempfile.TemporaryDirectory(prefix="uvp-") as tmp_dir:
            ipc_path = os.path.join(tmp_dir, "mpv.pipe")
            args = build_mpv_args(self.mpv_binary, active.url, ipc_path, active.position_secs)
            logger.info(f"Starting player for {active.title or active.url} at {active.position_secs:.1f}s")
            try:
                process = self._popen(args)
            except OSError as e:
                raise PlaybackError(f"Could not start player {self.mpv_binary}: {e}") from e

            try:
                client = self._open_channel(process, ipc_path)
            except PlaybackError:
                if process.poll() is None:
                    process.terminate()
                process.wait()
                raise

            self.state = PlaybackState.OBSERVING
            try:
                for observer_id, name in enumerate(OBSERVED_PROPERTIES):
                    client.observe_property(observer_id, name)
                for event in client.events():
                    observed.apply(event)
            except OSError as e:
                # The player went away mid-stream; keep what was observed so far
                logger.warning(f"Lost player control socket: {e}")
            finally:
                client.close()

            return_code = process.wait()
            logger.debug(f"Player exited with code {return_code}")

        self.state = reconcile(self.store, active, observed, self.tolerance)
        return PlaybackResult(
            url=active.url,
            state=self.state,
            position_secs=observed.position_secs,
            duration_secs=observed.duration_secs,
            title=observed.title,
        )

    def _open_channel(self, process: subprocess.Popen, ipc_path: str) -> MpvIpcClient:
        """Wait for mpv to create its control socket, then connect to it."""
        while not os.path.exists(ipc_path):
            return_code = process.poll()
            if return_code is not None:
                raise PlaybackError(
                    f"Player exited with code {return_code} before opening its control socket"
                )
            time.sleep(self.poll_interval)

        try:
            return self._connect(ipc_path)
        except OSError as e:
            raise PlaybackError(f"Could not connect to player control socket: {e}") from e
