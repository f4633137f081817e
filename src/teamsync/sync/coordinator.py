"""
Sync coordinator for TeamSync.

Owns the reconciliation loop between the local replica and the central
copy: bootstrap, periodic polling, local-update subscription and the single
write path every entity handler goes through.
"""

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Union

from .merge import is_newer, merge_remote, next_timestamp
from .store import StateStore
from ..access import AccessScopeResolver, report_overdue, unread_count
from ..models import (
    LLMConfig,
    Meeting,
    Note,
    Snapshot,
    Team,
    User,
    WeeklyReport,
    WorkingGroup,
)
from ..notify import ChangeNotifier, mark_all_read, mark_read
from ..transport import WorkspaceTransport
from ..utils.config import SyncConfig
from ..utils.errors import StorageError, TeamSyncError, ValidationError, error_context
from ..utils.logging import get_logger


logger = get_logger("teamsync.sync.coordinator")

Updater = Callable[[Snapshot], Snapshot]


class CoordinatorState(Enum):
    """Coordinator lifecycle states."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class SyncError(TeamSyncError):
    """Raised for coordinator lifecycle misuse."""
    code = "SYNC_ERROR"
    default_message = "Sync coordinator error"


def _replace_by_id(items, item):
    return tuple(item if i.id == item.id else i for i in items)


def _upsert_by_id(items, item):
    if any(i.id == item.id for i in items):
        return _replace_by_id(items, item)
    return items + (item,)


def _remove_by_id(items, item_id: str):
    return tuple(i for i in items if i.id != item_id)


def _append_unique(items, item, field: str):
    if any(i.id == item.id for i in items):
        raise ValidationError(field, item.id, "must be unique")
    return items + (item,)


class SyncCoordinator:
    """
    Reconciles the local replica with the central copy.

    Remote snapshots are adopted only when strictly newer than the snapshot
    held at the moment the fetch resolves, and always keep this client's
    session fields. Local writes go through ``apply_mutation`` which stamps,
    persists, installs and then pushes in the background.

    Snapshot changes are broadcast by ``store.subscribe``. Events (see
    ``register_event_handler``) cover the coordinator's own status:
        connectivity: the online flag changed, ``{"online"}``
        data_updated: the transient remote-update signal changed, ``{"active"}``
    """

    def __init__(
        self,
        transport: WorkspaceTransport,
        config: Optional[SyncConfig] = None,
        store: Optional[StateStore] = None,
        notifier: Optional[ChangeNotifier] = None,
        resolver: Optional[AccessScopeResolver] = None,
    ):
        self.transport = transport
        self.config = config or SyncConfig()
        self.store = store or StateStore()
        self.notifier = notifier or ChangeNotifier(id_factory=transport.generate_id)
        self.resolver = resolver or AccessScopeResolver()
        self.state = CoordinatorState.IDLE

        self._online = False
        self._last_sync_time: Optional[datetime] = None
        self._data_updated = False
        self._data_updated_handle: Optional[asyncio.TimerHandle] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._push_tasks: Set[asyncio.Task] = set()
        self._unsubscribe_local: Optional[Callable[[], None]] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._event_handlers: Dict[str, List[Callable]] = {}

    # Read-side surface

    @property
    def snapshot(self) -> Snapshot:
        return self.store.get()

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def last_sync_time(self) -> Optional[datetime]:
        return self._last_sync_time

    @property
    def data_updated(self) -> bool:
        return self._data_updated

    @property
    def is_running(self) -> bool:
        return self.state == CoordinatorState.RUNNING

    def view(self) -> Snapshot:
        """The installed snapshot as the logged-in user may see it."""
        return self.resolver.resolve(self.store.get())

    def unread_count(self) -> int:
        return unread_count(self.view())

    def report_overdue(self, now: Optional[datetime] = None) -> bool:
        return report_overdue(self.view(), now)

    # Lifecycle

    async def bootstrap(self) -> Snapshot:
        """
        Install the local replica, then reconcile once with the central copy.

        The merged result is written back to the local replica whether or
        not the central copy was newer.
        """
        with error_context("sync", "bootstrap"):
            local = self.transport.load_local()
            self._install(local, source="local")
            logger.info("bootstrap_local_loaded", last_updated=local.last_updated)

            remote = await self.transport.fetch_remote()
            self._set_online(remote is not None)

            if remote is not None:
                self._last_sync_time = datetime.now(timezone.utc)
                merged = merge_remote(self.store.get(), remote)
                if merged is not None:
                    logger.info(
                        "snapshot_adopted",
                        source="remote",
                        previous=self.store.get().last_updated,
                        last_updated=merged.last_updated
                    )
                    self._install(merged, source="remote")

            snapshot = self.store.get()
            self._persist_quietly(snapshot)
            return snapshot

    async def poll(self) -> bool:
        """
        One reconciliation tick. Returns True when a newer snapshot was installed.
        """
        remote = await self.transport.fetch_remote()
        if remote is None:
            self._set_online(False)
            logger.debug("poll_failed")
            return False

        self._set_online(True)
        self._last_sync_time = datetime.now(timezone.utc)

        # Compare against what is held now, not what was held when the fetch began
        merged = merge_remote(self.store.get(), remote)
        if merged is None:
            return False

        logger.info(
            "snapshot_adopted",
            source="remote",
            previous=self.store.get().last_updated,
            last_updated=merged.last_updated
        )
        self._persist_quietly(merged)
        self._install(merged, source="remote")
        self._raise_data_updated()
        return True

    async def start(self) -> None:
        """Start the poll loop and the local-update subscription."""
        if self.is_running:
            raise SyncError("Sync coordinator already running")

        self._loop = asyncio.get_running_loop()
        self._poll_task = asyncio.create_task(self._poll_loop())
        self._unsubscribe_local = self.transport.subscribe_local_updates(
            self._local_update_threadsafe
        )
        self.state = CoordinatorState.RUNNING
        logger.info("sync_started", poll_interval=self.config.poll_interval)

    async def stop(self) -> None:
        """Cancel polling, unsubscribe, clear transient signals and close the transport."""
        if not self.is_running:
            logger.warning("stop_called_when_not_running", state=self.state.value)
            return

        self.state = CoordinatorState.STOPPING

        if self._poll_task:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

        if self._unsubscribe_local:
            self._unsubscribe_local()
            self._unsubscribe_local = None

        for task in list(self._push_tasks):
            if not task.done():
                task.cancel()
        if self._push_tasks:
            await asyncio.gather(*self._push_tasks, return_exceptions=True)
        self._push_tasks.clear()

        self._clear_data_updated()
        await self.transport.close()

        self.state = CoordinatorState.STOPPED
        logger.info("sync_stopped")

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.poll_interval)
            try:
                await self.poll()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("poll_loop_error", error=str(e), exc_info=True)

    # Write path

    def apply_mutation(self, updater: Updater, push: Optional[bool] = None) -> Snapshot:
        """
        Apply ``updater`` to the installed snapshot and commit the result.

        The result is stamped with a ``last_updated`` strictly greater than
        the previous one, persisted locally, installed and then pushed to
        the central copy in the background. If ``updater`` raises, the error
        propagates and nothing is persisted or installed.
        """
        current = self.store.get()
        try:
            updated = updater(current)
        except Exception as e:
            logger.error("mutation_failed", error=str(e), exc_info=True)
            raise

        stamped = updated.evolve(last_updated=next_timestamp(current.last_updated))
        self.transport.save_local(stamped)
        self._install(stamped, source="mutation")
        logger.debug("mutation_committed", last_updated=stamped.last_updated)

        if self.config.push_on_mutation if push is None else push:
            self._schedule_push(stamped)
        return stamped

    def _schedule_push(self, snapshot: Snapshot) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("push_skipped_no_loop", last_updated=snapshot.last_updated)
            return

        task = loop.create_task(self._push(snapshot))
        self._push_tasks.add(task)
        task.add_done_callback(self._push_tasks.discard)

    async def _push(self, snapshot: Snapshot) -> None:
        timestamp = await self.transport.push_remote(snapshot)
        if timestamp is None:
            self._set_online(False)
            logger.warning("push_failed", last_updated=snapshot.last_updated)
            return

        self._set_online(True)
        logger.debug("push_completed", timestamp=timestamp)

        # Take on the server stamp only while nothing newer has been written
        # locally, so the next poll does not report our own write as new.
        held = self.store.get()
        if held is snapshot and timestamp > held.last_updated:
            restamped = held.evolve(last_updated=timestamp)
            self._persist_quietly(restamped)
            self._install(restamped, source="push")

    # Session

    async def login(self, user: User) -> Snapshot:
        """Start a session for ``user`` on the freshest snapshot available."""
        with error_context("sync", "login", user_id=user.id):
            remote = await self.transport.fetch_remote()
            self._set_online(remote is not None)

            current = self.store.get()
            base = remote if remote is not None else current
            if base.find_user(user.id) is None:
                raise ValidationError("user", user.id, "must exist in the workspace")

            snapshot = base.evolve(
                current_user_id=user.id,
                last_updated=next_timestamp(max(base.last_updated, current.last_updated)),
            )
            self.transport.save_local(snapshot)

        self._clear_data_updated()
        self._install(snapshot, source="login")
        logger.info("user_logged_in", user_id=user.id)
        return snapshot

    def logout(self) -> Snapshot:
        snapshot = self.apply_mutation(lambda s: s.evolve(current_user_id=None))
        self._clear_data_updated()
        logger.info("user_logged_out")
        return snapshot

    # Entity handlers

    def add_user(self, user: User) -> Snapshot:
        return self.apply_mutation(
            lambda s: s.evolve(users=_append_unique(s.users, user, "user.id"))
        )

    def update_user(self, user: User) -> Snapshot:
        return self.apply_mutation(lambda s: s.evolve(users=_replace_by_id(s.users, user)))

    def delete_user(self, user_id: str) -> Snapshot:
        return self.apply_mutation(lambda s: s.evolve(users=_remove_by_id(s.users, user_id)))

    def update_user_password(self, user_id: str, password: str) -> Snapshot:
        """Store a password on the user record; credentials are never checked here."""
        def updater(s: Snapshot) -> Snapshot:
            return s.evolve(users=tuple(
                u.evolve(extra={**u.extra, "password": password}) if u.id == user_id else u
                for u in s.users
            ))
        return self.apply_mutation(updater)

    def add_team(self, team: Team) -> Snapshot:
        return self.apply_mutation(
            lambda s: s.evolve(teams=_append_unique(s.teams, team, "team.id"))
        )

    def update_team(self, team: Team) -> Snapshot:
        """Save a team as edited through a (possibly filtered) view."""
        return self.apply_mutation(lambda s: self.notifier.apply_team_update(s, team))

    def delete_team(self, team_id: str) -> Snapshot:
        return self.apply_mutation(lambda s: s.evolve(teams=_remove_by_id(s.teams, team_id)))

    def update_report(self, report: WeeklyReport) -> Snapshot:
        return self.apply_mutation(lambda s: self.notifier.apply_report_update(s, report))

    def update_meeting(self, meeting: Meeting) -> Snapshot:
        return self.apply_mutation(
            lambda s: s.evolve(meetings=_upsert_by_id(s.meetings, meeting))
        )

    def delete_meeting(self, meeting_id: str) -> Snapshot:
        return self.apply_mutation(
            lambda s: s.evolve(meetings=_remove_by_id(s.meetings, meeting_id))
        )

    def update_note(self, note: Note) -> Snapshot:
        return self.apply_mutation(lambda s: s.evolve(notes=_upsert_by_id(s.notes, note)))

    def delete_note(self, note_id: str) -> Snapshot:
        return self.apply_mutation(lambda s: s.evolve(notes=_remove_by_id(s.notes, note_id)))

    def update_group(self, group: WorkingGroup) -> Snapshot:
        return self.apply_mutation(
            lambda s: s.evolve(working_groups=_upsert_by_id(s.working_groups, group))
        )

    def delete_group(self, group_id: str) -> Snapshot:
        return self.apply_mutation(
            lambda s: s.evolve(working_groups=_remove_by_id(s.working_groups, group_id))
        )

    def update_llm_config(self, llm_config: LLMConfig,
                          prompts: Optional[Dict[str, str]] = None) -> Snapshot:
        return self.apply_mutation(lambda s: s.evolve(
            llm_config=llm_config,
            prompts=dict(prompts) if prompts is not None else s.prompts,
        ))

    def toggle_theme(self) -> Snapshot:
        return self.apply_mutation(
            lambda s: s.evolve(theme="dark" if s.theme == "light" else "light")
        )

    def mark_notification_read(self, notification_id: str) -> Snapshot:
        return self.apply_mutation(lambda s: mark_read(s, notification_id))

    def mark_all_notifications_read(self) -> Snapshot:
        return self.apply_mutation(mark_all_read)

    def import_state(self, imported: Union[Snapshot, Dict[str, Any]]) -> Snapshot:
        """Replace the workspace content with an imported document, keeping the session."""
        if not isinstance(imported, Snapshot):
            imported = Snapshot.from_dict(imported)
        return self.apply_mutation(lambda s: imported.evolve(
            current_user_id=s.current_user_id,
            theme=s.theme,
        ))

    # Events

    def register_event_handler(self, event: str, handler: Callable) -> None:
        """Register an event handler."""
        self._event_handlers.setdefault(event, []).append(handler)
        logger.debug("event_handler_registered", event_type=event)

    def unregister_event_handler(self, event: str, handler: Callable) -> None:
        if event in self._event_handlers:
            self._event_handlers[event].remove(handler)

    def _notify_event(self, event: str, data: Dict[str, Any]) -> None:
        """Notify all handlers of an event; coroutine handlers are scheduled."""
        for handler in self._event_handlers.get(event, []):
            try:
                if asyncio.iscoroutinefunction(handler):
                    asyncio.get_running_loop().create_task(handler(event, data))
                else:
                    handler(event, data)
            except Exception as e:
                logger.error(
                    "event_handler_error",
                    event_type=event,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(e)
                )

    # Internals

    def _install(self, snapshot: Snapshot, source: str) -> None:
        logger.debug("snapshot_installed", source=source, last_updated=snapshot.last_updated)
        self.store.replace(snapshot)

    def _persist_quietly(self, snapshot: Snapshot) -> None:
        try:
            self.transport.save_local(snapshot)
        except StorageError as e:
            logger.error("local_persist_failed", error=str(e))

    def _set_online(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        logger.info("connectivity_changed", online=online)
        self._notify_event("connectivity", {"online": online})

    def _raise_data_updated(self) -> None:
        if self._data_updated_handle is not None:
            self._data_updated_handle.cancel()

        self._data_updated = True
        self._notify_event("data_updated", {"active": True})
        self._data_updated_handle = asyncio.get_running_loop().call_later(
            self.config.data_updated_display, self._clear_data_updated
        )

    def _clear_data_updated(self) -> None:
        if self._data_updated_handle is not None:
            self._data_updated_handle.cancel()
            self._data_updated_handle = None

        if self._data_updated:
            self._data_updated = False
            self._notify_event("data_updated", {"active": False})

    def _local_update_threadsafe(self, snapshot: Snapshot) -> None:
        # Called from the watcher thread
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._on_local_update, snapshot)

    def _on_local_update(self, snapshot: Snapshot) -> None:
        if not self.is_running:
            return
        if not is_newer(snapshot, self.store.get()):
            logger.debug("local_update_stale", last_updated=snapshot.last_updated)
            return

        logger.info("snapshot_adopted", source="local", last_updated=snapshot.last_updated)
        self._install(snapshot, source="local")


__all__ = ['SyncCoordinator', 'CoordinatorState', 'SyncError']
