"""Subscriptions tab implementation."""

from __future__ import annotations

from typing import Any, Optional

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Static, Switch

from adapters.sqlite_storage import SubscriptionRecord
from core.flags import FLAG_NAMES, SubscriptionFlag, format_flags

from ..modals import AddSubscriptionScreen, DeleteSubscriptionScreen
from ..state import NewSubscription


class SubscriptionsTab(Container):
    """Subscriptions tab, backed directly by the SQLite database."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._loading_form = False
        self._current_row_key: Optional[str] = None
        self._records: dict[str, SubscriptionRecord] = {}
        self._table_ready = False

    def compose(self):
        with Vertical(id="subscriptions-panel"):
            with Horizontal(id="subscriptions-body"):
                with Container(id="subscriptions-left"):
                    yield DataTable(id="subscriptions-table", cursor_type="row")
                with Container(id="subscriptions-right"):
                    yield Static("Subscription details", id="subscriptions-title")
                    yield Static("twitter user", classes="form-label")
                    yield Static("", id="subscription-user")
                    yield Static("telegram chat", classes="form-label")
                    yield Static("", id="subscription-chat")
                    for name in FLAG_NAMES:
                        yield Static(name, classes="form-label")
                        yield Switch(value=False, id=f"flag-{name}")
                    yield Static("", id="subscription-error", classes="settings-error")
            with Horizontal(id="subscriptions-actions"):
                yield Button("Add", id="add-subscription", variant="success")
                yield Button("Delete", id="delete-subscription", variant="error")

    def on_mount(self) -> None:
        table = self.query_one("#subscriptions-table", DataTable)
        table.add_column("user", key="user", width=20)
        table.add_column("twitter_id", key="twitter_id", width=20)
        table.add_column("chat", key="chat", width=24)
        table.add_column("dm", key="dm", width=4)
        table.add_column("flags", key="flags", width=28)
        table.zebra_stripes = True
        self._table_ready = True
        self.reload_from_db()
        self._set_form_state(None)

    def reload_from_db(self) -> None:
        if not self._table_ready:
            return
        table = self.query_one("#subscriptions-table", DataTable)
        table.clear()
        self._records = {}
        for record in self.app.storage.list_subscriptions():
            row_key = self._row_key(record)
            self._records[row_key] = record
            table.add_row(
                f"@{record.screen_name}" if record.screen_name else "?",
                record.twitter_id,
                record.destination.channel_id,
                "yes" if record.destination.is_dm else "no",
                format_flags(record.flags),
                key=row_key,
            )
        if self._current_row_key not in self._records:
            self._current_row_key = None
        self._update_action_state()

    def _update_action_state(self) -> None:
        self.query_one("#delete-subscription", Button).disabled = self._current_row_key is None

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self._current_row_key = self._coerce_row_key(event.row_key)
        self._set_form_state(self._records.get(self._current_row_key))
        self._update_action_state()

    @on(Switch.Changed)
    def _on_flag_changed(self, event: Switch.Changed) -> None:
        switch_id = event.switch.id or ""
        if self._loading_form or not switch_id.startswith("flag-"):
            return
        record = self._records.get(self._current_row_key or "")
        if record is None:
            return
        flag = SubscriptionFlag[switch_id[len("flag-") :].upper()]
        flags = record.flags | flag if event.value else record.flags & ~flag
        if flags == record.flags:
            return
        self.app.storage.add_subscription(record.twitter_id, record.destination, flags)
        self.app.notify(f"Flags for @{record.screen_name}: {format_flags(flags) or 'none'}")
        self.reload_from_db()

    @on(Button.Pressed, "#add-subscription")
    def _on_add_subscription(self) -> None:
        self.app.push_screen(AddSubscriptionScreen(), self._handle_add_subscription)

    @on(Button.Pressed, "#delete-subscription")
    def _on_delete_subscription(self) -> None:
        record = self._records.get(self._current_row_key or "")
        if record is None:
            return
        label = f"@{record.screen_name} -> {record.destination.channel_id}"
        self.app.push_screen(DeleteSubscriptionScreen(label), self._handle_delete_subscription)

    def _handle_add_subscription(self, result: NewSubscription | None) -> None:
        if result is None:
            return
        self.app.storage.upsert_user(result.author)
        self.app.storage.add_subscription(result.author.user_id, result.destination, result.flags)
        self.reload_from_db()

    def _handle_delete_subscription(self, confirmed: bool | None) -> None:
        if not confirmed:
            return
        record = self._records.get(self._current_row_key or "")
        if record is None:
            return
        removed = self.app.storage.remove_subscription(record.twitter_id, record.destination.channel_id)
        if not removed:
            self.query_one("#subscription-error", Static).update("Subscription was already removed")
        self._current_row_key = None
        self.reload_from_db()
        self._set_form_state(None)

    def _set_form_state(self, record: Optional[SubscriptionRecord]) -> None:
        self._loading_form = True
        self.query_one("#subscription-error", Static).update("")
        user = self.query_one("#subscription-user", Static)
        chat = self.query_one("#subscription-chat", Static)
        if record is None:
            user.update("")
            chat.update("")
        else:
            user.update(f"@{record.screen_name} ({record.twitter_id})")
            kind = "dm" if record.destination.is_dm else "chat"
            chat.update(f"{record.destination.channel_id} ({kind})")
        for name in FLAG_NAMES:
            switch = self.query_one(f"#flag-{name}", Switch)
            switch.disabled = record is None
            switch.value = record is not None and SubscriptionFlag[name.upper()] in record.flags
        self._loading_form = False

    @staticmethod
    def _row_key(record: SubscriptionRecord) -> str:
        return f"{record.twitter_id}|{record.destination.channel_id}"

    @staticmethod
    def _coerce_row_key(value: Any) -> str:
        if hasattr(value, "value"):
            return str(value.value)
        return str(value)
