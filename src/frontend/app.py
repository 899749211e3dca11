"""Main Textual app for the tweetrelay config panel."""

from __future__ import annotations

import json
from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Center, Container, Horizontal, Vertical
from textual.widgets import Button, ContentSwitcher, Footer, Static, Tab, Tabs

from adapters.sqlite_storage import SQLiteStorage

from .constants import CONFIG_PATH, DB_PATH, TWITTER_BLUE
from .modals import ReloadConfirmScreen, UnsavedChangesScreen
from .state import ConfigState
from .tabs.settings import SettingsTab
from .tabs.subscriptions import SubscriptionsTab


class ConfigPanelApp(App):
    """Config panel: subscriptions live in SQLite, settings in config.json."""

    BINDINGS = [
        ("ctrl+s", "save_config", "Save"),
        ("ctrl+r", "reload_config", "Reload"),
        ("q", "request_quit", "Quit"),
        ("ctrl+c", "request_quit", "Quit"),
    ]

    CSS = """
    Screen {
        background: #0f1a21;
        color: #e8eef5;
    }

    #header {
        height: 8;
        padding: 1 4;
        border-bottom: solid #2a3a46;
    }

    #header-row {
        height: 6;
    }

    #header-left, #header-right {
        width: 1fr;
    }

    #header-right {
        align: right top;
        text-align: right;
    }

    #title, .settings-title, #subscriptions-title {
        text-style: bold;
    }

    .subtle {
        color: #c6d2dd;
    }

    .status-loaded { color: #67d67d; }
    .status-modified { color: #e8c15a; }
    .status-error, .settings-error, .modal-error { color: #e06c6c; }

    #tabs-bar {
        height: 5;
        padding: 0 4;
        border-bottom: solid #2a3a46;
        align: center middle;
    }

    #tabs-center {
        width: 100%;
        height: 4;
        align: center middle;
    }

    #tabs {
        width: auto;
    }

    #subscriptions-body, #settings-body {
        height: 1fr;
    }

    #subscriptions-left, #settings-left {
        width: 3fr;
        padding: 1 2;
    }

    #subscriptions-right, #settings-right {
        width: 2fr;
        padding: 1 2;
        border-left: solid #2a3a46;
    }

    #subscriptions-actions {
        height: 3;
        padding: 0 2;
    }

    .form-label {
        margin-top: 1;
        color: #c6d2dd;
    }

    ModalScreen {
        align: center middle;
    }

    .modal-dialog {
        width: 60;
        height: auto;
        padding: 1 2;
        background: #16242e;
        border: round #2a3a46;
    }

    .modal-actions {
        height: 3;
        margin-top: 1;
    }
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.config_state = ConfigState()
        self.storage = SQLiteStorage(str(DB_PATH))
        self.storage.init_db()

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Horizontal(id="header-row"):
                with Vertical(id="header-left"):
                    yield Static(self._title_text(), id="title")
                    yield Static("stream relay for Telegram", classes="subtle")
                with Vertical(id="header-right"):
                    yield Static(f"db: {DB_PATH.name}", classes="subtle")
                    yield Static("", id="header-status")
                    yield Horizontal(
                        Button("Save", id="save-btn"),
                        Button("Reload", id="reload-btn"),
                        id="header-actions",
                    )

        with Container(id="tabs-bar"):
            with Center(id="tabs-center"):
                yield Tabs(
                    Tab("Subscriptions", id="subscriptions"),
                    Tab("Settings", id="settings"),
                    id="tabs",
                )

        with ContentSwitcher(id="content"):
            yield SubscriptionsTab(id="subscriptions")
            yield SettingsTab(id="settings")
        yield Footer()

    def on_mount(self) -> None:
        self._load_config()
        self._set_active_tab("subscriptions")

    def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
        tab_id = event.tab.id or ""
        if not tab_id:
            label = event.tab.label
            if hasattr(label, "plain"):
                label = label.plain
            tab_id = str(label).strip().lower()
        self._set_active_tab(tab_id)

    def _set_active_tab(self, tab_id: str) -> None:
        self.query_one("#content", ContentSwitcher).current = tab_id

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save-btn":
            self.action_save_config()
        elif event.button.id == "reload-btn":
            self.action_reload_config()

    def action_save_config(self) -> None:
        self._save_config()

    def action_reload_config(self) -> None:
        if self.config_state.dirty:
            self.push_screen(ReloadConfirmScreen(), self._handle_reload_choice)
        else:
            self._load_config()

    def action_request_quit(self) -> None:
        if self.config_state.dirty:
            self.push_screen(UnsavedChangesScreen(), self._handle_exit_choice)
        else:
            self.exit()

    def _handle_exit_choice(self, choice: str | None) -> None:
        if choice == "save":
            if self._save_config():
                self.exit()
        elif choice == "discard":
            self.exit()

    def _handle_reload_choice(self, choice: str | None) -> None:
        if choice == "save":
            if self._save_config():
                self._load_config()
        elif choice == "reload":
            self._load_config()

    def _load_config(self) -> None:
        self.config_state.dirty = False
        try:
            loaded = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
            if not isinstance(loaded, dict):
                raise ValueError("config root must be an object")
            self.config_state.data = loaded
            self.config_state.error = None
        except FileNotFoundError:
            self.config_state.data = None
            self.config_state.error = "config.json missing"
        except json.JSONDecodeError as exc:
            self.config_state.data = None
            self.config_state.error = f"config.json error: {exc.msg}"
        except ValueError as exc:
            self.config_state.data = None
            self.config_state.error = str(exc)
        self._refresh_header()
        self.query_one(SettingsTab).reload_from_config()
        self.query_one(SubscriptionsTab).reload_from_db()

    def _save_config(self) -> bool:
        if self.config_state.data is None:
            self.config_state.error = "Nothing to save"
            self._refresh_header()
            return False
        try:
            CONFIG_PATH.write_text(
                json.dumps(self.config_state.data, indent=2, ensure_ascii=True) + "\n",
                encoding="utf-8",
            )
        except OSError as exc:
            self.config_state.error = f"save failed: {exc.strerror or exc}"
            self._refresh_header()
            return False
        self.config_state.dirty = False
        self.config_state.error = None
        self._refresh_header()
        return True

    def mark_dirty(self) -> None:
        self.config_state.dirty = True
        self._refresh_header()

    def _refresh_header(self) -> None:
        status = self.query_one("#header-status", Static)
        status.remove_class("status-loaded", "status-modified", "status-error")
        if self.config_state.error:
            status.update(f"config: {self.config_state.error}")
            status.add_class("status-error")
        elif self.config_state.dirty:
            status.update("config: modified *")
            status.add_class("status-modified")
        else:
            status.update("config: loaded")
            status.add_class("status-loaded")

        self.query_one("#save-btn", Button).disabled = self.config_state.data is None or not self.config_state.dirty

    def update_config_section(self, section: str, value: Any) -> None:
        """Update a config section in memory and mark dirty."""
        if self.config_state.data is None:
            self.config_state.data = {}
        self.config_state.data[section] = value
        self.mark_dirty()

    @staticmethod
    def _title_text() -> Text:
        return Text.assemble(
            ("TWEET", TWITTER_BLUE),
            ("RELAY > Config Panel", "bold"),
        )
