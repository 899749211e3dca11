"""Settings tab implementation."""

from __future__ import annotations

from typing import Any, Optional

from textual import on
from textual.containers import Container, Horizontal, ScrollableContainer, Vertical
from textual.widgets import ContentSwitcher, DataTable, Input, Select, Static, Switch, TextArea


class SettingsTab(Container):
    """Settings tab for editing stream, render, dispatch and logging."""

    SECTION_LABELS = [
        ("stream", "Stream", "Reconnect backoff and watchdog"),
        ("render", "Render", "Video and link preview limits"),
        ("dispatch", "Dispatch", "Delivery method and announcement"),
        ("logging", "Logging", "Console/file logging + redaction"),
    ]

    # widget id -> (section, path inside the section, default, kind)
    INPUTS: dict[str, tuple[str, tuple[str, ...], Any, str]] = {
        "stream-url": ("stream", ("url",), "https://stream.twitter.com/1.1/statuses/filter.json", "str"),
        "stream-watchdog": ("stream", ("watchdog_seconds",), 0, "int"),
        "stream-start": ("stream", ("reconnect_start_ms",), 2000, "int"),
        "stream-max": ("stream", ("reconnect_max_ms",), 240000, "int"),
        "stream-floor": ("stream", ("rate_limit_floor_ms",), 30000, "int"),
        "stream-refresh": ("stream", ("refresh_seconds",), 300, "int"),
        "render-ceiling": ("render", ("video_bitrate_ceiling",), 1_000_000, "int"),
        "render-cutoff": ("render", ("video_duration_cutoff_ms",), 20_000, "int"),
        "render-ping": ("render", ("ping_hashtag",), "qtweet", "str"),
        "render-unfurl": ("render", ("unfurl_timeout",), 10, "int"),
        "dispatch-announcement": ("dispatch", ("announcement",), "@everyone", "str"),
        "logging-file-path": ("logging", ("file", "path"), "logs/tweetrelay.log", "str"),
        "logging-file-max-bytes": ("logging", ("file", "max_bytes"), 5 * 1024 * 1024, "int"),
        "logging-file-backup": ("logging", ("file", "backup_count"), 5, "int"),
    }
    SWITCHES: dict[str, tuple[str, tuple[str, ...], bool]] = {
        "logging-enabled": ("logging", ("enabled",), False),
        "logging-console": ("logging", ("console",), True),
        "logging-file-enabled": ("logging", ("file", "enabled"), False),
        "logging-redact-enabled": ("logging", ("redact", "enabled"), False),
    }
    SELECTS: dict[str, tuple[str, tuple[str, ...], list[str]]] = {
        "dispatch-method": ("dispatch", ("method",), ["client", "bot"]),
        "logging-level": ("logging", ("level",), ["INFO", "DEBUG", "WARNING", "ERROR"]),
    }
    # Inputs that only make sense while a switch is on.
    DEPENDENTS = {
        "logging-file-enabled": ("#logging-file-path", "#logging-file-max-bytes", "#logging-file-backup"),
        "logging-redact-enabled": ("#logging-redact-patterns",),
    }

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._loading_form = False

    def compose(self):
        with Vertical(id="settings-panel"):
            with Horizontal(id="settings-body"):
                with Container(id="settings-left"):
                    yield DataTable(id="settings-table", cursor_type="row")
                with Container(id="settings-right"):
                    with ContentSwitcher(id="settings-forms"):
                        for section, label, _description in self.SECTION_LABELS:
                            with ScrollableContainer(id=f"settings-{section}"):
                                yield Static(label, classes="settings-title")
                                yield from self._fields(section)
                                if section == "logging":
                                    yield Static("redact.patterns (one env var per line)", classes="form-label")
                                    yield TextArea(id="logging-redact-patterns")
                                yield Static("", id=f"{section}-error", classes="settings-error")

    def _fields(self, section: str):
        for select_id, (field_section, path, choices) in self.SELECTS.items():
            if field_section == section:
                yield Static(".".join(path), classes="form-label")
                yield Select([(choice, choice) for choice in choices], id=select_id, allow_blank=False)
        for switch_id, (field_section, path, _default) in self.SWITCHES.items():
            if field_section == section:
                yield Static(".".join(path), classes="form-label")
                yield Switch(id=switch_id)
        for input_id, (field_section, path, default, _kind) in self.INPUTS.items():
            if field_section == section:
                yield Static(".".join(path), classes="form-label")
                yield Input(placeholder=str(default), id=input_id)

    def on_mount(self) -> None:
        table = self.query_one("#settings-table", DataTable)
        table.add_column("section", key="section", width=18)
        table.add_column("description", key="description", width=34)
        for key, label, description in self.SECTION_LABELS:
            table.add_row(label, description, key=key)
        table.zebra_stripes = True
        self._select_section("stream")
        self.reload_from_config()

    def reload_from_config(self) -> None:
        self._loading_form = True
        for section, _label, _description in self.SECTION_LABELS:
            self._set_error(f"{section}-error", "")
        for input_id, (section, path, default, _kind) in self.INPUTS.items():
            self.query_one(f"#{input_id}", Input).value = str(self._read(section, path, default))
        for switch_id, (section, path, default) in self.SWITCHES.items():
            self.query_one(f"#{switch_id}", Switch).value = bool(self._read(section, path, default))
        for select_id, (section, path, choices) in self.SELECTS.items():
            value = self._read(section, path, choices[0])
            select = self.query_one(f"#{select_id}", Select)
            if value in choices:
                select.value = value
            else:
                select.value = choices[0]
                self._set_error(f"{section}-error", f"Invalid value: {value}")
        patterns = self._read("logging", ("redact", "patterns"), []) or []
        self.query_one("#logging-redact-patterns", TextArea).text = "\n".join(patterns)
        for switch_id in self.DEPENDENTS:
            self._apply_dependents(switch_id, self.query_one(f"#{switch_id}", Switch).value)
        self._loading_form = False

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self._select_section(self._coerce_row_key(event.row_key))

    def _select_section(self, section_id: str) -> None:
        self.query_one("#settings-forms", ContentSwitcher).current = f"settings-{section_id}"

    def _get_section(self, key: str) -> dict[str, Any]:
        data = self.app.config_state.data or {}
        section = data.get(key)
        if isinstance(section, dict):
            return section
        return {}

    def _read(self, section: str, path: tuple[str, ...], default: Any) -> Any:
        node: Any = self._get_section(section)
        for key in path:
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return node

    def _write(self, section: str, path: tuple[str, ...], value: Any) -> None:
        # Change events also fire for values set by reload_from_config.
        if self._read(section, path, None) == value:
            return
        config = self._get_section(section)
        node = config
        for key in path[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[path[-1]] = value
        self.app.update_config_section(section, config)

    def _set_error(self, error_id: str, message: str) -> None:
        self.query_one(f"#{error_id}", Static).update(message)

    def _apply_dependents(self, switch_id: str, enabled: bool) -> None:
        for selector in self.DEPENDENTS.get(switch_id, ()):
            self.query_one(selector).disabled = not enabled

    @on(Input.Changed)
    def _on_input_changed(self, event: Input.Changed) -> None:
        if self._loading_form:
            return
        field = self.INPUTS.get(event.input.id or "")
        if field is None:
            return
        section, path, _default, kind = field
        error_id = f"{section}-error"
        value: Any = event.value.strip()
        if kind == "int":
            value = self._parse_int(value, error_id)
            if value is None:
                return
        elif not value:
            self._set_error(error_id, f"{path[-1]} is required")
            return
        else:
            self._set_error(error_id, "")
        self._write(section, path, value)

    @on(Switch.Changed)
    def _on_switch_changed(self, event: Switch.Changed) -> None:
        if self._loading_form:
            return
        switch_id = event.switch.id or ""
        field = self.SWITCHES.get(switch_id)
        if field is None:
            return
        section, path, _default = field
        self._write(section, path, bool(event.value))
        self._apply_dependents(switch_id, bool(event.value))

    @on(Select.Changed)
    def _on_select_changed(self, event: Select.Changed) -> None:
        if self._loading_form or event.value is Select.BLANK:
            return
        field = self.SELECTS.get(event.select.id or "")
        if field is None:
            return
        section, path, _choices = field
        self._write(section, path, event.value)

    @on(TextArea.Changed, "#logging-redact-patterns")
    def _on_redact_patterns(self, event: TextArea.Changed) -> None:
        if self._loading_form:
            return
        patterns = [line.strip() for line in event.text_area.text.splitlines() if line.strip()]
        self._write("logging", ("redact", "patterns"), patterns)

    def _parse_int(self, value: str, error_id: str) -> Optional[int]:
        stripped = value.strip()
        if not stripped:
            self._set_error(error_id, "")
            return None
        if not stripped.isdigit():
            self._set_error(error_id, "Enter a non-negative integer")
            return None
        self._set_error(error_id, "")
        return int(stripped)

    @staticmethod
    def _coerce_row_key(value: Any) -> str:
        if hasattr(value, "value"):
            return str(value.value)
        return str(value)
