"""Modal dialogs for the Textual config panel."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Static, Switch

from adapters.tweet_mapper import build_author
from adapters.twitter_api import TwitterApi, TwitterApiError
from client import twitter_bearer_token
from core.models import Destination

from .state import NewSubscription
from .validators import parse_chat_id, parse_flags_input, parse_handle


class UnsavedChangesScreen(ModalScreen[str]):
    """Prompt when exiting with unsaved changes."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Unsaved changes", classes="modal-title"),
            Static("Save config.json before exit?", classes="modal-body"),
            Horizontal(
                Button("Save", id="unsaved-save", variant="success"),
                Button("Discard", id="unsaved-discard", variant="error"),
                Button("Cancel", id="unsaved-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        choices = {"unsaved-save": "save", "unsaved-discard": "discard"}
        self.dismiss(choices.get(event.button.id or "", "cancel"))


class ReloadConfirmScreen(ModalScreen[str]):
    """Prompt when reloading with unsaved changes."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Reload config.json?", classes="modal-title"),
            Static("Unsaved changes will be lost.", classes="modal-body"),
            Horizontal(
                Button("Save", id="reload-save"),
                Button("Reload", id="reload-reload", variant="warning"),
                Button("Cancel", id="reload-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        choices = {"reload-save": "save", "reload-reload": "reload"}
        self.dismiss(choices.get(event.button.id or "", "cancel"))


class AddSubscriptionScreen(ModalScreen[NewSubscription | None]):
    """Form that resolves a Twitter handle and returns a new subscription."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Add subscription", classes="modal-title"),
            Static("", id="add-error", classes="modal-error"),
            Static("twitter handle", classes="form-label"),
            Input(placeholder="@jack", id="add-handle"),
            Static("telegram chat", classes="form-label"),
            Input(placeholder="-1001234567890 or @channel", id="add-chat"),
            Static("direct conversation", classes="form-label"),
            Switch(value=False, id="add-dm"),
            Static("flags (notext,retweet,noquote,ping)", classes="form-label"),
            Input(placeholder="", id="add-flags"),
            Horizontal(
                Button("Add", id="add-confirm", variant="success"),
                Button("Cancel", id="add-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--form",
        )

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "add-cancel":
            self.dismiss(None)
            return
        if event.button.id != "add-confirm":
            return

        error = self.query_one("#add-error", Static)
        handle = parse_handle(self.query_one("#add-handle", Input).value)
        chat = parse_chat_id(self.query_one("#add-chat", Input).value)
        flags, flags_error = parse_flags_input(self.query_one("#add-flags", Input).value)
        message = handle.error or chat.error or flags_error
        if message:
            error.update(message)
            return

        error.update("Looking up handle...")
        event.button.disabled = True
        try:
            users = await TwitterApi(twitter_bearer_token()).user_lookup([handle.value])
        except (TwitterApiError, RuntimeError) as exc:
            error.update(str(exc))
            return
        finally:
            event.button.disabled = False

        author = build_author(users[0]) if users else None
        if author is None:
            error.update(f"No Twitter user named @{handle.value}")
            return
        destination = Destination(channel_id=chat.value, is_dm=self.query_one("#add-dm", Switch).value)
        self.dismiss(NewSubscription(author=author, destination=destination, flags=flags))


class DeleteSubscriptionScreen(ModalScreen[bool]):
    """Confirm deletion of a subscription."""

    def __init__(self, label: str) -> None:
        super().__init__()
        self._label = label

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Delete subscription?", classes="modal-title"),
            Static(self._label, classes="modal-body"),
            Horizontal(
                Button("Delete", id="delete-confirm", variant="error"),
                Button("Cancel", id="delete-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "delete-confirm")
