"""An item embedded in a lesson, switching between viewing and editing."""
from __future__ import annotations

from collections.abc import Callable

from assessment_engine.authoring import ItemEditor
from assessment_engine.models import Item
from assessment_engine.session import AttemptSession

VIEW = "view"
EDIT = "edit"
CREATE = "create"


class ItemBlock:
    def __init__(
        self,
        item: Item | None = None,
        on_save: Callable[[Item], None] | None = None,
        on_delete: Callable[[], None] | None = None,
        read_only: bool = False,
        initial_kind: str = "multiple-choice",
    ):
        self.item = item
        self.on_save = on_save
        self.on_delete = on_delete
        self.read_only = read_only
        self.initial_kind = initial_kind
        self.mode = VIEW if item is not None else CREATE
        self.editor: ItemEditor | None = None
        if self.mode == CREATE and not read_only:
            self.editor = self._new_editor()

    def _new_editor(self) -> ItemEditor:
        return ItemEditor(
            initial_item=self.item if self.mode == EDIT else None,
            initial_kind=self.initial_kind,
            on_save=self.save,
            on_cancel=self.cancel,
        )

    def edit(self) -> ItemEditor:
        if self.read_only:
            raise PermissionError("read-only block cannot be edited")
        if self.item is None:
            self.mode = CREATE
        else:
            self.mode = EDIT
        self.editor = self._new_editor()
        return self.editor

    def save(self, item: Item) -> None:
        self.item = item
        self.mode = VIEW
        self.editor = None
        if self.on_save:
            self.on_save(item)

    def cancel(self) -> None:
        self.editor = None
        if self.item is not None:
            self.mode = VIEW
        elif self.on_delete:
            self.on_delete()

    def delete(self) -> None:
        if self.on_delete:
            self.on_delete()

    def attempt(self, **kwargs) -> AttemptSession:
        if self.item is None:
            raise LookupError("block has no saved item to attempt")
        return AttemptSession(self.item, **kwargs)
