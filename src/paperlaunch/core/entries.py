"""Launcher entry tree.

Entries are immutable pydantic models. A tree is built once per data or
config reload (loaded from storage, then paginated) and shared read-only by
every overlay session that starts before the next reload.

    tree = [
        LaunchEntry(id="1", name="Mail", target="app://mail"),
        Folder(id="2", name="Tools", entries=[
            LaunchEntry(id="3", name="Torch", target="app://torch"),
        ]),
    ]
"""

from __future__ import annotations

from typing import Annotated, Iterable, Iterator, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "Entry",
    "LaunchEntry",
    "Folder",
    "VirtualFolder",
    "walk",
    "find",
]


class _EntryBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Opaque stable identifier")
    name: str = Field("", description="Display label")
    icon: Optional[str] = Field(
        None, description="Image handle resolved lazily by the presentation layer"
    )
    use_icon_color: bool = Field(
        False, description="Tint the selection indicator from the icon colour"
    )

    @property
    def is_folder(self) -> bool:
        return False


class LaunchEntry(_EntryBase):
    """Leaf entry that launches something when selected."""

    kind: Literal["launch"] = "launch"
    target: str = Field("", description="Launch target handed to the launcher")


class Folder(_EntryBase):
    """Entry owning an ordered sequence of child entries."""

    kind: Literal["folder"] = "folder"
    entries: Tuple["Entry", ...] = ()

    @property
    def is_folder(self) -> bool:
        return True


class VirtualFolder(Folder):
    """Synthetic folder created by pagination to hold overflow entries.

    Never persisted.
    """

    kind: Literal["virtual_folder"] = "virtual_folder"  # type: ignore[assignment]


Entry = Annotated[
    Union[LaunchEntry, VirtualFolder, Folder], Field(discriminator="kind")
]

Folder.model_rebuild()
VirtualFolder.model_rebuild()


def walk(entries: Iterable[Entry]) -> Iterator[Entry]:
    """Yield every entry depth-first in display order."""
    for entry in entries:
        yield entry
        if isinstance(entry, Folder):
            yield from walk(entry.entries)


def find(entries: Iterable[Entry], entry_id: str) -> Entry | None:
    for entry in walk(entries):
        if entry.id == entry_id:
            return entry
    return None
