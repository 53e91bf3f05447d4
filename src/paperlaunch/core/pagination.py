"""Fold entries that do not fit on screen into synthetic virtual folders.

The last visible slot of an overflowing level is reserved for a
:class:`~paperlaunch.core.entries.VirtualFolder` holding every entry from that
slot onward, in their original order. A virtual folder that still overflows
is folded the same way, and user folders are paginated recursively.

Example:

    entries = [LaunchEntry(id=str(i), name=f"e{i}") for i in range(7)]
    paged = paginate(entries, 4)
    # -> [e0, e1, e2, VirtualFolder[e3, e4, e5, e6]]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from paperlaunch.core.entries import Entry, Folder, VirtualFolder
from paperlaunch.errors import ConfigurationError, EntryTreeError

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "paginate",
    "max_visible_for",
    "unfold_virtual",
]

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 32


@dataclass(frozen=True, slots=True)
class _Options:
    max_visible: int
    folder_name: str
    folder_icon: Optional[str]
    max_depth: int


def max_visible_for(screen_extent_px: int, entry_extent_px: int) -> int:
    """Return how many entries of *entry_extent_px* fit in *screen_extent_px*."""
    if entry_extent_px <= 0:
        raise ConfigurationError(
            f"entry extent must be > 0 px (got {entry_extent_px})"
        )
    if screen_extent_px < 0:
        raise ConfigurationError(
            f"screen extent must be >= 0 px (got {screen_extent_px})"
        )
    return int(screen_extent_px) // int(entry_extent_px)


def paginate(
    entries: Iterable[Entry],
    max_visible: int,
    *,
    folder_name: str = "More",
    folder_icon: Optional[str] = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[Entry]:
    """Return *entries* with overflow folded into virtual folders.

    Only user folders count toward *max_depth*. The chain of virtual folders
    is bounded by the number of entries and built without recursion.

    Raises:
        ConfigurationError: if ``max_visible <= 0``.
        EntryTreeError: if user folders nest deeper than *max_depth* or a
            folder id repeats on its own ancestor path.
    """
    if max_visible <= 0:
        raise ConfigurationError(f"max_visible must be >= 1 (got {max_visible})")
    opts = _Options(
        max_visible=int(max_visible),
        folder_name=folder_name,
        folder_icon=folder_icon,
        max_depth=int(max_depth),
    )
    return _paginate_level(list(entries), opts, owner_id="root", path=(), depth=0)


def _paginate_level(
    entries: list[Entry],
    opts: _Options,
    *,
    owner_id: str,
    path: tuple[str, ...],
    depth: int,
) -> list[Entry]:
    if depth > opts.max_depth:
        raise EntryTreeError(
            f"entry tree deeper than {opts.max_depth} levels at {'/'.join(path)}"
        )

    # Virtual folders from an earlier pass are spliced back so the level is
    # folded from its flat order again.
    out: list[Entry] = []
    for entry in unfold_virtual(entries):
        if isinstance(entry, Folder):
            if entry.id in path:
                raise EntryTreeError(
                    f"folder {entry.id!r} contains itself via {'/'.join(path)}"
                )
            children = _paginate_level(
                list(entry.entries),
                opts,
                owner_id=entry.id,
                path=path + (entry.id,),
                depth=depth + 1,
            )
            entry = entry.model_copy(update={"entries": tuple(children)})
        out.append(entry)
    return _fold(out, opts, owner_id)


def _fold(items: list[Entry], opts: _Options, owner_id: str) -> list[Entry]:
    limit = opts.max_visible
    if len(items) <= limit:
        return items
    if limit == 1:
        # A single slot would only wrap the folder's own contents again.
        return [_virtual(f"virtual:{owner_id}", items, opts)]

    heads: list[tuple[str, list[Entry]]] = []
    rest = items
    folder_id = owner_id
    while len(rest) > limit:
        folder_id = f"virtual:{folder_id}"
        heads.append((folder_id, rest[: limit - 1]))
        rest = rest[limit - 1 :]

    tail = rest
    for folder_id, head in reversed(heads):
        tail = head + [_virtual(folder_id, tail, opts)]
    logger.debug(
        "folded %d entries of %s into %d virtual folder(s)",
        len(items) - (limit - 1),
        owner_id,
        len(heads),
    )
    return tail


def _virtual(folder_id: str, entries: list[Entry], opts: _Options) -> VirtualFolder:
    return VirtualFolder(
        id=folder_id,
        name=opts.folder_name,
        icon=opts.folder_icon,
        entries=tuple(entries),
    )


def unfold_virtual(entries: Iterable[Entry]) -> list[Entry]:
    """Inverse of :func:`paginate` for one level: splice virtual folders back.

    Virtual folders are replaced by their (recursively unfolded) contents;
    user folders are kept as they are.
    """
    out: list[Entry] = []
    stack: list[Iterator[Entry]] = [iter(entries)]
    while stack:
        for entry in stack[-1]:
            if isinstance(entry, VirtualFolder):
                stack.append(iter(entry.entries))
                break
            out.append(entry)
        else:
            stack.pop()
    return out
