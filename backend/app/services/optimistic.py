"""Apply a change locally, confirm it remotely, undo it if confirmation fails."""
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")


async def apply_optimistic(
    apply: Callable[[], None],
    revert: Callable[[], None],
    confirm: Callable[[], Awaitable[T]],
) -> T:
    """Run ``apply`` now, then await ``confirm``; call ``revert`` if it raises.

    The exception from ``confirm`` is re-raised after reverting.
    """
    apply()
    try:
        return await confirm()
    except Exception:
        revert()
        raise


async def update_list_optimistically(
    items: list[Any],
    mutate: Callable[[list[Any]], None],
    confirm: Callable[[], Awaitable[T]],
) -> T:
    """Mutate ``items`` in place, restoring the pre-mutation contents on failure.

    ``mutate`` must replace elements rather than edit them in place, since the
    snapshot is shallow. Concurrent updates of the same list are last-writer-wins.
    """
    snapshot = list(items)

    def restore() -> None:
        items[:] = snapshot

    return await apply_optimistic(lambda: mutate(items), restore, confirm)
