"""Ordered, mutable collection of photo cards backing the visible list."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field

from loguru import logger

from core.models import PhotoCard

DEFAULT_DETACH_DELAY = 0.16

CHANGE_INSERTED = "inserted"
CHANGE_REMOVED = "removed"
CHANGE_REPLACED = "replaced"
CHANGE_RESET = "reset"


@dataclass
class StoreChange:
    """Notification sent to listeners after the store has changed.

    Attributes:
        kind: One of `inserted`, `removed`, `replaced`, `reset`.
        index: Position of the first affected card (-1 for `reset`).
        cards: Cards involved in the change.
        detach_delay: Seconds a view may keep a removed card on screen for a
            removal animation. The card is already gone from the store.
    """

    kind: str
    index: int
    cards: list[PhotoCard] = field(default_factory=list)
    detach_delay: float = 0.0


Listener = Callable[[StoreChange], None]


class PhotoCardStore:
    """Ordered card sequence; position is display and print order."""

    def __init__(self, detach_delay: float = DEFAULT_DETACH_DELAY) -> None:
        self._cards: list[PhotoCard] = []
        self._listeners: list[Listener] = []
        self.detach_delay = detach_delay

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[PhotoCard]:
        return iter(list(self._cards))

    def __getitem__(self, index: int) -> PhotoCard:
        return self._cards[index]

    def __contains__(self, card: object) -> bool:
        return any(c is card for c in self._cards)

    @property
    def cards(self) -> list[PhotoCard]:
        """Live cards in order (a new list; the cards themselves are shared)."""
        return list(self._cards)

    def index_of(self, card: PhotoCard) -> int:
        """Position of `card` by identity, or -1."""
        for i, c in enumerate(self._cards):
            if c is card:
                return i
        return -1

    def subscribe(self, listener: Listener) -> None:
        """Register `listener` for change notifications."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        """Stop notifying `listener`; unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def append(self, data: PhotoCard | None = None) -> PhotoCard:
        """Create a card at the end, pre-filled from `data` when given."""
        card = data.copy() if data is not None else PhotoCard()
        self._cards.append(card)
        self._notify(StoreChange(CHANGE_INSERTED, len(self._cards) - 1, [card]))
        return card

    def prepend_batch(
        self, data_list: Iterable[PhotoCard], before: PhotoCard | None = None
    ) -> list[PhotoCard]:
        """Insert a run of new cards, in order, immediately before `before`.

        `before` defaults to the first existing card. When the store is empty
        or `before` is no longer present the run is appended.
        """
        anchor = before if before is not None else (self._cards[0] if self._cards else None)
        index = self.index_of(anchor) if anchor is not None else -1
        return self.insert_batch(data_list, index)

    def insert_batch(self, data_list: Iterable[PhotoCard], index: int) -> list[PhotoCard]:
        """Insert copies of `data_list`, in order, starting at `index`.

        A negative or out-of-range `index` appends the run.
        """
        created = [d.copy() for d in data_list]
        if not created:
            return []
        if index < 0 or index > len(self._cards):
            index = len(self._cards)
        self._cards[index:index] = created
        self._notify(StoreChange(CHANGE_INSERTED, index, created))
        return created

    def remove(self, card: PhotoCard) -> bool:
        """Delete `card` by identity. Returns False if it was not present."""
        index = self.index_of(card)
        if index < 0:
            logger.debug("Remove ignored: card not in store")
            return False
        del self._cards[index]
        self._notify(StoreChange(CHANGE_REMOVED, index, [card], detach_delay=self.detach_delay))
        return True

    def replace(self, card: PhotoCard, data: PhotoCard) -> None:
        """Overwrite the image fields and size label of `card` in place.

        Raises:
            KeyError: if `card` is not in the store.
        """
        index = self.index_of(card)
        if index < 0:
            raise KeyError("card not in store")
        card.preview_image = data.preview_image
        card.print_image = data.print_image
        card.size_label = data.size_label
        self._notify(StoreChange(CHANGE_REPLACED, index, [card]))

    def reset(self, data_list: Iterable[PhotoCard] = ()) -> list[PhotoCard]:
        """Replace all cards wholesale with copies of `data_list`."""
        self._cards = [d.copy() for d in data_list]
        self._notify(StoreChange(CHANGE_RESET, -1, list(self._cards)))
        return list(self._cards)

    def snapshot(self) -> list[PhotoCard]:
        """Detached copies of the cards, in order."""
        return [c.copy() for c in self._cards]

    def _notify(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            listener(change)
