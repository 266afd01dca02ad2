from __future__ import annotations

import copy
import logging
from dataclasses import replace
from enum import Enum
from typing import Iterator, List, Optional, Set

from printcanvas.core.errors import ElementNotFoundError, InteractionStateError
from printcanvas.core.objects import Element, ImageElement, new_element_id
from printcanvas.core.state import DEFAULT_BG_COLOR, DEFAULT_CONFIG, DUPLICATE_OFFSET, EngineConfig
from .geometry import TextMeasure, point_in_element

logger = logging.getLogger(__name__)


class InteractionMode(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"
    ROTATING = "rotating"
    CROPPING = "cropping"
    SHAPE_ADJUSTING = "shape_adjusting"


class DesignScene:
    """Ordered design elements plus the layer flags and the active interaction.

    List order is paint order (last element on top). All element mutations
    go through :meth:`update_element`; only one interaction mode may be
    active at a time.
    """

    def __init__(self, elements: Optional[List[Element]] = None,
                 background_color: str = DEFAULT_BG_COLOR,
                 config: Optional[EngineConfig] = None) -> None:
        self.config = config or DEFAULT_CONFIG
        self.elements: List[Element] = list(elements or [])
        self.background_color = background_color
        self.locked: Set[str] = set()
        self.hidden: Set[str] = set()
        self.selected_id: Optional[str] = None
        self._mode = InteractionMode.IDLE
        self._active_id: Optional[str] = None

    def __iter__(self) -> Iterator[Element]:
        return iter(self.elements)

    def __len__(self) -> int:
        return len(self.elements)

    # --- Interaction guard ---
    @property
    def mode(self) -> InteractionMode:
        return self._mode

    @property
    def active_id(self) -> Optional[str]:
        return self._active_id

    def begin_interaction(self, mode: InteractionMode, element_id: str) -> None:
        if mode is InteractionMode.IDLE:
            raise ValueError("begin_interaction needs a non-idle mode")
        if self._mode is not InteractionMode.IDLE:
            raise InteractionStateError(
                f"Cannot start {mode.value}: {self._mode.value} already active on {self._active_id!r}"
            )
        self.get(element_id)
        self._mode = mode
        self._active_id = element_id
        logger.debug("Interaction %s started on %s", mode.value, element_id)

    def end_interaction(self) -> None:
        if self._mode is not InteractionMode.IDLE:
            logger.debug("Interaction %s ended on %s", self._mode.value, self._active_id)
        self._mode = InteractionMode.IDLE
        self._active_id = None

    # --- Lookup ---
    def index_of(self, element_id: str) -> int:
        for i, el in enumerate(self.elements):
            if el.id == element_id:
                return i
        return -1

    def get(self, element_id: str) -> Element:
        i = self.index_of(element_id)
        if i < 0:
            raise ElementNotFoundError(element_id)
        return self.elements[i]

    def find(self, element_id: Optional[str]) -> Optional[Element]:
        if element_id is None:
            return None
        i = self.index_of(element_id)
        return self.elements[i] if i >= 0 else None

    @property
    def selected(self) -> Optional[Element]:
        return self.find(self.selected_id)

    # --- Mutation ---
    def update_element(self, element_id: str, **changes) -> Element:
        """Apply field changes to one element; the single write path."""
        el = self.get(element_id)
        names = set(el.field_names())
        unknown = [k for k in changes if k not in names]
        if unknown:
            raise AttributeError(f"{type(el).__name__} has no field(s) {', '.join(sorted(unknown))}")
        for key, value in changes.items():
            setattr(el, key, value)
        if "mask" in changes and isinstance(el, ImageElement) and "has_mask" not in changes:
            el.has_mask = el.mask is not None
        return el

    def add_element(self, element: Element, index: Optional[int] = None) -> Element:
        if self.index_of(element.id) >= 0:
            raise ValueError(f"Duplicate element id {element.id!r}")
        if index is None:
            self.elements.append(element)
        else:
            self.elements.insert(index, element)
        logger.debug("Added %s element %s", element.kind, element.id)
        return element

    def remove_element(self, element_id: str) -> Element:
        el = self.get(element_id)
        if self._active_id == element_id:
            self.end_interaction()
        self.elements.remove(el)
        self.locked.discard(element_id)
        self.hidden.discard(element_id)
        if self.selected_id == element_id:
            self.selected_id = None
        return el

    def duplicate_element(self, element_id: str) -> Element:
        """Copy an element on top of the stack, offset so it stays visible."""
        src = self.get(element_id)
        changes = dict(id=new_element_id(), x=src.x + DUPLICATE_OFFSET, y=src.y + DUPLICATE_OFFSET)
        if isinstance(src, ImageElement):
            changes["mask"] = copy.copy(src.mask)
        dup = replace(src, **changes)
        self.add_element(dup)
        self.select(dup.id)
        return dup

    def select(self, element_id: Optional[str]) -> None:
        if element_id is not None:
            self.get(element_id)
        self.selected_id = element_id

    def clear_selection(self) -> None:
        self.selected_id = None

    # --- Layers ---
    def move_up(self, element_id: str) -> None:
        i = self._index_or_raise(element_id)
        if i < len(self.elements) - 1:
            self.elements[i], self.elements[i + 1] = self.elements[i + 1], self.elements[i]

    def move_down(self, element_id: str) -> None:
        i = self._index_or_raise(element_id)
        if i > 0:
            self.elements[i], self.elements[i - 1] = self.elements[i - 1], self.elements[i]

    def move_to_top(self, element_id: str) -> None:
        i = self._index_or_raise(element_id)
        self.elements.append(self.elements.pop(i))

    def move_to_bottom(self, element_id: str) -> None:
        i = self._index_or_raise(element_id)
        self.elements.insert(0, self.elements.pop(i))

    def reorder(self, dragged_id: str, target_id: str) -> None:
        """Move ``dragged_id`` into the slot currently held by ``target_id``."""
        if dragged_id == target_id:
            return
        src = self.index_of(dragged_id)
        dst = self.index_of(target_id)
        if src < 0 or dst < 0:
            return
        el = self.elements.pop(src)
        self.elements.insert(dst, el)

    def rename_layer(self, element_id: str, name: str) -> None:
        self.update_element(element_id, layer_name=(name or None))

    def toggle_lock(self, element_id: str) -> bool:
        self.get(element_id)
        if element_id in self.locked:
            self.locked.discard(element_id)
            return False
        self.locked.add(element_id)
        return True

    def toggle_visibility(self, element_id: str) -> bool:
        """Returns True when the element is visible afterwards."""
        self.get(element_id)
        if element_id in self.hidden:
            self.hidden.discard(element_id)
            return True
        self.hidden.add(element_id)
        return False

    def is_locked(self, element_id: str) -> bool:
        return element_id in self.locked

    def _index_or_raise(self, element_id: str) -> int:
        i = self.index_of(element_id)
        if i < 0:
            raise ElementNotFoundError(element_id)
        return i

    # --- Hit testing ---
    def hit_test(self, x: float, y: float, skip_template: bool = False, images_only: bool = False,
                 measure: Optional[TextMeasure] = None) -> Optional[Element]:
        """Topmost visible element under a canvas point."""
        for el in reversed(self.elements):
            if el.id in self.hidden:
                continue
            if images_only and not isinstance(el, ImageElement):
                continue
            if skip_template and el.is_from_template:
                continue
            if point_in_element(x, y, el, measure):
                return el
        return None
