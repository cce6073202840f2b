"""
Structure rules for nested checklists.

Items are any objects with mutable ``id``, ``level``, ``item_order`` and
``parent_id`` attributes. The list order is ``(item_order, id)``; order values
may have gaps. An item's parent is the nearest preceding item with a lower
level, and an item "owns" the run of following items deeper than itself.
Structural operations move an item together with that run.
"""
from .errors import ChecklistBoundaryError

MIN_LEVEL = 0
MAX_LEVEL = 5

UP = "up"
DOWN = "down"


def ordered(items):
    return sorted(items, key=lambda item: (item.item_order, item.id))


def next_order(items):
    orders = [item.item_order for item in items]
    return max(orders) + 1 if orders else 0


def can_indent(item):
    return item.level < MAX_LEVEL


def can_outdent(item):
    return item.level > MIN_LEVEL


def relink(items):
    """Recompute ``parent_id`` for an ordered list."""
    stack = []
    for item in items:
        while stack and stack[-1].level >= item.level:
            stack.pop()
        item.parent_id = stack[-1].id if stack else None
        stack.append(item)
    return items


def _index(items, item_id):
    for index, item in enumerate(items):
        if item.id == item_id:
            return index
    raise KeyError(item_id)


def _block_end(items, start):
    """Index one past the subtree that starts at ``start``."""
    level = items[start].level
    end = start + 1
    while end < len(items) and items[end].level > level:
        end += 1
    return end


def _previous_block_start(items, start):
    level = items[start].level
    index = start - 1
    while index > 0 and items[index].level > level:
        index -= 1
    return index


def _snapshot(items):
    return {item.id: (item.level, item.item_order, item.parent_id) for item in items}


def _changed(items, before):
    return [item for item in items if before[item.id] != (item.level, item.item_order, item.parent_id)]


def _reorder(segment, new_sequence):
    orders = [item.item_order for item in segment]
    if len(set(orders)) != len(orders):
        orders = list(range(orders[0], orders[0] + len(orders)))
    for item, order in zip(new_sequence, orders):
        item.item_order = order


def indent(items, item_id):
    """Increase an item's level by one. Returns the items that changed."""
    items = ordered(items)
    before = _snapshot(items)
    item = items[_index(items, item_id)]
    if not can_indent(item):
        raise ChecklistBoundaryError("indent", f"Item is already at the maximum level ({MAX_LEVEL})")
    item.level += 1
    relink(items)
    return _changed(items, before)


def outdent(items, item_id):
    """Decrease an item's level by one. Returns the items that changed."""
    items = ordered(items)
    before = _snapshot(items)
    item = items[_index(items, item_id)]
    if not can_outdent(item):
        raise ChecklistBoundaryError("outdent", "Item is already at the top level")
    item.level -= 1
    relink(items)
    return _changed(items, before)


def can_move(items, item_id, direction):
    items = ordered(items)
    start = _index(items, item_id)
    if direction == UP:
        return start > 0
    return _block_end(items, start) < len(items)


def move(items, item_id, direction):
    """
    Swap an item's subtree with the neighbouring block in ``direction``.

    Existing order values of the affected range are reused, so nothing
    outside that range is touched. Returns the items that changed.
    """
    if direction not in (UP, DOWN):
        raise ValueError(f"Unknown direction: {direction}")
    items = ordered(items)
    before = _snapshot(items)
    start = _index(items, item_id)
    end = _block_end(items, start)

    if direction == UP:
        if start == 0:
            raise ChecklistBoundaryError("move", "Item is already first")
        prev_start = _previous_block_start(items, start)
        segment = items[prev_start:end]
        new_sequence = items[start:end] + items[prev_start:start]
    else:
        if end >= len(items):
            raise ChecklistBoundaryError("move", "Item is already last")
        next_end = _block_end(items, end)
        segment = items[start:next_end]
        new_sequence = items[end:next_end] + items[start:end]

    _reorder(segment, new_sequence)
    relink(ordered(items))
    return _changed(items, before)


def move_up(items, item_id):
    return move(items, item_id, UP)


def move_down(items, item_id):
    return move(items, item_id, DOWN)
