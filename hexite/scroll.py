"""
A Container calculating scroll positions

    ┌ scroll position / offset
    │  ┌╌╌╌╌╌╌╌╌╌┐
    │  ╎         ╎ "virtual" content before rendered content
    │  ╎         ╎
    │  ├─────────┤
    │  │         │ rendered content outside viewport (before)
    ↓  │         │
    ┏━━┿━━━━━━━━━┿━━┓ viewport
    ┃  │         │  ┃
    ┃  │         │  ┃  rendered content inside viewport
    ┃  │         │  ┃
    ┗━━┿━━━━━━━━━┿━━┛
       │         │
       │         │ rendered content outside viewport (after)
       ├─────────┤
       ╎         ╎
       ╎         ╎ "virtual" content after rendered content
       └╌╌╌╌╌╌╌╌╌┘

The sizes of the items are only an average: the container doesn't know
anything about the data, the exact sizes of the rendered items are computed by
whoever draws them.
"""
import logging

from .exceptions import InvalidConfiguration


logger = logging.getLogger(__name__)

# items rendered for each chunk in the viewport: one before, one inside, one after
CHUNKS_RENDERED = 3


def rounding_div(a: int, b: int) -> int:
    '''Integer division rounding to the nearest, ties going up.'''
    return (a + (b // 2)) // b


class LayoutUpdate(object):
    '''What must be drawn: the spacer before, the items and the spacer after.
    The range is of item indexes, the spacers are in the unit of the sizes.'''

    def __init__(self, virtual_before, item_range, virtual_after):
        self.virtual_before = virtual_before
        self.item_range = item_range
        self.virtual_after = virtual_after

    def __repr__(self):
        return '<%s(%d, [%d, %d), %d)>' % (
            self.__class__.__name__,
            self.virtual_before,
            self.item_range.start,
            self.item_range.stop,
            self.virtual_after,
        )

    def __eq__(self, other):
        if not isinstance(other, LayoutUpdate):
            return NotImplemented

        return (self.virtual_before, self.item_range, self.virtual_after) == \
            (other.virtual_before, other.item_range, other.virtual_after)


class Container(object):

    def __init__(self, num_items, average_item_size):
        for name, value in (('num_items', num_items), ('average_item_size', average_item_size)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidConfiguration(f'{name} must be an integer, got {value!r}')

        if num_items < 0:
            raise InvalidConfiguration(f'num_items must be non negative, got {num_items}')
        if average_item_size <= 0:
            raise InvalidConfiguration(f'average_item_size must be positive, got {average_item_size}')

        self.num_items = num_items
        self.average_item_size = average_item_size

        self.viewport_size = average_item_size
        self.items_per_chunk = 1
        self.rendered_items = min(1, num_items)

        self.scroll_position = 0

    def __repr__(self):
        return '<%s(items=%d, size=%d, viewport=%d, chunk=%d, rendered=%d, position=%d)>' % (
            self.__class__.__name__,
            self.num_items,
            self.average_item_size,
            self.viewport_size,
            self.items_per_chunk,
            self.rendered_items,
            self.scroll_position,
        )

    @property
    def content_size(self) -> int:
        return self.num_items * self.average_item_size

    def on_resize(self, viewport_size):
        self.viewport_size = max(0, viewport_size)
        self.items_per_chunk = max(1, rounding_div(self.viewport_size, self.average_item_size))
        self.rendered_items = min(self.items_per_chunk * CHUNKS_RENDERED, self.num_items)
        logger.debug('resized to %d: %d item(s) per chunk, %d rendered' % (
            self.viewport_size, self.items_per_chunk, self.rendered_items))

    def on_scroll(self, scroll_position) -> LayoutUpdate:
        self.scroll_position = max(0, scroll_position)

        return self.query()

    def query(self) -> LayoutUpdate:
        item_at_position = rounding_div(self.scroll_position, self.average_item_size)
        chunk_at_position = rounding_div(item_at_position, self.items_per_chunk)
        first_item = max(0, chunk_at_position - 1) * self.items_per_chunk
        # scrolled past the end
        first_item = min(first_item, self.num_items)
        last_item = min(first_item + self.rendered_items, self.num_items)

        virtual_before = first_item * self.average_item_size
        virtual_after = max(0, self.num_items - last_item) * self.average_item_size

        return LayoutUpdate(virtual_before, range(first_item, last_item), virtual_after)
