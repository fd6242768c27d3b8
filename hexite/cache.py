import bisect
import logging


logger = logging.getLogger(__name__)


class DecodeCache(object):
    '''Remembers where the elements of slices with dynamically sized elements
    start, so that a query doesn't have to walk again from the first element.

    For each slice (identified by the type and its offset) it keeps the
    offsets of the first N elements, in order. It's private to a View and
    must be cleared when the buffer or the format changes.'''

    def __init__(self):
        self._offsets = {}

    def __len__(self):
        return len(self._offsets)

    @staticmethod
    def key(type, offset):
        return (id(type), offset)

    def known(self, key) -> int:
        '''How many elements of the slice have a known offset.'''
        return len(self._offsets.get(key, ()))

    def record(self, key, index, offset):
        offsets = self._offsets.setdefault(key, [])
        # only contiguous runs from the first element are kept
        if index == len(offsets):
            offsets.append(offset)

    def nearest(self, key, position):
        '''Returns (index, offset) of the last known element starting at or
        before "position", or None.'''
        offsets = self._offsets.get(key)
        if not offsets:
            return None

        index = bisect.bisect_right(offsets, position) - 1
        if index < 0:
            return None

        return index, offsets[index]

    def clear(self):
        logger.debug('dropping %d cached slice(s)' % len(self._offsets))
        self._offsets.clear()
