"""
A view applies a format to a buffer.

The main API is query(): it decodes only the fields occupying bytes inside the
requested range, so that a viewer can show a small window of a huge buffer
without parsing all of it. Everything before the window is only measured,
everything after it is not touched at all.
"""
import logging

from .cache import DecodeCache
from .context import SizeContext
from .hierarchy import Hierarchy
from .types import Struct, Slice
from .exceptions import (
    HexiteException,
    InvalidConfiguration,
    LayoutConflict,
    TruncatedData,
    DecodeLimitExceeded,
)


class FieldDescriptor(object):
    '''A decoded field: where it is, what it is and its value.

    When the field cannot be decoded "error" contains the reason and "value"
    is None; "length" is None if not even the size was computable.'''

    def __init__(self, path, offset, length, type, value=None, error=None):
        self.path = path
        self.offset = offset
        self.length = length
        self.type = type
        self.value = value
        self.error = error

    def __repr__(self):
        if self.error is not None:
            return '<%s(%s@0x%x error=%s)>' % (self.__class__.__name__, self.path, self.offset, self.error.msg)

        return '<%s(%s@0x%x+%d=%r)>' % (self.__class__.__name__, self.path, self.offset, self.length, self.value)

    @property
    def end(self):
        return self.offset + self.length if self.length is not None else None

    @property
    def ok(self):
        return self.error is None


class QueryResult(object):
    '''The descriptors of the fields intersecting the range, in depth-first
    order, and the errors met while decoding them.'''

    def __init__(self, start, stop):
        self.range = range(start, stop)
        self.fields = []
        self.errors = []

    def __repr__(self):
        return '<%s(0x%x-0x%x: %d field(s), %d error(s))>' % (
            self.__class__.__name__, self.range.start, self.range.stop, len(self.fields), len(self.errors))

    def __iter__(self):
        return iter(self.fields)

    def __len__(self):
        return len(self.fields)

    def __getitem__(self, item):
        return self.fields[item]

    @property
    def ok(self):
        return not self.errors

    @property
    def truncated(self):
        return any(isinstance(_, TruncatedData) for _ in self.errors)

    @property
    def failed(self):
        return [_ for _ in self.fields if not _.ok]

    def add(self, descriptor):
        self.fields.append(descriptor)

    def fail(self, path, offset, type, error, length=None):
        if not error.chain:
            error.chain = path.components
        self.errors.append(error)
        self.fields.append(FieldDescriptor(path, offset, length, type, error=error))


class View(object):
    '''Binds a Format to a buffer.

    The buffer is never copied nor modified: it must stay alive and unchanged
    as long as the view is in use. The decoded values are copies.

    The view owns a cache with the positions of the elements of the slices
    whose elements have a dynamic size; it is not thread safe, use a view per
    thread.'''

    def __init__(self, buffer, format, cache=True, max_elements=None):
        if max_elements is not None and max_elements < 1:
            raise InvalidConfiguration(f'max_elements must be positive, got {max_elements}')

        self.logger = logging.getLogger(__name__)
        self.format = format
        self.format.freeze()
        self.max_elements = max_elements
        self.cache = DecodeCache() if cache else None
        self._ctx = SizeContext(buffer)

    def __repr__(self):
        return '<%s(%s, 0x%x bytes)>' % (self.__class__.__name__, self.format.name, len(self._ctx))

    def __len__(self):
        return len(self._ctx)

    @property
    def buffer(self) -> memoryview:
        return self._ctx.buffer

    def invalidate(self):
        if self.cache is not None:
            self.cache.clear()

    def rebind(self, buffer):
        '''Use a new buffer with the same format.'''
        self._ctx = SizeContext(buffer)
        self.invalidate()

    def read(self, start, stop) -> bytes:
        '''The raw bytes in [start, stop), clipped to the buffer.'''
        start, stop = max(0, start), max(0, stop)
        return bytes(self.buffer[start:stop])

    def spans(self):
        '''Generates (child, start, end) for each child of the format; the
        dynamic children are measured walking them completely.'''
        scope = self.format.root_scope(self._ctx)
        for child in self.format:
            yield child, child.offset, child.offset + child.type.size(self._ctx.enter(child.offset, scope))

    def required_length(self) -> int:
        return max((end for _, _, end in self.spans()), default=0)

    def validate(self):
        '''Check that no two non-union children overlap, dynamic ones included.'''
        spans = list(self.spans())
        for idx, (first, first_start, first_end) in enumerate(spans):
            for second, second_start, second_end in spans[idx + 1:]:
                if self.format.union or first.union or second.union:
                    continue
                if first_start < second_end and second_start < first_end:
                    raise LayoutConflict(first, second)

    def query(self, start, stop=None) -> QueryResult:
        '''Decode the fields intersecting [start, stop); "start" can be a range.

        It never raises for problems with the data: the fields that failed are
        in the result with their error; if the range goes past the end of the
        buffer a TruncatedData is in the errors.'''
        if stop is None:
            start, stop = start.start, start.stop

        start = max(0, start)
        stop = max(start, stop)
        result = QueryResult(start, stop)

        if start == stop:
            return result

        end = len(self._ctx)
        if stop > end:
            result.errors.append(TruncatedData(end, stop - end))

        lo, hi = start, min(stop, end)
        self.logger.debug('query 0x%x-0x%x' % (lo, hi))
        if lo >= hi:
            return result

        scope = self.format.root_scope(self._ctx)
        root = Hierarchy().push(self.format.name)
        for child in self.format:
            if child.offset >= hi:
                continue

            self._visit(child.type, self._ctx.enter(child.offset, scope), root.push(child.name), lo, hi, result)

        return result

    def _visit(self, type, ctx, path, lo, hi, result):
        '''Decode the part of the instance of "type" at the position of "ctx"
        that falls in [lo, hi).

        It returns the size of the instance, or None if it's unknown because
        the instance continues after "hi" or it failed.'''
        offset = ctx.offset
        if offset >= hi:
            return None

        fixed_size = type.fixed_size
        if fixed_size is not None and offset + fixed_size <= lo:
            return fixed_size

        try:
            if type.is_leaf:
                return self._visit_leaf(type, ctx, path, lo, hi, result)
            elif isinstance(type, Struct):
                return self._visit_struct(type, ctx, path, lo, hi, result)
            elif isinstance(type, Slice):
                return self._visit_slice(type, ctx, path, lo, hi, result)

            raise InvalidConfiguration(f'don\'t know how to visit {type!r}')
        except HexiteException as e:
            self.logger.debug('%s failed: %s' % (path, e))
            result.fail(path, offset, type, e)

        return None

    def _visit_leaf(self, type, ctx, path, lo, hi, result):
        size = type.size(ctx)
        # an empty field occupies no byte of the range
        if size == 0 or ctx.offset + size <= lo:
            return size

        try:
            value = type.decode(ctx)
        except HexiteException as e:
            result.fail(path, ctx.offset, type, e, length=size)
            return size

        result.add(FieldDescriptor(path, ctx.offset, size, type, value))

        return size

    def _visit_struct(self, type, ctx, path, lo, hi, result):
        def _visit_member(member, member_ctx):
            return self._visit(member.type, member_ctx, path.push(member.name), lo, hi, result)

        return type.walk(ctx, _visit_member)

    def _visit_slice(self, type, ctx, path, lo, hi, result):
        offset = ctx.offset
        element = type.element
        element_size = element.fixed_size

        # with elements of fixed size the ones to decode are found directly
        if element_size is not None and type.until is None:
            count = type.length(ctx)
            if element_size == 0:
                return 0

            first = max(0, (lo - offset) // element_size)
            last = min(count, -(-(hi - offset) // element_size))
            for index in range(first, last):
                element_ctx = ctx.enter(offset + index * element_size)
                self._visit(element, element_ctx, path.at(index), lo, hi, result)

            return count * element_size

        return self._walk_slice(type, ctx, path, lo, hi, result)

    def _walk_slice(self, type, ctx, path, lo, hi, result):
        '''Elements of dynamic size must be walked from the start, or from the
        last cached element before the range.'''
        offset = ctx.offset
        key = DecodeCache.key(type, offset)

        index, position = 0, offset
        if self.cache is not None:
            known = self.cache.nearest(key, lo)
            if known is not None:
                index, position = known
                self.logger.debug('%s: restart from element %d at 0x%x' % (path, index, position))

        walked = 0
        end = position
        for index, element_ctx, size, _ in type.iter_elements(ctx, index=index, offset=position):
            start = element_ctx.offset
            if self.cache is not None:
                self.cache.record(key, index, start)

            walked += 1
            if self.max_elements is not None and walked > self.max_elements:
                raise DecodeLimitExceeded(f'walked more than {self.max_elements} elements of {type.name!r}')

            if start >= hi:
                return None

            if start + size > lo:
                self._visit(type.element, element_ctx, path.at(index), lo, hi, result)

            end = start + size

        return end - offset
