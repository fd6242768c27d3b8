"""
The environment a size computation is evaluated in.

A SizeContext is a value: entering a child produces a new context and leaves
the parent untouched, so that computing a size never changes anything the
caller can observe.
"""
import logging

from .exceptions import HexiteException, TruncatedData, InvalidConfiguration


logger = logging.getLogger(__name__)


class Scope(object):
    '''Names of the values decoded so far, with a link to the enclosing scope.

    The values are looked up locally, then via the "loader" (if any) and
    at the end into the parent.'''

    def __init__(self, values=None, parent=None, loader=None):
        self.values = values if values is not None else {}
        self.parent = parent
        self.loader = loader

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, ','.join(self.values))

    def __contains__(self, name):
        return name in self.values

    def __setitem__(self, name, value):
        self.values[name] = value

    @property
    def root(self):
        scope = self
        while scope.parent is not None:
            scope = scope.parent

        return scope

    def child(self):
        return Scope(parent=self)

    def lookup_local(self, name):
        if name in self.values:
            value = self.values[name]
            if isinstance(value, HexiteException):
                raise value

            return value

        if self.loader is not None:
            logger.debug('loading \'%s\' on demand' % name)
            return self.loader(name)

        raise KeyError(name)

    def lookup(self, name):
        scope = self
        while scope is not None:
            try:
                return scope.lookup_local(name)
            except KeyError:
                scope = scope.parent

        raise KeyError(name)


class SizeContext(object):
    '''Binds a position inside a read-only buffer to the scope of the values
    decoded before it.'''

    def __init__(self, buffer, offset=0, scope=None):
        if offset < 0:
            raise InvalidConfiguration('offset must be non negative, got %d' % offset)

        if not isinstance(buffer, memoryview):
            buffer = memoryview(buffer)
        self.buffer = buffer if buffer.readonly else buffer.toreadonly()
        self.offset = offset
        self.scope = scope if scope is not None else Scope()

    def __repr__(self):
        return '<%s(offset=0x%x, size=0x%x)>' % (self.__class__.__name__, self.offset, len(self.buffer))

    def __len__(self):
        return len(self.buffer)

    @property
    def available(self) -> int:
        return max(0, len(self.buffer) - self.offset)

    def enter(self, offset, scope=None):
        '''Returns a new context positioned at "offset" (absolute).'''
        return SizeContext(self.buffer, offset=offset, scope=scope if scope is not None else self.scope)

    def read(self, size, offset=None) -> bytes:
        '''Returns a copy of "size" bytes starting at the position of the context.'''
        start = self.offset if offset is None else offset
        end = start + size

        if end > len(self.buffer):
            raise TruncatedData(max(start, len(self.buffer)), end - max(start, len(self.buffer)))

        return bytes(self.buffer[start:end])
