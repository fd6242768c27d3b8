"""
Generic definition of a format: an ordered collection of types placed at
given offsets of a buffer.
"""
import logging
from typing import Dict, List, Optional, Tuple

from .context import Scope
from .exceptions import InvalidConfiguration, LayoutConflict, MalformedDynamicSize


logger = logging.getLogger(__name__)


class FormatChild(object):

    def __init__(self, offset, type, name, union=False):
        self.offset = offset
        self.type = type
        self.name = name
        self.union = union

    def __repr__(self):
        return '<%s(%s@0x%x: %r)>' % (self.__class__.__name__, self.name, self.offset, self.type)

    @property
    def fixed_end(self) -> Optional[int]:
        size = self.type.fixed_size
        return self.offset + size if size is not None else None

    def overlaps(self, other) -> bool:
        '''Only children with a fixed size can be checked without data.'''
        if self.fixed_end is None or other.fixed_end is None:
            return False

        return self.offset < other.fixed_end and other.offset < self.fixed_end


class Format(object):
    '''The children are built once via add_child() and the format is frozen when
    handed to a View.

    Overlapping children are rejected unless the format or one of the two
    children is declared as a union.'''

    def __init__(self, name='root', union=False):
        self.name = name
        self.union = union
        self.children: List[FormatChild] = []
        self._frozen = False

    def __repr__(self):
        return '<%s(%s: %s)>' % (self.__class__.__name__, self.name, ','.join(_.name for _ in self.children))

    def __iter__(self):
        return iter(self.children)

    def __len__(self):
        return len(self.children)

    def __getitem__(self, name) -> FormatChild:
        for child in self.children:
            if child.name == name:
                return child

        raise KeyError(name)

    @property
    def frozen(self):
        return self._frozen

    def freeze(self):
        self._frozen = True

    def conflicts(self, first, second) -> bool:
        if self.union or first.union or second.union:
            return False

        return first.overlaps(second)

    def add_child(self, offset, type, name=None, union=False) -> FormatChild:
        if self._frozen:
            raise InvalidConfiguration(f'format {self.name!r} is in use by a view and cannot be changed')
        if offset < 0:
            raise InvalidConfiguration(f'offset must be non negative, got {offset}')

        name = name if name is not None else f'field_{len(self.children)}'
        if any(_.name == name for _ in self.children):
            raise InvalidConfiguration(f'format {self.name!r} has already a child named {name!r}')

        child = FormatChild(offset, type, name, union=union)

        for other in self.children:
            if self.conflicts(other, child):
                raise LayoutConflict(other, child)

        logger.debug('added child \'%s\' at offset 0x%x' % (name, offset))
        self.children.append(child)

        return child

    def root_scope(self, ctx) -> Scope:
        '''The scope of the children over the buffer of "ctx": a child is
        decoded only when a Dependency asks for it.'''
        scope = Scope()
        loading = set()

        def _load(name):
            child = self[name]
            if name in loading:
                raise MalformedDynamicSize(f'{name!r} depends on itself', offset=child.offset)

            logger.debug('decoding child \'%s\' to resolve a dependency' % name)
            loading.add(name)
            try:
                value = child.type.decode(ctx.enter(child.offset, scope))
            finally:
                loading.discard(name)

            scope[name] = value
            return value

        scope.loader = _load

        return scope

    @property
    def layout(self) -> Dict[str, Tuple[int, Optional[int]]]:
        return {_.name: (_.offset, _.type.fixed_size) for _ in self.children}

    def required_length(self, ctx=None) -> int:
        '''The minimum length of a buffer holding all the children; dynamic
        children need a context to compute it.'''
        end = 0
        scope = self.root_scope(ctx) if ctx is not None else None
        for child in self.children:
            child_ctx = ctx.enter(child.offset, scope) if ctx is not None else None
            end = max(end, child.offset + child.type.size(child_ctx))

        return end
